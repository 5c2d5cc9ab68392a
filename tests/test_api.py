"""
Tests for Flask API routes.

Tests the REST API endpoints.
"""

import pytest
import json
from unittest.mock import Mock, patch

from app import create_app


CARD_TEXT = """RACHEL TAN
FINANCE MANAGER
PSG SDN BHD
Mobile No : 017-334 7211
Telephone No : 03-3342 0758
Email Add. : rachel@psg.com.my
Lot 210, Jalan Sungai Putus, 42100 Klang, Selangor"""


def post_json(client, url, payload):
    return client.post(url, data=json.dumps(payload), content_type="application/json")


class TestAPIRoutes:
    """Test cases for API routes."""

    @pytest.fixture
    def app(self):
        """Create test Flask app."""
        app = create_app("testing")
        app.config["TESTING"] = True
        return app

    @pytest.fixture
    def client(self, app):
        """Create test client."""
        return app.test_client()

    def test_info_endpoint(self, client):
        """Test info endpoint returns API info."""
        response = client.get("/api/info")

        assert response.status_code == 200
        data = json.loads(response.data)
        assert "name" in data
        assert "version" in data
        assert "parse_text" in data["endpoints"]

    def test_health_check(self, client):
        """Test health check endpoint."""
        response = client.get("/api/health")

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["success"] is True
        assert data["status"] == "healthy"

    def test_status_endpoint(self, client):
        """Test status endpoint."""
        with patch('api.routes.get_pipeline') as mock_get_pipeline:
            mock_pipeline = Mock()
            mock_pipeline.get_status.return_value = {"strategy": "two_pass"}
            mock_get_pipeline.return_value = mock_pipeline

            response = client.get("/api/status")

            assert response.status_code == 200
            data = json.loads(response.data)
            assert data["success"] is True
            assert data["data"]["pipeline_status"]["strategy"] == "two_pass"
            assert "max_text_length" in data["data"]["extraction_settings"]

    def test_unknown_route(self, client):
        """Test unknown routes return JSON 404."""
        response = client.get("/api/nope")

        assert response.status_code == 404
        assert json.loads(response.data)["success"] is False

    def test_wrong_method(self, client):
        """Test GET on a POST endpoint returns JSON 405."""
        response = client.get("/api/parse-text")

        assert response.status_code == 405
        assert json.loads(response.data)["success"] is False

    def test_parse_text(self, client):
        """Test parsing a full card."""
        response = post_json(client, "/api/parse-text", {"text": CARD_TEXT})

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["success"] is True
        contact = data["data"]["contact_data"]
        assert contact["name"] == "Rachel Tan"
        assert contact["jobTitle"] == "Finance Manager"
        assert contact["phones"]["mobile1"] == "017-334-7211"
        assert contact["email"] == "rachel@psg.com.my"
        assert data["data"]["normalized_phones"]["office"] == "+60333420758"

    def test_parse_text_with_strategy(self, client):
        """Test choosing the candidate scoring strategy."""
        response = post_json(client, "/api/parse-text", {"text": CARD_TEXT, "strategy": "candidate_scoring"})

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["data"]["strategy"] == "candidate_scoring"
        assert data["data"]["contact_data"]["name"] == "Rachel Tan"

    def test_parse_empty_text(self, client):
        """Test empty text parses to an empty card."""
        response = post_json(client, "/api/parse-text", {"text": ""})

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["data"]["contact_data"]["phones"] == {
            "mobile1": "", "mobile2": "", "office": "", "fax": "",
        }

    def test_parse_text_missing_text(self, client):
        """Test parse endpoint without text."""
        response = post_json(client, "/api/parse-text", {})

        assert response.status_code == 400
        data = json.loads(response.data)
        assert data["success"] is False

    def test_parse_text_not_json(self, client):
        """Test parse endpoint with a non-JSON body."""
        response = client.post("/api/parse-text", data="RACHEL TAN", content_type="text/plain")

        assert response.status_code == 400

    def test_parse_text_not_string(self, client):
        """Test parse endpoint with non-string text."""
        response = post_json(client, "/api/parse-text", {"text": ["RACHEL TAN"]})

        assert response.status_code == 400
        assert "string" in json.loads(response.data)["error"]

    def test_parse_text_too_long(self, app, client):
        """Test parse endpoint rejects oversized text."""
        app.config["MAX_TEXT_LENGTH"] = 10

        response = post_json(client, "/api/parse-text", {"text": CARD_TEXT})

        assert response.status_code == 400
        assert "too long" in json.loads(response.data)["error"]

    def test_parse_text_unknown_strategy(self, client):
        """Test parse endpoint rejects unknown strategies."""
        response = post_json(client, "/api/parse-text", {"text": CARD_TEXT, "strategy": "magic"})

        assert response.status_code == 400
        assert "two_pass" in json.loads(response.data)["error"]

    def test_parse_text_pipeline_failure(self, client):
        """Test a failed parse returns 500."""
        with patch('api.routes.get_pipeline') as mock_get_pipeline:
            mock_pipeline = Mock()
            mock_pipeline.process_text.return_value = {"success": False, "error": "boom"}
            mock_get_pipeline.return_value = mock_pipeline

            response = post_json(client, "/api/parse-text", {"text": CARD_TEXT})

            assert response.status_code == 500
            assert json.loads(response.data)["success"] is False

    def test_parse_batch(self, client):
        """Test parsing several texts at once."""
        response = post_json(client, "/api/parse-batch", {"texts": [CARD_TEXT, ""]})

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["total"] == 2
        assert data["successful"] == 2
        assert data["results"][0]["contact_data"]["name"] == "Rachel Tan"

    @pytest.mark.parametrize("payload", [
        {},
        {"texts": []},
        {"texts": "RACHEL TAN"},
        {"texts": [CARD_TEXT, 42]},
    ])
    def test_parse_batch_bad_input(self, client, payload):
        """Test batch endpoint input validation."""
        response = post_json(client, "/api/parse-batch", payload)

        assert response.status_code == 400
        assert json.loads(response.data)["success"] is False

    def test_parse_batch_too_many_texts(self, app, client):
        """Test batch endpoint rejects oversized batches."""
        app.config["MAX_BATCH_TEXTS"] = 1

        response = post_json(client, "/api/parse-batch", {"texts": [CARD_TEXT, CARD_TEXT]})

        assert response.status_code == 400

    def test_progressive_batch_flow(self, client):
        """Test start, next and status for a progressive job, and its removal once done."""
        response = post_json(client, "/api/batch-progressive/start?batch_size=2", {
            "texts": [CARD_TEXT, "SARAH LEE\nHP: 016-555 4444", ""],
        })

        assert response.status_code == 200
        started = json.loads(response.data)
        assert started["total_texts"] == 3
        assert started["batch_size"] == 2
        assert started["estimated_batches"] == 2
        job_id = started["job_id"]

        first = json.loads(client.post(f"/api/batch-progressive/{job_id}/next").data)
        assert first["batch_number"] == 1
        assert first["is_complete"] is False

        status = json.loads(client.get(f"/api/batch-progressive/{job_id}/status").data)
        assert status["processed"] == 2
        assert status["status"] == "in_progress"

        second = json.loads(client.post(f"/api/batch-progressive/{job_id}/next").data)
        assert second["is_complete"] is True

        done = client.post(f"/api/batch-progressive/{job_id}/next")
        assert done.status_code == 200
        final = json.loads(done.data)
        assert final["status"] == "completed"
        assert [item["index"] for item in final["final_results"]] == [0, 1, 2]

        assert client.get(f"/api/batch-progressive/{job_id}/status").status_code == 404
        assert client.post(f"/api/batch-progressive/{job_id}/next").status_code == 404

    @pytest.mark.parametrize("query", ["?batch_size=abc", "?batch_size=0"])
    def test_progressive_batch_bad_size(self, client, query):
        """Test invalid batch sizes are rejected."""
        response = post_json(client, f"/api/batch-progressive/start{query}", {"texts": [CARD_TEXT]})

        assert response.status_code == 400

    def test_progressive_batch_busy(self, client):
        """Test a job mid-batch answers 409."""
        with patch('api.routes.batch_processor') as mock_processor:
            mock_processor.process_next_batch.return_value = None
            mock_processor.get_job_status.return_value = {"is_complete": False}

            response = client.post("/api/batch-progressive/job-1/next")

            assert response.status_code == 409

    def test_progressive_batch_unknown_job(self, client):
        """Test unknown job ids return 404."""
        assert client.post("/api/batch-progressive/missing/next").status_code == 404
        assert client.get("/api/batch-progressive/missing/status").status_code == 404
