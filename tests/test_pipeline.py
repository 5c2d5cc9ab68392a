"""
Tests for CardTextPipeline class.

Tests the text processing pipeline used by the API.
"""

import pytest
from unittest.mock import patch

from cardextract.pipeline import CardTextPipeline


CARD_TEXT = """RACHEL TAN
FINANCE MANAGER
PSG SDN BHD
Mobile No : 017-334 7211
Telephone No : 03-3342 0758
Email Add. : rachel@psg.com.my
Lot 210, Jalan Sungai Putus, 42100 Klang, Selangor"""


class TestCardTextPipeline:
    """Test cases for CardTextPipeline."""

    @pytest.fixture
    def pipeline(self):
        """Create pipeline instance."""
        return CardTextPipeline()

    @pytest.fixture
    def parallel_pipeline(self):
        """Create pipeline that fans batches out to threads."""
        return CardTextPipeline(parallel_processing=True, parallel_workers=3)

    def test_pipeline_initialization(self, pipeline):
        """Test pipeline initializes correctly."""
        assert pipeline.parser is not None
        assert pipeline.parser.strategy_name == "two_pass"

    def test_unknown_strategy_fails_fast(self):
        """Test construction rejects unknown strategies."""
        with pytest.raises(ValueError):
            CardTextPipeline(strategy="magic")

    def test_get_status(self, pipeline):
        """Test status retrieval."""
        status = pipeline.get_status()

        assert status["strategy"] == "two_pass"
        assert status["available_strategies"] == ["candidate_scoring", "two_pass"]
        assert status["default_country_code"] == "+60"
        assert status["parallel_processing"] is False

    def test_process_text(self, pipeline):
        """Test text processing result shape."""
        result = pipeline.process_text(CARD_TEXT)

        assert result["success"] is True
        assert result["contact_data"]["name"] == "Rachel Tan"
        assert result["contact_data"]["phones"]["office"] == "03-3342-0758"
        assert result["field_confidence"] == result["contact_data"]["confidence"]
        assert result["strategy"] == "two_pass"
        assert result["line_count"] == 7
        assert result["processing_time_ms"] >= 0
        assert "processed_at" in result

    def test_normalized_phones(self, pipeline):
        """Test filled phone slots are also given in E.164 form."""
        result = pipeline.process_text(CARD_TEXT)

        assert result["normalized_phones"] == {
            "mobile1": "+60173347211",
            "office": "+60333420758",
        }

    def test_whatsapp_and_display_phones(self, pipeline):
        """Test filled phone slots are given in wa.me and display layouts."""
        result = pipeline.process_text(CARD_TEXT)

        assert result["whatsapp_phones"] == {
            "mobile1": "60173347211",
            "office": "60333420758",
        }
        assert result["display_phones"]["mobile1"] == "017-334 7211"
        assert result["display_phones"]["office"] == "03-3342 0758"

    def test_invalid_phone_is_not_normalized(self, pipeline):
        """Test a number outside the numbering plan is kept only for display."""
        result = pipeline.process_text("SARAH LEE\nHP: 019-876 543")

        assert result["contact_data"]["phones"]["mobile1"] == "019-876-543"
        assert "mobile1" not in result["normalized_phones"]
        assert "mobile1" not in result["whatsapp_phones"]
        assert result["display_phones"]["mobile1"] == "019-876-543"

    def test_legacy_contact(self, pipeline):
        """Test the single-phone contact is included."""
        legacy = pipeline.process_text(CARD_TEXT)["legacy_contact"]

        assert legacy["phone"] == "017-334-7211"
        assert legacy["email"] == "rachel@psg.com.my"
        assert 0 < legacy["confidence"] <= 100

    def test_process_text_strategy_override(self, pipeline):
        """Test a per-call strategy override."""
        result = pipeline.process_text(CARD_TEXT, strategy="candidate_scoring")

        assert result["strategy"] == "candidate_scoring"
        assert result["contact_data"]["name"] == "Rachel Tan"

    def test_process_text_unknown_strategy(self, pipeline):
        """Test unknown per-call strategies raise."""
        with pytest.raises(ValueError):
            pipeline.process_text(CARD_TEXT, strategy="magic")

    def test_process_empty_text(self, pipeline):
        """Test empty text is a successful, empty parse."""
        result = pipeline.process_text("")

        assert result["success"] is True
        assert result["contact_data"]["name"] == ""
        assert result["normalized_phones"] == {}
        assert result["line_count"] == 0

    def test_process_text_error(self, pipeline):
        """Test unexpected failures are reported, not raised."""
        with patch.object(pipeline.parser, "parse", side_effect=RuntimeError("boom")):
            result = pipeline.process_text(CARD_TEXT)

        assert result["success"] is False
        assert result["error"] == "boom"

    def test_process_batch(self, pipeline):
        """Test batch processing counts."""
        result = pipeline.process_batch([CARD_TEXT, "", "SARAH LEE\nHP: 016-555 4444"])

        assert result["success"] is True
        assert result["total"] == 3
        assert result["successful"] == 3
        assert result["failed"] == 0
        assert [r["contact_data"]["name"] for r in result["results"]] == ["Rachel Tan", "", "Sarah Lee"]

    def test_process_batch_parallel_keeps_order(self, parallel_pipeline):
        """Test threaded batches return results in input order."""
        texts = [f"Person{chr(65 + i)} Tan\nHP: 012-345 678{i}" for i in range(8)]

        result = parallel_pipeline.process_batch(texts)

        assert [r["contact_data"]["phones"]["mobile1"] for r in result["results"]] == [
            f"012-345-678{i}" for i in range(8)
        ]
