"""
Tests for ProgressiveBatchProcessor.
"""

import pytest
from unittest.mock import Mock

from cardextract.batch_processor import ProgressiveBatchProcessor
from cardextract.pipeline import CardTextPipeline


TEXTS = [
    "RACHEL TAN\nHP: 017-334 7211",
    "SARAH LEE\nTel: 03-7777 8888",
    "JOHN DOE\nEmail: john.doe@abc.com.my",
    "",
    "PSG SDN BHD\nFax: 03-3359 1780",
]


class TestProgressiveBatchProcessor:
    """Test cases for ProgressiveBatchProcessor."""

    @pytest.fixture
    def processor(self):
        """Create processor with small batches."""
        return ProgressiveBatchProcessor(batch_size=2)

    @pytest.fixture
    def pipeline(self):
        """Create pipeline instance."""
        return CardTextPipeline()

    def test_invalid_batch_size(self):
        """Test batch sizes below one are rejected."""
        with pytest.raises(ValueError):
            ProgressiveBatchProcessor(batch_size=0)

    def test_start_batch_job(self, processor):
        """Test job creation splits texts into batches."""
        job_id = processor.start_batch_job(TEXTS)

        status = processor.get_job_status(job_id)
        assert status["status"] == "started"
        assert status["total_texts"] == 5
        assert status["total_batches"] == 3
        assert status["progress"] == 0
        assert status["is_complete"] is False
        assert "batches" not in status

    def test_explicit_job_id_and_batch_size(self, processor):
        """Test caller supplied job id and chunk size."""
        job_id = processor.start_batch_job(TEXTS, job_id="job-1", batch_size=5)

        assert job_id == "job-1"
        assert processor.get_job_status("job-1")["total_batches"] == 1

    def test_process_batches_until_complete(self, processor, pipeline):
        """Test each call advances one batch and reports progress."""
        job_id = processor.start_batch_job(TEXTS)

        first = processor.process_next_batch(job_id, pipeline)
        assert first["batch_number"] == 1
        assert first["progress"] == pytest.approx(40.0)
        assert first["status"] == "in_progress"
        assert [item["index"] for item in first["batch_results"]] == [0, 1]
        assert first["batch_results"][0]["result"]["contact_data"]["phones"]["mobile1"] == "017-334-7211"

        second = processor.process_next_batch(job_id, pipeline)
        third = processor.process_next_batch(job_id, pipeline)

        assert [item["index"] for item in second["batch_results"]] == [2, 3]
        assert [item["index"] for item in third["batch_results"]] == [4]
        assert third["is_complete"] is True
        assert third["status"] == "completed"
        assert third["processed"] == 5
        assert third["successful"] == 5

        assert processor.process_next_batch(job_id, pipeline) is None
        status = processor.get_job_status(job_id)
        assert status["status"] == "completed"
        assert status["progress"] == pytest.approx(100.0)
        assert len(status["results"]) == 5

    def test_strategy_is_passed_through(self, processor):
        """Test the job strategy reaches the pipeline."""
        pipeline = Mock()
        pipeline.process_text.return_value = {"success": True}
        job_id = processor.start_batch_job(TEXTS[:1], strategy="candidate_scoring")

        processor.process_next_batch(job_id, pipeline)

        pipeline.process_text.assert_called_once_with(TEXTS[0], "candidate_scoring")

    def test_exceptions_count_as_failures(self, processor):
        """Test a raising pipeline marks texts failed without stopping the job."""
        pipeline = Mock()
        pipeline.process_text.side_effect = [RuntimeError("boom"), {"success": True}]
        job_id = processor.start_batch_job(TEXTS[:2])

        result = processor.process_next_batch(job_id, pipeline)

        assert result["failed"] == 1
        assert result["successful"] == 1
        assert result["batch_results"][0]["result"] == {"success": False, "error": "boom"}

    def test_unsuccessful_results_count_as_failures(self, processor):
        """Test success False results are tallied as failed."""
        pipeline = Mock()
        pipeline.process_text.return_value = {"success": False, "error": "bad"}
        job_id = processor.start_batch_job(TEXTS[:2])

        result = processor.process_next_batch(job_id, pipeline)

        assert result["failed"] == 2

    def test_unknown_job(self, processor, pipeline):
        """Test unknown job ids give None."""
        assert processor.get_job_status("missing") is None
        assert processor.process_next_batch("missing", pipeline) is None

    def test_busy_job_is_not_processed_twice(self, processor, pipeline):
        """Test a job already mid-batch is not claimed again."""
        job_id = processor.start_batch_job(TEXTS)
        processor.active_jobs[job_id]["status"] = "processing_batch_1"

        assert processor.process_next_batch(job_id, pipeline) is None
        assert processor.get_job_status(job_id)["processed"] == 0

    def test_empty_job(self, processor, pipeline):
        """Test a job without texts is complete immediately."""
        job_id = processor.start_batch_job([])

        status = processor.get_job_status(job_id)
        assert status["total_batches"] == 0
        assert status["progress"] == 100.0
        assert status["is_complete"] is True
        assert processor.process_next_batch(job_id, pipeline) is None

    def test_cleanup_job(self, processor):
        """Test jobs can be removed."""
        job_id = processor.start_batch_job(TEXTS)

        assert processor.cleanup_job(job_id) is True
        assert processor.get_job_status(job_id) is None
        assert processor.cleanup_job(job_id) is False

    def test_stale_jobs_are_evicted(self):
        """Test jobs without progress past the TTL are dropped."""
        processor = ProgressiveBatchProcessor(batch_size=2, job_ttl=60)
        job_id = processor.start_batch_job(TEXTS)
        last_update = processor.active_jobs[job_id]["last_update"]

        assert processor.cleanup_stale_jobs(now=last_update + 30) == 0
        assert processor.cleanup_stale_jobs(now=last_update + 61) == 1
        assert processor.get_job_status(job_id) is None

    def test_starting_a_job_evicts_stale_ones(self):
        """Test new jobs sweep out abandoned ones."""
        processor = ProgressiveBatchProcessor(batch_size=2, job_ttl=60)
        old_id = processor.start_batch_job(TEXTS)
        processor.active_jobs[old_id]["last_update"] -= 120

        new_id = processor.start_batch_job(TEXTS)

        assert processor.get_job_status(old_id) is None
        assert processor.get_job_status(new_id) is not None
