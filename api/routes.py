"""
API routes for the Business Card Text Parser API.

Flask REST API endpoints for parsing business card OCR text.
"""

import logging
from typing import Any, Optional, Tuple

from flask import Blueprint, request, jsonify, current_app

from cardextract.pipeline import CardTextPipeline
from cardextract.batch_processor import batch_processor
from cardextract.strategies import STRATEGIES
from config import Config

logger = logging.getLogger(__name__)

# Create Blueprint
api_bp = Blueprint("api", __name__, url_prefix="/api")

# Pipeline instance (lazy initialization)
_pipeline: Optional[CardTextPipeline] = None


def get_pipeline() -> CardTextPipeline:
    """Get or create pipeline instance.

    Returns:
        CardTextPipeline instance
    """
    global _pipeline

    if _pipeline is None:
        _pipeline = CardTextPipeline(
            strategy=Config.EXTRACTION_STRATEGY,
            weights=Config.scoring_weights(),
            default_country_code=Config.DEFAULT_COUNTRY_CODE,
            parallel_processing=Config.PARALLEL_PROCESSING,
            parallel_workers=Config.PARALLEL_WORKERS
        )
        logger.info(f"Pipeline initialized with strategy: {_pipeline.parser.strategy_name}")

    return _pipeline


def error_response(message: str, status: int):
    return jsonify({
        "success": False,
        "error": message
    }), status


def validate_text(text: Any) -> Optional[str]:
    """Return an error message when ``text`` cannot be parsed, else None."""
    if not isinstance(text, str):
        return "'text' must be a string"
    max_length = current_app.config.get("MAX_TEXT_LENGTH", Config.MAX_TEXT_LENGTH)
    if len(text) > max_length:
        return f"Text too long. Maximum length: {max_length} characters"
    return None


def validate_strategy(strategy: Any) -> Tuple[Optional[str], Optional[str]]:
    """Return (strategy, error). A missing strategy means the configured default."""
    if strategy is None:
        return None, None
    if not isinstance(strategy, str) or strategy.strip().lower() not in STRATEGIES:
        return None, f"Unknown strategy. Available: {', '.join(sorted(STRATEGIES))}"
    return strategy.strip().lower(), None


def validate_texts(texts: Any) -> Optional[str]:
    if not isinstance(texts, list) or not texts:
        return "'texts' must be a non-empty list of strings"
    max_texts = current_app.config.get("MAX_BATCH_TEXTS", Config.MAX_BATCH_TEXTS)
    if len(texts) > max_texts:
        return f"Too many texts. Maximum per request: {max_texts}"
    for i, text in enumerate(texts):
        error = validate_text(text)
        if error:
            return f"texts[{i}]: {error}"
    return None


@api_bp.route("/health", methods=["GET"])
def health_check():
    """Health check endpoint.

    Returns:
        JSON with health status
    """
    return jsonify({
        "success": True,
        "status": "healthy",
        "message": "Business Card Text Parser API is running",
        "version": "1.0.0"
    }), 200


@api_bp.route("/status", methods=["GET"])
def get_status():
    """Get API and pipeline status.

    Returns:
        JSON with status information
    """
    try:
        pipeline = get_pipeline()
        status = pipeline.get_status()

        return jsonify({
            "success": True,
            "data": {
                "api_status": "running",
                "pipeline_status": status,
                "extraction_settings": Config.get_extraction_settings()
            }
        }), 200

    except Exception as e:
        logger.error(f"Error getting status: {str(e)}")
        return error_response(str(e), 500)


@api_bp.route("/parse-text", methods=["POST"])
def parse_text():
    """Parse raw OCR text of one business card.

    Expects:
        - JSON body with 'text' field
        - Optional 'strategy' field (two_pass, candidate_scoring)

    Returns:
        JSON with parsed contact data
    """
    data = request.get_json(silent=True)

    if not isinstance(data, dict) or "text" not in data:
        return error_response("No text provided. Send JSON with 'text' field.", 400)

    error = validate_text(data["text"])
    if error:
        return error_response(error, 400)

    strategy, error = validate_strategy(data.get("strategy"))
    if error:
        return error_response(error, 400)

    try:
        pipeline = get_pipeline()
        result = pipeline.process_text(data["text"], strategy=strategy)

        return jsonify({
            "success": result["success"],
            "data": result
        }), 200 if result["success"] else 500

    except Exception as e:
        logger.error(f"Error parsing text: {str(e)}")
        return error_response(str(e), 500)


@api_bp.route("/parse-batch", methods=["POST"])
def parse_batch():
    """Parse several business card texts in one request.

    Expects:
        - JSON body with 'texts' field (list of strings)
        - Optional 'strategy' field

    Returns:
        JSON with one result per text, in request order
    """
    data = request.get_json(silent=True)

    if not isinstance(data, dict) or "texts" not in data:
        return error_response("No texts provided. Send JSON with 'texts' field.", 400)

    error = validate_texts(data["texts"])
    if error:
        return error_response(error, 400)

    strategy, error = validate_strategy(data.get("strategy"))
    if error:
        return error_response(error, 400)

    try:
        pipeline = get_pipeline()
        result = pipeline.process_batch(data["texts"], strategy=strategy)
        logger.info(f"Batch parsed: {result['successful']}/{result['total']} successful")

        return jsonify(result), 200

    except Exception as e:
        logger.exception("Unhandled error in /parse-batch")
        return error_response(str(e), 500)


@api_bp.route("/batch-progressive/start", methods=["POST"])
def start_progressive_batch():
    """Start a progressive batch processing job.

    Expects:
        - JSON body with 'texts' field (list of strings)
        - Optional 'strategy' field
        - Optional query param: batch_size (default: CARD_PARSER_BATCH_SIZE)

    Returns:
        JSON with job_id for tracking progress
    """
    data = request.get_json(silent=True)

    if not isinstance(data, dict) or "texts" not in data:
        return error_response("No texts provided. Send JSON with 'texts' field.", 400)

    error = validate_texts(data["texts"])
    if error:
        return error_response(error, 400)

    strategy, error = validate_strategy(data.get("strategy"))
    if error:
        return error_response(error, 400)

    try:
        batch_size = int(request.args.get("batch_size", Config.BATCH_SIZE))
    except ValueError:
        return error_response("batch_size must be an integer", 400)
    if batch_size < 1:
        return error_response("batch_size must be at least 1", 400)

    try:
        texts = data["texts"]
        job_id = batch_processor.start_batch_job(texts, strategy=strategy, batch_size=batch_size)

        return jsonify({
            "success": True,
            "job_id": job_id,
            "total_texts": len(texts),
            "batch_size": batch_size,
            "estimated_batches": len(texts) // batch_size + (1 if len(texts) % batch_size else 0)
        }), 200

    except Exception as e:
        logger.error(f"Error starting batch job: {str(e)}")
        return error_response(str(e), 500)


@api_bp.route("/batch-progressive/<job_id>/next", methods=["POST"])
def process_next_batch(job_id: str):
    """Process the next batch for a job.

    Args:
        job_id: Job ID from start_progressive_batch

    Returns:
        JSON with batch results and progress
    """
    try:
        pipeline = get_pipeline()
        result = batch_processor.process_next_batch(job_id, pipeline)

        if result is None:
            job_status = batch_processor.get_job_status(job_id)
            if job_status is None:
                return error_response("Job not found", 404)
            if not job_status["is_complete"]:
                return error_response("A batch for this job is already being processed", 409)

            # final results are delivered once, then the job is dropped
            batch_processor.cleanup_job(job_id)
            logger.info(f"Batch job {job_id} completed and removed")
            return jsonify({
                "success": True,
                "job_id": job_id,
                "status": "completed",
                "is_complete": True,
                "final_results": job_status.get("results", [])
            }), 200

        return jsonify({
            "success": True,
            **result
        }), 200

    except Exception as e:
        logger.error(f"Error processing batch {job_id}: {str(e)}")
        return error_response(str(e), 500)


@api_bp.route("/batch-progressive/<job_id>/status", methods=["GET"])
def get_batch_status(job_id: str):
    """Get status of a batch processing job.

    Args:
        job_id: Job ID

    Returns:
        JSON with current job status
    """
    try:
        job_status = batch_processor.get_job_status(job_id)

        if job_status is None:
            return error_response("Job not found", 404)

        return jsonify({
            "success": True,
            "job_id": job_id,
            "status": job_status["status"],
            "progress": job_status["progress"],
            "processed": job_status["processed"],
            "successful": job_status["successful"],
            "failed": job_status["failed"],
            "total": job_status["total_texts"],
            "current_batch": job_status["current_batch"],
            "total_batches": job_status["total_batches"],
            "is_complete": job_status["is_complete"]
        }), 200

    except Exception as e:
        logger.error(f"Error getting batch status {job_id}: {str(e)}")
        return error_response(str(e), 500)


# Error handlers
@api_bp.errorhandler(400)
def bad_request(error):
    """Handle bad request errors."""
    return error_response("Bad request", 400)


@api_bp.errorhandler(404)
def not_found(error):
    """Handle not found errors."""
    return error_response("Endpoint not found", 404)


@api_bp.errorhandler(500)
def internal_error(error):
    """Handle internal server errors."""
    logger.error(f"Internal server error: {str(error)}")
    return error_response("Internal server error", 500)
