"""
Business Card Text Parser API - Flask Application Entry Point.

Turns raw OCR text from business cards into structured contact records.
"""

import logging
import os

from flask import Flask, jsonify
from flask_cors import CORS

from config import Config, get_config
from api.routes import api_bp

logger = logging.getLogger(__name__)


def create_app(config_name: str = None) -> Flask:
    """Application factory for creating Flask app.

    Args:
        config_name: Configuration name (development, production, testing)

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)

    # Load configuration
    config_class = get_config(config_name)
    config_class.init_app(app)

    # Enable CORS
    CORS(app, resources={
        r"/api/*": {
            "origins": "*",
            "methods": ["GET", "POST", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"]
        }
    })

    # Register blueprints
    app.register_blueprint(api_bp)

    # API info endpoint
    @app.route("/api/info")
    def api_info():
        """API information endpoint."""
        return jsonify({
            "name": "Business Card Text Parser API",
            "version": "1.0.0",
            "description": "Extract structured contact data from business card OCR text",
            "endpoints": {
                "health": "/api/health",
                "status": "/api/status",
                "parse_text": "POST /api/parse-text",
                "parse_batch": "POST /api/parse-batch",
                "batch_start": "POST /api/batch-progressive/start",
                "batch_next": "POST /api/batch-progressive/<job_id>/next",
                "batch_status": "GET /api/batch-progressive/<job_id>/status"
            }
        })

    # Global error handlers
    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 errors."""
        return jsonify({
            "success": False,
            "error": "Not found"
        }), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        """Handle wrong HTTP methods."""
        return jsonify({
            "success": False,
            "error": "Method not allowed"
        }), 405

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        logger.error(f"Internal error: {str(error)}")
        return jsonify({
            "success": False,
            "error": "Internal server error"
        }), 500

    logger.info(f"Application created with config: {config_class.__name__}")

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    # Get port from environment or default to 5000
    port = int(os.getenv("PORT", 5000))

    logger.info(f"Starting server on port {port}, debug={Config.DEBUG}")

    app.run(
        host="0.0.0.0",
        port=port,
        debug=app.config["DEBUG"]
    )
