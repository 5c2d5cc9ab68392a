"""
Configuration management for the Business Card Text Parser API.

Handles environment variables, extraction settings and scoring overrides.
"""

import os
import logging
from dataclasses import fields
from typing import Optional
from dotenv import load_dotenv

from cardextract.patterns import DEFAULT_WEIGHTS, ScoringWeights

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

WEIGHT_ENV_PREFIX = "CARD_PARSER_WEIGHT_"


class Config:
    """Application configuration class.

    Attributes:
        DEBUG: Enable debug mode
        TESTING: Enable testing mode
        SECRET_KEY: Flask secret key
        EXTRACTION_STRATEGY: Default strategy (two_pass or candidate_scoring)
        DEFAULT_COUNTRY_CODE: Country code for E.164 phone normalization
        MAX_TEXT_LENGTH: Longest accepted OCR text, in characters
        BATCH_SIZE: Texts per progressive batch
    """

    # Flask Settings
    DEBUG: bool = os.getenv("CARD_PARSER_DEBUG", "False").lower() == "true"
    TESTING: bool = os.getenv("CARD_PARSER_TESTING", "False").lower() == "true"
    SECRET_KEY: str = os.getenv("CARD_PARSER_SECRET_KEY", "dev-secret-key-change-in-production")

    # Extraction Settings
    EXTRACTION_STRATEGY: str = os.getenv("CARD_PARSER_EXTRACTION_STRATEGY", "two_pass")
    DEFAULT_COUNTRY_CODE: str = os.getenv("CARD_PARSER_DEFAULT_COUNTRY_CODE", "+60")
    MAX_TEXT_LENGTH: int = int(os.getenv("CARD_PARSER_MAX_TEXT_LENGTH", "10000"))

    # Batch processing
    BATCH_SIZE: int = int(os.getenv("CARD_PARSER_BATCH_SIZE", "20"))
    MAX_BATCH_TEXTS: int = int(os.getenv("CARD_PARSER_MAX_BATCH_TEXTS", "500"))
    PARALLEL_PROCESSING: bool = os.getenv("CARD_PARSER_PARALLEL_PROCESSING", "False").lower() == "true"
    PARALLEL_WORKERS: int = int(os.getenv("CARD_PARSER_PARALLEL_WORKERS", "2"))

    # Logging
    LOG_LEVEL: str = os.getenv("CARD_PARSER_LOG_LEVEL", "INFO")
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @classmethod
    def init_app(cls, app) -> None:
        """Initialize Flask app with configuration.

        Args:
            app: Flask application instance
        """
        app.config.from_object(cls)

        # Configure logging
        logging.basicConfig(
            level=getattr(logging, cls.LOG_LEVEL.upper()),
            format=cls.LOG_FORMAT
        )

        logger.info("Configuration initialized successfully")

    @classmethod
    def scoring_weights(cls) -> ScoringWeights:
        """Build scoring weights, applying CARD_PARSER_WEIGHT_<FIELD> overrides.

        Returns:
            ScoringWeights instance

        Raises:
            ValueError: If an override is not a number or falls outside [0, 1]
        """
        overrides = {}
        for f in fields(ScoringWeights):
            raw = os.getenv(WEIGHT_ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            try:
                overrides[f.name] = float(raw)
            except ValueError:
                raise ValueError(f"{WEIGHT_ENV_PREFIX}{f.name.upper()} must be a number, got {raw!r}")

        if not overrides:
            return DEFAULT_WEIGHTS
        logger.info(f"Scoring weight overrides: {overrides}")
        return ScoringWeights(**overrides)

    @classmethod
    def get_extraction_settings(cls) -> dict:
        """Get the extraction settings exposed on the status endpoint.

        Returns:
            Dictionary with the active extraction settings
        """
        return {
            "strategy": cls.EXTRACTION_STRATEGY,
            "default_country_code": cls.DEFAULT_COUNTRY_CODE,
            "max_text_length": cls.MAX_TEXT_LENGTH,
            "batch_size": cls.BATCH_SIZE
        }


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    LOG_LEVEL = "DEBUG"


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    LOG_LEVEL = "INFO"


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    DEBUG = True
    LOG_LEVEL = "DEBUG"


# Configuration mapping
config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig
}


def get_config(config_name: Optional[str] = None) -> Config:
    """Get configuration class by name.

    Args:
        config_name: Configuration name (development, production, testing)

    Returns:
        Configuration class
    """
    if config_name is None:
        config_name = os.getenv("CARD_PARSER_ENV", "development")
    return config_by_name.get(config_name, DevelopmentConfig)
