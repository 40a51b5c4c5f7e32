"""
Configuration management with environment variables.

This module provides centralized configuration for the voice command
subsystem with validation and type safety.
"""

import os
from pathlib import Path
from dotenv import load_dotenv


class Config:
    """
    Application configuration manager.

    Loads configuration from environment variables (and a .env file when
    present) and provides validated access to configuration values.

    Attributes:
        confidence_threshold: Minimum confidence for immediate execution
        fuzzy_threshold: Minimum name score before a fragment may bind
        ambiguity_margin: Minimum gap between the top two name scores
        pending_ttl_seconds: Lifetime of a pending command
        store_failure_threshold: Consecutive store failures before the
            circuit breaker opens
        store_retry_seconds: Wait before an open breaker retries
        output_dir: Output directory for logs and reports
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Examples:
        >>> config = Config()
        >>> if config.validate():
        ...     print(f"Threshold: {config.confidence_threshold}")
    """

    def __init__(self):
        """Initialize configuration by loading environment variables."""
        load_dotenv()

        # Clarification gating
        self._confidence_threshold = float(os.getenv("VOICE_CONFIDENCE_THRESHOLD", "0.75"))
        self._fuzzy_threshold = float(os.getenv("VOICE_FUZZY_THRESHOLD", "0.6"))
        self._ambiguity_margin = float(os.getenv("VOICE_AMBIGUITY_MARGIN", "0.1"))
        self._pending_ttl_seconds = int(os.getenv("VOICE_PENDING_TTL_SECONDS", "600"))

        # Store resilience
        self._store_failure_threshold = int(os.getenv("VOICE_STORE_FAILURE_THRESHOLD", "3"))
        self._store_retry_seconds = int(os.getenv("VOICE_STORE_RETRY_SECONDS", "30"))

        # Output settings
        self._output_dir = Path(os.getenv("OUTPUT_DIR", "output"))
        self._log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def confidence_threshold(self) -> float:
        """Get the confidence needed to execute without confirmation."""
        return self._confidence_threshold

    @property
    def fuzzy_threshold(self) -> float:
        """Get the minimum name match score."""
        return self._fuzzy_threshold

    @property
    def ambiguity_margin(self) -> float:
        """Get the minimum gap between the best and second-best match."""
        return self._ambiguity_margin

    @property
    def pending_ttl_seconds(self) -> int:
        """Get pending command lifetime in seconds."""
        return self._pending_ttl_seconds

    @property
    def store_failure_threshold(self) -> int:
        return self._store_failure_threshold

    @property
    def store_retry_seconds(self) -> int:
        return self._store_retry_seconds

    @property
    def output_dir(self) -> Path:
        """Get output directory path."""
        return self._output_dir

    @property
    def log_level(self) -> str:
        """Get logging level."""
        return self._log_level

    def validate(self) -> bool:
        """
        Validate configuration values.

        Returns:
            True if all configuration is valid

        Raises:
            ValueError: If validation fails
        """
        errors = []

        for name, value in (
            ("VOICE_CONFIDENCE_THRESHOLD", self._confidence_threshold),
            ("VOICE_FUZZY_THRESHOLD", self._fuzzy_threshold),
            ("VOICE_AMBIGUITY_MARGIN", self._ambiguity_margin),
        ):
            if not 0.0 <= value <= 1.0:
                errors.append(f"{name} must be between 0 and 1, got {value}")

        if self._pending_ttl_seconds <= 0:
            errors.append("VOICE_PENDING_TTL_SECONDS must be positive")

        if self._store_failure_threshold <= 0:
            errors.append("VOICE_STORE_FAILURE_THRESHOLD must be positive")

        if self._store_retry_seconds < 0:
            errors.append("VOICE_STORE_RETRY_SECONDS must not be negative")

        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self._log_level not in valid_levels:
            errors.append(
                f"LOG_LEVEL must be one of: {', '.join(valid_levels)}"
            )

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ValueError(error_msg)

        return True

    def create_output_directories(self):
        """Create output directories if they don't exist."""
        directories = [
            self.output_dir / "voice_logs",
            self.output_dir / "voice_reports",
        ]

        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)


# Singleton instance
config = Config()
