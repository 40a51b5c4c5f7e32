"""
Logging utilities with redaction.

Transcripts are free speech and sometimes contain contact details
("text me at 555 123 4567"). This module provides logging setup with:
- Configurable log levels and output destinations
- Log rotation for file handlers
- Masking of e-mail addresses and phone numbers
"""

import logging
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


EMAIL_PATTERN = re.compile(r'([A-Za-z0-9._%+-])[A-Za-z0-9._%+-]*@([A-Za-z0-9.-]+\.[A-Za-z]{2,})')
PHONE_PATTERN = re.compile(r'(?<!\d)(?:\+?\d[\s.-]?)?(?:\(?\d{3}\)?[\s.-]?)\d{3}[\s.-]?\d{4}(?!\d)')


def mask_email(email: str) -> str:
    """
    Mask email address for safe logging.

    Args:
        email: Email address to mask

    Returns:
        Masked email (e.g., "u***@example.com")

    Examples:
        >>> mask_email("user@example.com")
        'u***@example.com'
        >>> mask_email("invalid")
        '***'
    """
    if not email or "@" not in email:
        return "***"

    local, domain = email.split("@", 1)
    masked_local = local[0] + "***" if len(local) > 0 else "***"
    return f"{masked_local}@{domain}"


def mask_phone(text: str) -> str:
    """
    Replace phone-number-like digit runs with a placeholder.

    Examples:
        >>> mask_phone("call 555-123-4567 later")
        'call ***-***-**** later'
    """
    return PHONE_PATTERN.sub("***-***-****", text)


def redact(text: str) -> str:
    """Mask e-mail addresses and phone numbers in free text."""
    text = EMAIL_PATTERN.sub(r'\1***@\2', text)
    return mask_phone(text)


class SensitiveDataFilter(logging.Filter):
    """
    Logging filter that masks contact details in log messages.

    Arguments are merged into the message first so values passed with
    %-style formatting are masked too.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """
        Filter and mask sensitive data in log record.

        Args:
            record: Log record to filter

        Returns:
            Always True (allows all records through after masking)
        """
        if record.args:
            record.msg = record.getMessage()
            record.args = None

        record.msg = redact(str(record.msg))

        return True


def setup_logger(
    name: str = "studio_voice",
    level: int = logging.INFO,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Set up and configure a logger instance.

    Args:
        name: Logger name (default: "studio_voice")
        level: Logging level (default: logging.INFO)
        log_file: Optional path to log file for file output

    Returns:
        Configured logger instance

    Examples:
        >>> logger = setup_logger()
        >>> logger.info("Voice session started")

        >>> logger = setup_logger(
        ...     name="studio_voice",
        ...     level=logging.DEBUG,
        ...     log_file="output/voice_logs/voice.log"
        ... )
    """
    logger = logging.getLogger(name)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    logger.setLevel(level)

    formatter = logging.Formatter(
        fmt='%(asctime)s [%(levelname)s] %(name)s:%(funcName)s:%(lineno)d %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    redaction = SensitiveDataFilter()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.addFilter(redaction)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        file_handler.addFilter(redaction)
        logger.addHandler(file_handler)

    logger.addFilter(redaction)

    return logger
