"""Logging setup for RotaTV with file and console output"""

import logging
import logging.handlers
import re
import sys
from pathlib import Path

_SIZE_UNITS = {
    "": 1,
    "B": 1,
    "K": 1024,
    "KB": 1024,
    "M": 1024 ** 2,
    "MB": 1024 ** 2,
    "G": 1024 ** 3,
    "GB": 1024 ** 3,
}


def parse_size(value: str | int) -> int:
    """
    Parse a human size such as ``10MB`` into bytes.

    Raises:
        ValueError: If the value is not a recognised size.
    """
    if isinstance(value, int):
        return value
    match = re.fullmatch(r"\s*(\d+(?:\.\d+)?)\s*([KMG]?B?)\s*", value.upper())
    if not match:
        raise ValueError(f"Invalid size: {value!r}")
    number, unit = match.groups()
    return int(float(number) * _SIZE_UNITS[unit])


def setup_logging(
    log_level: str = "INFO",
    log_file: str | None = "logs/rotatv.log",
    log_to_console: bool = True,
    log_to_file: bool = True,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    log_format: str | None = None,
) -> logging.Logger:
    """
    Set up logging for the RotaTV process.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (absolute or relative)
        log_to_console: Whether to log to stdout
        log_to_file: Whether to log to a rotating file
        max_bytes: Maximum size of log file before rotation
        backup_count: Number of rotated files to keep
        log_format: Custom format for the file handler

    Returns:
        Configured root logger
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    detailed_formatter = logging.Formatter(
        log_format or "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_formatter = logging.Formatter(
        "%(asctime)s - %(levelname)s - %(message)s", datefmt="%H:%M:%S"
    )

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(console_formatter)
        root_logger.addHandler(console_handler)

    log_path = None
    if log_to_file and log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(file_handler)

    root_logger.info("=" * 60)
    root_logger.info(f"RotaTV logging initialized - Level: {log_level}")
    root_logger.info(f"Log file: {log_path if log_path else 'disabled'}")
    root_logger.info(f"Max file size: {max_bytes / (1024 * 1024):.1f} MB, Backups: {backup_count}")
    root_logger.info("=" * 60)

    return root_logger
