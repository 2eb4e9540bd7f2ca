"""
Vesting Vault - Structured Logging Configuration

Configures structured JSON logging for the vault:
- JSON format for easy parsing and aggregation
- Log rotation to prevent disk space issues
- Per-category default levels for the vault's modules

Usage:
    from vesting_vault.core.logging_config import setup_logging

    logger = setup_logging(
        name="vesting_vault",
        log_file="/var/log/vesting_vault/vault.json",
        level="INFO"
    )

    logger.info("Claim settled", extra={"event": "claim.settled", "amount": 50})
"""

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

# Default verbosity per module category
LOG_LEVELS: Dict[str, str] = {
    "vault_state": "INFO",
    "account_store": "INFO",
    "claim_processor": "INFO",
    "schedule": "INFO",
    # Ledger transfers log at DEBUG; keep them quiet by default
    "token_custody": "WARNING",
    "persistence": "WARNING",
}

DEFAULT_LOG_LEVEL = "INFO"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter that adds timestamp, environment, service and source
    location to every record.
    """

    def __init__(
        self,
        fmt: str = "%(timestamp)s %(level)s %(name)s %(message)s",
        timestamp: bool = True,
        environment: Optional[str] = None,
        service_name: str = "vesting_vault",
    ):
        super().__init__(fmt=fmt)
        self.timestamp = timestamp
        self.environment = environment or "production"
        self.service_name = service_name

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        if self.timestamp and not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()

        log_record["environment"] = self.environment
        log_record["service"] = self.service_name

        if not log_record.get("level"):
            log_record["level"] = record.levelname.lower()

        log_record["source"] = {
            "function": record.funcName,
            "module": record.module,
            "line": record.lineno,
        }


def get_log_level(module_name: str, override: Optional[str] = None) -> str:
    """
    Level for a module, from an explicit override or its category.

    Args:
        module_name: Full module path (e.g., 'vesting_vault.core.claim_processor')
        override: Optional override level
    """
    if override:
        return override.upper()

    for part in reversed(module_name.split(".")):
        if part in LOG_LEVELS:
            return LOG_LEVELS[part]

    return DEFAULT_LOG_LEVEL


def configure_module_logging(module_name: str, override_level: Optional[str] = None) -> logging.Logger:
    """Return the module's logger with its category level applied."""
    logger = logging.getLogger(module_name)
    level_str = get_log_level(module_name, override_level)
    logger.setLevel(getattr(logging, level_str, logging.INFO))
    return logger


def setup_logging(
    name: str = "vesting_vault",
    log_file: Optional[str] = None,
    level: str = "INFO",
    environment: str = "production",
    json_format: bool = True,
    enable_console: bool = True,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """
    Setup logging for the vault package.

    Args:
        name: Root logger name for the package
        log_file: Path to a rotating log file (optional)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        environment: Environment identifier (dev, staging, prod)
        json_format: Emit JSON records instead of plain text
        enable_console: Whether to log to stderr
        max_bytes: Maximum log file size before rotation
        backup_count: Number of rotated files to keep

    Returns:
        Configured logger instance
    """
    level_value = getattr(logging, level.upper(), None)
    if not isinstance(level_value, int):
        raise ValueError(f"Unknown log level: {level}")

    logger = logging.getLogger(name)
    logger.setLevel(level_value)

    # Remove existing handlers to avoid duplicates
    logger.handlers = []

    if json_format:
        formatter: logging.Formatter = CustomJsonFormatter(
            environment=environment,
            service_name=name.split(".")[0],
        )
    else:
        formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level_value)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                filename=log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
            )
            file_handler.setLevel(level_value)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            logger.warning("Could not create file handler for %s: %s", log_file, e)

    # DEBUG opens every category; otherwise categories never log below their default
    for category, category_level in LOG_LEVELS.items():
        child = logging.getLogger(f"{name}.core.{category}")
        if level_value <= logging.DEBUG:
            child.setLevel(logging.NOTSET)
        else:
            child.setLevel(max(level_value, getattr(logging, category_level)))

    return logger
