"""
Common logging configuration for the tenant service and admin tooling.

This module provides centralized logging configuration using loguru. It
configures console logging and, for long-running services, rotating log files.

Features:
    - Console logging with colorized output
    - File-based logging with automatic rotation and compression
    - Service-specific log files
    - Log level from the LOG_LEVEL setting

Log Files:
    - {service_name}.log: All logs at configured level (default: INFO)
    - {service_name}-error.log: Only ERROR level logs

Log Rotation:
    - Error logs: Rotate at 10 MB, retain 30 days, compress with zip
    - General logs: Rotate at 50 MB, retain 7 days, compress with zip

Security Events:
    Cross-tenant denials are logged at WARNING with a "SECURITY:" prefix and
    tenant deletions at WARNING with an "AUDIT:" prefix, so both can be
    filtered out of the general log.

Example:
    ```python
    from common.logging import setup_logging

    setup_logging("tenant-service")

    from loguru import logger
    logger.info("Tenant service started")
    ```
"""

from pathlib import Path
import sys

from loguru import logger

from common.config import get_settings

_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"


def setup_logging(
    service_name: str | None = None,
    log_to_files: bool = True,
    logs_dir: str | Path = "logs",
) -> None:
    """
    Configure logging for the application using loguru.

    Args:
        service_name: Optional name of the service (e.g., "tenant-service").
            If provided, log files are named accordingly.
        log_to_files: Add the rotating file handlers. The admin CLI passes False
            and logs to the console only.
        logs_dir: Directory for log files, created if missing.

    Side Effects:
        - Removes default loguru handlers
        - Adds new console and file handlers
        - Creates the logs directory if it doesn't exist

    Note:
        - Call this early in application startup
        - Calling it again replaces the previous handlers
    """

    settings = get_settings(service_name)

    logger.remove()

    logger.add(
        sys.stdout,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
        "<level>{message}</level>",
        level=settings.LOG_LEVEL,
        colorize=True,
    )

    if not log_to_files:
        return

    logs_path = Path(logs_dir)
    logs_path.mkdir(parents=True, exist_ok=True)

    log_name = service_name or "app"
    error_name = f"{service_name}-error" if service_name else "error"

    logger.add(
        logs_path / f"{error_name}.log",
        format=_FILE_FORMAT,
        level="ERROR",
        rotation="10 MB",
        retention="30 days",
        compression="zip",
    )

    logger.add(
        logs_path / f"{log_name}.log",
        format=_FILE_FORMAT,
        level=settings.LOG_LEVEL,
        rotation="50 MB",
        retention="7 days",
        compression="zip",
    )
