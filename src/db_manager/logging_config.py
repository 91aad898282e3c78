"""
Logging configuration for db-manager.

User-facing progress goes through a rich Console; the logging module carries
diagnostics (rollback failures, readiness probes, Docker calls) to stderr.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(verbose: bool = False, log_level: str | None = None) -> logging.Logger:
    """
    Set up console logging for db-manager operations.

    Args:
        verbose: Enable debug output
        log_level: Override log level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured package logger
    """
    if log_level:
        level = getattr(logging, log_level.upper(), logging.WARNING)
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=verbose,
        rich_tracebacks=verbose,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    # The Docker SDK and urllib3 are chatty at DEBUG
    for noisy in ("docker", "urllib3"):
        logging.getLogger(noisy).setLevel(max(level, logging.INFO))

    return logging.getLogger("db_manager")
