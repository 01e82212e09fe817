"""Logging configuration for phabulous."""

import logging
import sys
from datetime import UTC, datetime
from pathlib import Path

LOGGER_NAME = "phabulous"

# Third-party loggers that show raw HTTP traffic; attached only at -vvv
WIRE_LOGGERS = ("httpx", "httpcore", "slack_sdk")


def setup_logging(verbose: int = 0, log_file: Path | None = None) -> None:
    """Configure logging based on verbosity level and optional file output.

    Args:
        verbose: Verbosity level (0=off, 1=INFO, 2=DEBUG, 3+=DEBUG with
            HTTP wire logs from httpx and slack_sdk)
        log_file: Optional path to write logs to file
    """
    if verbose == 0 and log_file is None:
        return

    level = logging.DEBUG if verbose >= 2 else logging.INFO
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers: list[logging.Handler] = []
    if verbose > 0:
        handlers.append(logging.StreamHandler(sys.stderr))
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    names = [LOGGER_NAME]
    if verbose >= 3:
        names.extend(WIRE_LOGGERS)

    for name in names:
        target = logging.getLogger(name)
        target.setLevel(level)
        for handler in handlers:
            handler.setLevel(level)
            handler.setFormatter(formatter)
            target.addHandler(handler)

    logger = logging.getLogger(LOGGER_NAME)
    timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S UTC")
    logger.info(
        "phabulous starting | %s | level=%s%s",
        timestamp,
        logging.getLevelName(level),
        " | wire logs on" if verbose >= 3 else "",
    )
