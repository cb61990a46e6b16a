from __future__ import annotations

import logging
import sys

LOGGER_NAME = "opboot"
_FORMAT = "[%(asctime)s] [%(name)s] %(levelname)s - %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

_configured: logging.Logger | None = None


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Configure process logging once and return the operator logger.

    Components receive this logger (or a child of it) explicitly; calling this a
    second time returns the already configured logger untouched.
    """
    global _configured
    if _configured is not None:
        return _configured

    level = logging.DEBUG if verbose else logging.INFO
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATEFMT))

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.addHandler(handler)
    logger.propagate = False

    # uvicorn and the kubernetes client are chatty at INFO.
    for noisy in ("uvicorn", "uvicorn.error", "uvicorn.access", "kubernetes", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger.info(f"Logging initialized (level={logging.getLevelName(level)})")
    _configured = logger
    return logger
