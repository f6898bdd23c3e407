# spotbar/logging_config.py
# Diagnostics go to stderr. stdout belongs to the bar, which treats every
# line printed there as the new module text.

import logging
import os
import sys

HANDLER_NAME = "spotbar-stderr"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def resolve_log_level(verbose: bool = False, environ=None) -> int:
    """-v wins; otherwise $SPOTBAR_LOG_LEVEL, defaulting to WARNING."""
    if verbose:
        return logging.DEBUG
    env = os.environ if environ is None else environ
    name = (env.get("SPOTBAR_LOG_LEVEL") or "").strip().upper()
    return _LEVELS.get(name, logging.WARNING)


def configure_logging(level: int = logging.WARNING) -> logging.Logger:
    """
    Set the root level and attach our stderr handler once. Calling it again
    only changes the level.
    """
    logger = logging.getLogger()
    logger.setLevel(level)

    if not any(h.get_name() == HANDLER_NAME for h in logger.handlers):
        console = logging.StreamHandler(stream=sys.stderr)
        console.set_name(HANDLER_NAME)
        console.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s", "%H:%M:%S")
        )
        logger.addHandler(console)

    return logger
