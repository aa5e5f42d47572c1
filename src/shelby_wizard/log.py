"""Logging setup for the ``shelby_wizard`` logger tree.

Log records go to stderr. Private keys are masked in every record handled
here, whatever the message format.
"""

from __future__ import annotations

import logging
import os
import re
import sys

LOG_LEVEL_ENV_VAR = "SHELBY_WIZARD_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

_PRIVATE_KEY_RE = re.compile(r"(ed25519-priv-0x)[0-9A-Fa-f]+")


def redact(text: str) -> str:
    """Mask the hex part of any ``ed25519-priv-0x...`` key in *text*."""
    return _PRIVATE_KEY_RE.sub(r"\1[REDACTED]", text)


class RedactingFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def resolve_level(verbose: bool = False) -> int:
    if verbose:
        return logging.DEBUG
    name = os.environ.get(LOG_LEVEL_ENV_VAR, "WARNING").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Attach a stderr handler to the ``shelby_wizard`` logger.

    Safe to call repeatedly; the previous handler is replaced.
    """
    logger = logging.getLogger("shelby_wizard")
    logger.setLevel(resolve_level(verbose))
    for handler in list(logger.handlers):
        # sys.stderr may have been swapped since an earlier call
        if getattr(handler, "_shelby_wizard", False):
            logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RedactingFilter())
    handler._shelby_wizard = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.propagate = False
    return logger
