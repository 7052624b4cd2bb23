"""
Process-level settings and logging setup.

All knobs come from the environment; nothing here is mutated after
import, so signers stay re-entrant.

    L2SIGNER_PEDERSEN_PARAMS    path to an alternative STARK table
    L2SIGNER_MAX_SIGN_ATTEMPTS  k-rejection cap (default 32)
    L2SIGNER_LOG_LEVEL          level for the ``l2signer`` logger
"""

from __future__ import annotations

import logging
import os
from typing import Optional, Union

PARAMS_ENV = "L2SIGNER_PEDERSEN_PARAMS"
MAX_ATTEMPTS_ENV = "L2SIGNER_MAX_SIGN_ATTEMPTS"
LOG_LEVEL_ENV = "L2SIGNER_LOG_LEVEL"

DEFAULT_MAX_SIGN_ATTEMPTS = 32
DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

LOGGER_NAMESPACE = "l2signer"


def max_sign_attempts() -> int:
    raw = os.environ.get(MAX_ATTEMPTS_ENV)
    if raw is None or raw.strip() == "":
        return DEFAULT_MAX_SIGN_ATTEMPTS
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{MAX_ATTEMPTS_ENV} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ValueError(f"{MAX_ATTEMPTS_ENV} must be >= 1, got {value}")
    return value


def configure_logging(level: Optional[Union[int, str]] = None) -> logging.Logger:
    """
    Attach a stream handler to the ``l2signer`` logger namespace.

    *level* defaults to ``$L2SIGNER_LOG_LEVEL`` and then ``WARNING``.
    Calling this twice does not duplicate the handler.
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "WARNING")
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"unknown log level {level!r}")
        level = resolved

    logger = logging.getLogger(LOGGER_NAMESPACE)
    logger.setLevel(level)
    if not any(getattr(h, "_l2signer", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        handler._l2signer = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
