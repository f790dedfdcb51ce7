# =============================================================================
# DDP Client -- Logging
# =============================================================================

from __future__ import annotations

import logging

logger = logging.getLogger("ddp_client")

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(debug: bool = False) -> None:
    """Attach a stream handler to the package logger.

    Frame traffic (``[receive]`` / ``[sending]``) is logged at DEBUG, so
    *debug* controls whether it shows up.
    """
    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    logger.propagate = False
