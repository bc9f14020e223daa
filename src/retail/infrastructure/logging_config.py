"""Logging setup, applied once by the composition root."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Attach one stream handler to the ``retail`` logger tree.

    Calling it again only changes the level.
    """
    root = logging.getLogger("retail")
    root.setLevel(level)
    if not any(getattr(h, "_retail", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._retail = True  # type: ignore[attr-defined]
        root.addHandler(handler)
