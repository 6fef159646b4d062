from __future__ import annotations

import logging

from pgvms.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def setup_logging(settings: Settings) -> None:
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    # Streamlit re-executes scripts on every interaction; install our handler once.
    for h in root.handlers:
        if getattr(h, "_pgvms", False):
            return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    handler._pgvms = True  # type: ignore[attr-defined]
    root.addHandler(handler)
