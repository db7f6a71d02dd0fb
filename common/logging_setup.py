"""Configuración de logging compartida por la API y los jobs."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()],
    )
    # httpx loguea cada request en INFO; demasiado ruido a 5s por tick.
    logging.getLogger("httpx").setLevel(logging.WARNING)
