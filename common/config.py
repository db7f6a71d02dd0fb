from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _default_env_file() -> str:
    # .env en la raíz del repo; las variables reales del entorno tienen prioridad.
    repo_root = Path(__file__).resolve().parents[1]
    return str(repo_root / ".env")


@dataclass(frozen=True)
class Settings:
    beehive_url: str
    beekeeper_url: str

    poll_interval_seconds: float
    http_timeout_seconds: float

    # Umbrales de "última vez reportado" (ms)
    elapsed_fail_ms: float
    elapsed_warning_ms: float

    sparkline_start: str
    node_status_range: str

    rollup_start: str
    rollup_time: str
    rollup_metric: str

    project: Optional[str]
    log_level: str


def get_settings() -> Settings:
    env_file = os.getenv("FLEET_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    beehive_url = os.getenv("BEEHIVE_URL", "https://data.sagecontinuum.org/api/v1")
    beekeeper_url = os.getenv("BEEKEEPER_URL", "https://api.sagecontinuum.org")

    # Sin trailing slash en los endpoints.
    beehive_url = beehive_url.rstrip("/")
    beekeeper_url = beekeeper_url.rstrip("/")

    return Settings(
        beehive_url=beehive_url,
        beekeeper_url=beekeeper_url,
        poll_interval_seconds=float(os.getenv("POLL_INTERVAL_SECONDS", "5")),
        http_timeout_seconds=float(os.getenv("HTTP_TIMEOUT_SECONDS", "30")),
        elapsed_fail_ms=float(os.getenv("ELAPSED_FAIL_MS", "240000")),
        elapsed_warning_ms=float(os.getenv("ELAPSED_WARNING_MS", "65000")),
        sparkline_start=os.getenv("SPARKLINE_START", "-12h"),
        node_status_range=os.getenv("NODE_STATUS_RANGE", "-4d"),
        rollup_start=os.getenv("ROLLUP_START", "-7d"),
        rollup_time=os.getenv("ROLLUP_TIME", "hourly"),
        rollup_metric=os.getenv("ROLLUP_METRIC", "sys.plugin.records"),
        project=os.getenv("FLEET_PROJECT") or None,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )
