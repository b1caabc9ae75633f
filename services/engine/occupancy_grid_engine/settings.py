from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

FETCH_STRATEGIES = ("locked", "unlocked")


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    data_root: Path
    cell_resolution: float = 0.05
    publish_period_sec: float = 1.0
    fetch_strategy: str = "locked"
    require_subscribers: bool = False
    autostart_scheduler: bool = True
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.cell_resolution <= 0:
            raise ValueError("cell_resolution must be positive")
        if self.publish_period_sec <= 0:
            raise ValueError("publish_period_sec must be positive")
        if self.fetch_strategy not in FETCH_STRATEGIES:
            raise ValueError(f"fetch_strategy must be one of: {', '.join(FETCH_STRATEGIES)}")


def load_settings() -> Settings:
    env_root = os.environ.get("OGE_DATA_ROOT")
    if env_root:
        root = Path(env_root).expanduser().resolve()
    else:
        root = Path.home() / ".occupancy_grid_engine"
    return Settings(
        data_root=root,
        cell_resolution=float(os.environ.get("OGE_RESOLUTION", "0.05")),
        publish_period_sec=float(os.environ.get("OGE_PUBLISH_PERIOD_SEC", "1.0")),
        fetch_strategy=os.environ.get("OGE_FETCH_STRATEGY", "locked"),
        require_subscribers=_env_flag("OGE_REQUIRE_SUBSCRIBERS", False),
        autostart_scheduler=_env_flag("OGE_AUTOSTART_SCHEDULER", True),
        log_level=os.environ.get("OGE_LOG_LEVEL", "INFO").upper(),
    )
