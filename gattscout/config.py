from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .env_loader import env_float, env_int, env_str

SCANNING_MODES = ("active", "passive")


@dataclass
class DiscoveryConfig:
    max_concurrent: int = 4
    call_timeout_sec: float = 20.0
    connect_timeout_sec: float = 15.0
    scanning_mode: str = "active"
    adapter: Optional[str] = None
    duration_sec: float = 0.0
    log_file: Optional[Path] = None

    def __post_init__(self) -> None:
        if self.max_concurrent < 1:
            raise ValueError(f"max_concurrent must be at least 1, got {self.max_concurrent}")
        if self.call_timeout_sec <= 0:
            raise ValueError(f"call_timeout_sec must be positive, got {self.call_timeout_sec}")
        if self.connect_timeout_sec <= 0:
            raise ValueError(f"connect_timeout_sec must be positive, got {self.connect_timeout_sec}")
        if self.scanning_mode not in SCANNING_MODES:
            raise ValueError(f"scanning_mode must be one of {SCANNING_MODES}, got {self.scanning_mode!r}")
        if self.duration_sec < 0:
            raise ValueError(f"duration_sec cannot be negative, got {self.duration_sec}")

    @classmethod
    def from_env(cls) -> "DiscoveryConfig":
        log_file = env_str("GATTSCOUT_LOG_FILE")
        return cls(
            max_concurrent=env_int("GATTSCOUT_MAX_CONCURRENT", cls.max_concurrent),
            call_timeout_sec=env_float("GATTSCOUT_CALL_TIMEOUT", cls.call_timeout_sec),
            connect_timeout_sec=env_float("GATTSCOUT_CONNECT_TIMEOUT", cls.connect_timeout_sec),
            scanning_mode=env_str("GATTSCOUT_SCANNING_MODE", cls.scanning_mode),
            adapter=env_str("GATTSCOUT_ADAPTER"),
            duration_sec=env_float("GATTSCOUT_DURATION", cls.duration_sec),
            log_file=Path(log_file) if log_file else None,
        )
