from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

DEFAULT_DATA_DIR = Path(__file__).resolve().parent / "data"


@dataclass
class EngineConfig:
    seed: int = 1337
    cpu_speed: int = 20
    cpu_name: str = "Garbo Processor"
    max_cpus: int = 4
    trace_distance: int = 10
    trace_sensitivity: int = 5
    trace_speed: int = 1
    log_level: str = "WARNING"
    data_dir: Path = DEFAULT_DATA_DIR

    @property
    def dictionary_path(self) -> Path:
        return self.data_dir / "dictionary.yaml"

    @property
    def companies_path(self) -> Path:
        return self.data_dir / "companies.yaml"


def _positive_int(env: Dict[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    value = int(raw)
    if value <= 0:
        raise ValueError(f"{key} must be a positive integer, got {value}")
    return value


def load_engine_config(env: Optional[Dict[str, str]] = None) -> EngineConfig:
    env = env if env is not None else dict(os.environ)
    data_dir_raw = env.get("DOWNLINK_DATA_DIR")
    return EngineConfig(
        seed=int(env.get("DOWNLINK_SEED", "1337")),
        cpu_speed=_positive_int(env, "DOWNLINK_CPU_SPEED", 20),
        cpu_name=env.get("DOWNLINK_CPU_NAME", "Garbo Processor"),
        max_cpus=_positive_int(env, "DOWNLINK_MAX_CPUS", 4),
        trace_distance=_positive_int(env, "DOWNLINK_TRACE_DISTANCE", 10),
        trace_sensitivity=_positive_int(env, "DOWNLINK_TRACE_SENSITIVITY", 5),
        trace_speed=_positive_int(env, "DOWNLINK_TRACE_SPEED", 1),
        log_level=env.get("DOWNLINK_LOG_LEVEL", "WARNING").upper(),
        data_dir=Path(data_dir_raw) if data_dir_raw else DEFAULT_DATA_DIR,
    )


__all__ = ["EngineConfig", "load_engine_config", "DEFAULT_DATA_DIR"]
