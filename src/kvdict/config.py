from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import ValidationError

from kvdict.config_schema import ServiceConfig
from kvdict.dict.listen import ListenAddress

ENV_PREFIX = "KVDICT_"
_ENV_KEYS = ("listen", "redis_url", "debug", "scan_count", "max_scan_rounds", "backend_timeout_s")


@dataclass(frozen=True)
class Settings:
    listen: ListenAddress
    redis_url: str
    debug: bool
    scan_count: int
    max_scan_rounds: int
    backend_timeout_s: Optional[float]


def _load_yaml(path: Optional[Path]) -> Dict[str, Any]:
    """Read the optional YAML config.

    Order:
    1) Explicit path arg (must exist)
    2) KVDICT_CONFIG env var (must exist if set)
    3) nothing -> {}
    """
    if path is None:
        env_path = os.getenv(ENV_PREFIX + "CONFIG", "").strip()
        if not env_path:
            return {}
        path = Path(env_path)
    if not path.exists():
        raise ValueError(f"Config file not found: {path}")
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Invalid config YAML: {path}: expected a mapping")
    return raw


def _from_env() -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key in _ENV_KEYS:
        v = os.getenv(ENV_PREFIX + key.upper(), "").strip()
        if v:
            out[key] = v
    return out


def load_settings(config_path: Optional[Path] = None, **overrides: Any) -> Settings:
    """Merge defaults < YAML < .env/environment < explicit overrides.

    `overrides` with a None value are ignored (unset CLI flags).
    """
    load_dotenv(find_dotenv(usecwd=True), override=False)

    merged: Dict[str, Any] = {}
    merged.update(_load_yaml(config_path))
    merged.update(_from_env())
    merged.update({k: v for k, v in overrides.items() if v is not None})

    try:
        cfg = ServiceConfig.model_validate(merged)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration\n{e}") from e

    return Settings(
        listen=ListenAddress.parse(cfg.listen),
        redis_url=cfg.redis_url,
        debug=cfg.debug,
        scan_count=cfg.scan_count,
        max_scan_rounds=cfg.max_scan_rounds,
        backend_timeout_s=cfg.backend_timeout_s,
    )
