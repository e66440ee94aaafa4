from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from kvdict.dict.listen import DEFAULT_LISTEN, ListenAddress

DEFAULT_REDIS_URL = "redis://localhost:6379/0"


class ServiceConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    listen: str = DEFAULT_LISTEN
    redis_url: str = DEFAULT_REDIS_URL
    debug: bool = False

    scan_count: int = Field(ge=1, le=1_000_000, default=100)
    max_scan_rounds: int = Field(ge=1, default=100_000)
    backend_timeout_s: Optional[float] = Field(gt=0.0, default=None)

    @field_validator("listen")
    @classmethod
    def _listen_format(cls, v: str) -> str:
        ListenAddress.parse(v)
        return v

    @field_validator("redis_url")
    @classmethod
    def _redis_scheme(cls, v: str) -> str:
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError(f"bad redis URL scheme: {v}")
        return v
