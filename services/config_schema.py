from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


# ---------------------------------------------------------------------------
# Reusable coercion: "123, 456,,789" → ["123", "456", "789"]
# ---------------------------------------------------------------------------

def _split_ids(v: object) -> object:
    if isinstance(v, str):
        return [s.strip() for s in v.split(",") if s.strip()]
    if isinstance(v, (list, tuple)):
        return [str(s).strip() for s in v if str(s).strip()]
    return v


def _coerce_id(v: object) -> object:
    # Snowflakes may arrive as ints from JSON/YAML/TOML files
    if isinstance(v, int) and not isinstance(v, bool):
        return str(v)
    if isinstance(v, str):
        return v.strip()
    return v


def _upper(v: object) -> object:
    return v.strip().upper() if isinstance(v, str) else v


IdList = Annotated[list[str], BeforeValidator(_split_ids)]
Id = Annotated[str, BeforeValidator(_coerce_id)]
LogLevel = Annotated[
    Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], BeforeValidator(_upper)
]


# ---------------------------------------------------------------------------
# Environment variable → field name
# ---------------------------------------------------------------------------

ENV_KEYS: dict[str, str] = {
    "DISCORD_TOKEN":    "discord_token",
    "SOURCE_CHANNELS":  "source_channels",
    "TARGET_CHANNEL":   "target_channel",
    "MAX_UPLOAD_BYTES": "max_upload_bytes",
    "UPLOAD_DELAY_MS":  "upload_delay_ms",
    "PORT":             "health_port",
    "LOG_LEVEL":        "log_level",
}


# ---------------------------------------------------------------------------
# Top-level application config
# ---------------------------------------------------------------------------

class MirrorConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    discord_token:    str = Field(min_length=1)
    source_channels:  IdList = Field(default_factory=list)
    target_channel:   Id = Field(min_length=1)
    max_upload_bytes: int = Field(default=8 * 1024 * 1024, gt=0)
    upload_delay_ms:  int = Field(default=800, ge=0)
    health_port:      int = Field(default=3000, ge=0, le=65535)
    log_level:        LogLevel = "INFO"
