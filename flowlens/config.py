from __future__ import annotations
import os
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .constants import DEFAULT_CACHE_SIZE, DEFAULT_MAX_DEPTH, DEFAULT_SUMMARY_MAX
from .errors import ConfigError
from .parser import DEFAULT_MAX_ASI_RETRIES

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")

# environment variable -> Settings field
ENV_VARS = {
    "FLOWLENS_SUMMARY_MAX": "summary_max",
    "FLOWLENS_MAX_DEPTH": "max_depth",
    "FLOWLENS_LOCALE": "locale",
    "FLOWLENS_LOG_LEVEL": "log_level",
    "FLOWLENS_CACHE_SIZE": "cache_size",
    "FLOWLENS_MAX_ASI_RETRIES": "max_asi_retries",
}


class Settings(BaseModel):
    """Tunables for rendering, parsing and logging."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    summary_max: int = Field(default=DEFAULT_SUMMARY_MAX, ge=1, description="One-line summary max length")
    max_depth: int = Field(default=DEFAULT_MAX_DEPTH, ge=1, description="Deepest nesting level rendered")
    locale: str = "en"
    log_level: str = "WARNING"
    cache_size: int = Field(default=DEFAULT_CACHE_SIZE, ge=0, description="Parsed programs kept in memory")
    max_asi_retries: int = Field(default=DEFAULT_MAX_ASI_RETRIES, ge=0)

    @field_validator("locale", mode="before")
    @classmethod
    def normalize_locale(cls, v: Any) -> str:
        """Accept `ja_JP.UTF-8` style values and keep the language part."""
        text = str(v).strip()
        if not text:
            raise ValueError("locale must not be empty")
        return text.split(".")[0].split("_")[0].split("-")[0].lower()

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> str:
        level = str(v).strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"unknown log level '{v}'")
        return level

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> "Settings":
        """Build settings from FLOWLENS_* variables; keyword overrides win."""
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for var, name in ENV_VARS.items():
            raw = env.get(var)
            if raw is not None and raw.strip() != "":
                values[name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e
