from __future__ import annotations

import json
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from press import settings
from press.errors import ConfigError

LogLevel = Literal["debug", "info", "warn", "error"]


class PressConfig(BaseModel):
    """
    Persisted user configuration.
    Loaded once at startup and passed explicitly to whatever needs it.
    """
    chunk_size: int = Field(default=50, ge=1)
    api_key: Optional[str] = None
    log_level: LogLevel = "info"
    output_directory: str = "./"
    system_prompt: str = "You are a helpful assistant"
    temperature: float = Field(default=0.0, ge=0.0, le=1.0)
    retries: int = Field(default=3, ge=0)
    pipe_output_lines: int = Field(default=10, ge=1)


def _describe(err: ValidationError) -> str:
    parts = []
    for e in err.errors():
        loc = ".".join(str(x) for x in e.get("loc", ())) or "config"
        parts.append(f"{loc}: {e.get('msg')}")
    return "; ".join(parts)


def validate_config(data: dict) -> PressConfig:
    try:
        return PressConfig.model_validate(data)
    except ValidationError as ve:
        raise ConfigError(f"Invalid configuration: {_describe(ve)}") from ve


def load_config(path: str | Path | None = None) -> PressConfig:
    """Read the config file, falling back to defaults when it does not exist."""
    path = Path(path) if path is not None else settings.config_path()
    if not path.exists():
        return PressConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Could not read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object.")
    return validate_config(data)


def save_config(config: PressConfig, path: str | Path | None = None) -> Path:
    path = Path(path) if path is not None else settings.config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config.model_dump(), ensure_ascii=False, indent=2), encoding="utf-8")
    return path


def update_config(config: PressConfig, **changes) -> PressConfig:
    """Return a validated copy with the non-None ``changes`` applied."""
    data = config.model_dump()
    data.update({k: v for k, v in changes.items() if v is not None})
    return validate_config(data)


def resolve_api_key(cli_key: str | None, config: PressConfig) -> str | None:
    """--api-key wins, then PRESS_API_KEY, then the config file."""
    return cli_key or settings.PRESS_API_KEY or config.api_key
