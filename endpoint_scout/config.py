from __future__ import annotations

import os
import stat
import tomllib
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

DEFAULT_DATA_DIR = Path.home() / ".endpoint_scout"
DEFAULT_CONFIG_PATH = DEFAULT_DATA_DIR / "config.toml"


class ScoutConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    port_min: int = Field(default=1024, ge=0, le=65535)
    port_max: int = Field(default=65535, ge=0, le=65535)
    sample_seconds: float = Field(default=10.0, gt=0, le=600)
    tick_seconds: float = Field(default=0.5, gt=0, le=60)
    ping_count: int = Field(default=4, ge=1, le=100)
    ping_timeout_seconds: float = Field(default=2.0, gt=0, le=30)
    on_ambiguous: Literal["first", "fail"] = "first"

    @model_validator(mode="after")
    def validate_port_range(self) -> ScoutConfig:
        if self.port_min > self.port_max:
            raise ValueError(f"port_min ({self.port_min}) must not exceed port_max ({self.port_max})")
        return self


def _env_overrides() -> dict[str, Any]:
    mapping: dict[str, tuple[str, str]] = {
        "ENDPOINT_SCOUT_PORT_MIN": ("port_min", "int"),
        "ENDPOINT_SCOUT_PORT_MAX": ("port_max", "int"),
        "ENDPOINT_SCOUT_SAMPLE_SECONDS": ("sample_seconds", "float"),
        "ENDPOINT_SCOUT_TICK_SECONDS": ("tick_seconds", "float"),
        "ENDPOINT_SCOUT_PING_COUNT": ("ping_count", "int"),
        "ENDPOINT_SCOUT_PING_TIMEOUT": ("ping_timeout_seconds", "float"),
        "ENDPOINT_SCOUT_ON_AMBIGUOUS": ("on_ambiguous", "str"),
    }
    out: dict[str, Any] = {}
    for env_name, (field_name, kind) in mapping.items():
        raw = os.getenv(env_name)
        if raw is None:
            continue
        try:
            if kind == "int":
                out[field_name] = int(raw)
            elif kind == "float":
                out[field_name] = float(raw)
            else:
                out[field_name] = raw.strip().lower()
        except ValueError as exc:
            raise ValueError(f"invalid value for {env_name}: {raw!r}") from exc
    return out


def secure_path(path: Path, mode: int) -> None:
    if os.name == "nt":
        return
    path.chmod(mode)
    actual = stat.S_IMODE(path.stat().st_mode)
    if actual != mode:
        raise PermissionError(f"failed to enforce permissions {oct(mode)} on {path}")


def default_config_toml() -> str:
    return """port_min = 1024
port_max = 65535
sample_seconds = 10.0
tick_seconds = 0.5
ping_count = 4
ping_timeout_seconds = 2.0
on_ambiguous = \"first\"
"""


def ensure_config_file(config_path: Path = DEFAULT_CONFIG_PATH) -> Path:
    path = config_path.expanduser().resolve(strict=False)
    data_dir = path.parent
    if data_dir.exists() and data_dir.is_symlink():
        raise ValueError(f"refusing symlinked data directory: {data_dir}")
    data_dir.mkdir(mode=0o700, parents=True, exist_ok=True)

    if path.exists() and path.is_symlink():
        raise ValueError(f"refusing symlinked config file: {path}")
    if not path.exists():
        path.write_text(default_config_toml(), encoding="utf-8")
        secure_path(path, 0o600)
    return path


def load_config(config_path: Path | None = None) -> ScoutConfig:
    requested = config_path or DEFAULT_CONFIG_PATH
    try:
        path = ensure_config_file(requested)
        with path.open("rb") as handle:
            parsed: dict[str, Any] = tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ValueError(f"invalid config at {requested}: {exc}") from exc
    parsed.update(_env_overrides())
    try:
        return ScoutConfig.model_validate(parsed)
    except ValidationError as exc:
        raise ValueError(f"invalid config at {path}: {exc}") from exc


def apply_overrides(config: ScoutConfig, updates: dict[str, Any]) -> ScoutConfig:
    if not updates:
        return config
    merged = config.model_dump()
    merged.update(updates)
    try:
        return ScoutConfig.model_validate(merged)
    except ValidationError as exc:
        raise ValueError(f"invalid option: {exc}") from exc
