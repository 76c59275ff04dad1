from __future__ import annotations

from pathlib import Path
from typing import Mapping, TypeAlias
import os
import tomllib

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ropelink.exceptions import ConfigError

DEFAULT_CONFIG_NAME = "ropelink.toml"
CONFIG_SECTION = "client"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 6942
DEFAULT_SERVER_PROGRAM = "rope-server"
DEFAULT_TIMEOUT_SECONDS = 30.0

ENV_PREFIX = "ROPELINK_"
_ENV_FIELDS: tuple[str, ...] = (
    "host",
    "port",
    "server_program",
    "auto_revert",
    "timeout_seconds",
    "server_log",
)
_TRUTHY_VALUES = {"1", "true", "yes", "on"}
_FALSEY_VALUES = {"0", "false", "no", "off"}

TomlTable: TypeAlias = dict[str, object]


class ClientConfig(BaseModel):
    """Recognized client options; everything else in the table is ignored."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    server_program: str | list[str] = DEFAULT_SERVER_PROGRAM
    auto_revert: bool = False
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    server_log: str | None = None

    @field_validator("server_program")
    @classmethod
    def _program_not_empty(cls, value: str | list[str]) -> str | list[str]:
        if isinstance(value, str):
            if not value.strip():
                raise ValueError("server_program must not be empty")
            return value
        tokens = [token for token in value if token.strip()]
        if not tokens:
            raise ValueError("server_program must name at least one token")
        return tokens

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}/"

    def program_argv(self) -> list[str]:
        # A string is one executable name, never split on whitespace.
        if isinstance(self.server_program, str):
            return [self.server_program]
        return list(self.server_program)


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    return _load_toml(config_path)


def client_defaults(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    data = load_config(root=root, config_path=config_path)
    section = data.get(CONFIG_SECTION, {})
    return section if isinstance(section, dict) else {}


def _env_bool(name: str, raw: str) -> bool:
    text = raw.strip().lower()
    if text in _TRUTHY_VALUES:
        return True
    if text in _FALSEY_VALUES:
        return False
    raise ConfigError(f"invalid boolean for {name}: {raw!r}")


def env_overrides(environ: Mapping[str, str] | None = None) -> TomlTable:
    environ = os.environ if environ is None else environ
    overrides: TomlTable = {}
    for field_name in _ENV_FIELDS:
        env_name = ENV_PREFIX + field_name.upper()
        raw = environ.get(env_name, "").strip()
        if not raw:
            continue
        if field_name == "auto_revert":
            overrides[field_name] = _env_bool(env_name, raw)
        else:
            overrides[field_name] = raw
    return overrides


def merge_payload(payload: TomlTable, defaults: TomlTable) -> TomlTable:
    merged = dict(defaults)
    for key, value in payload.items():
        if value is None:
            continue
        merged[key] = value
    return merged


def load_client_config(
    root: Path | None = None,
    config_path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    overrides: TomlTable | None = None,
) -> ClientConfig:
    """Resolve defaults, the ``[client]`` table, the environment and explicit overrides."""
    merged = client_defaults(root=root, config_path=config_path)
    merged = merge_payload(env_overrides(environ), merged)
    merged = merge_payload(overrides or {}, merged)
    try:
        return ClientConfig.model_validate(merged)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "config"
        raise ConfigError(f"invalid value for {field}: {first.get('msg', 'invalid')}") from exc
