"""Settings from config.json and environment variables."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from actual_skill.errors import ValidationError

ROOT = Path(__file__).resolve().parent.parent
CONFIG_PATH = ROOT / "config.json"

DEFAULT_SERVER_URL = "http://localhost:5007"

# setting name -> environment variable
_ENV_KEYS = {
    "server_url": "ACTUAL_SERVER_URL",
    "api_key": "ACTUAL_API_KEY",
    "budget_id": "ACTUAL_BUDGET_ID",
    "encryption_password": "ACTUAL_ENCRYPTION_PASSWORD",
    "timeout": "ACTUAL_TIMEOUT",
    "transport": "MCP_TRANSPORT",
    "port": "PORT",
    "auth_token": "MCP_AUTH_TOKEN",
    "log_level": "LOG_LEVEL",
}
_REQUIRED = ("api_key", "budget_id")


@dataclass
class Settings:
    server_url: str = DEFAULT_SERVER_URL
    api_key: str = ""
    budget_id: str = ""
    encryption_password: str | None = None
    timeout: float = 60.0
    transport: str = "stdio"
    port: int = 3000
    auth_token: str | None = None
    log_level: str = "INFO"
    source: dict[str, str] = field(default_factory=dict, repr=False)

    def missing(self) -> list[str]:
        return [_ENV_KEYS[k] for k in _REQUIRED if not getattr(self, k)]

    def require(self) -> None:
        missing = self.missing()
        if missing:
            raise ValidationError(
                "Missing required settings: " + ", ".join(missing)
                + ". Set env vars or add them to config.json"
            )


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return {}
    return raw if isinstance(raw, dict) else {}


def load_settings(path: Path | None = None, env: dict[str, str] | None = None) -> Settings:
    """Build settings from config.json, with environment variables taking precedence."""
    env = os.environ if env is None else env
    values: dict[str, Any] = {}
    source: dict[str, str] = {}
    for key, value in _read_config_file(path or CONFIG_PATH).items():
        if key in _ENV_KEYS and value not in (None, ""):
            values[key] = value
            source[key] = "config.json"
    for key, var in _ENV_KEYS.items():
        if env.get(var):
            values[key] = env[var]
            source[key] = var

    try:
        if "timeout" in values:
            values["timeout"] = float(values["timeout"])
        if "port" in values:
            values["port"] = int(values["port"])
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid numeric setting: {e}") from e

    transport = str(values.get("transport", "stdio")).lower()
    if transport not in ("stdio", "http"):
        raise ValidationError(f"Invalid transport: {transport}. Expected stdio or http")
    values["transport"] = transport
    values["server_url"] = str(values.get("server_url", DEFAULT_SERVER_URL)).rstrip("/")
    return Settings(**values, source=source)
