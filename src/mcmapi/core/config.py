"""Configuration loading utilities."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

CONFIG_DIR = Path(os.environ.get("MCMAPI_CONFIG_DIR", Path.home() / ".config" / "mcmapi"))
CONFIG_FILE = CONFIG_DIR / "config.json"

BASE_URL = "https://api.mc-market.org/v1"


class TokenKind(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    SHARED = "shared"


@dataclass(slots=True)
class APIToken:
    """Credential attached to every outbound request."""

    kind: TokenKind = TokenKind.PUBLIC
    value: str = ""

    @classmethod
    def private(cls, value: str) -> "APIToken":
        return cls(TokenKind.PRIVATE, value)

    @classmethod
    def shared(cls, value: str) -> "APIToken":
        return cls(TokenKind.SHARED, value)

    def as_header(self) -> Optional[str]:
        """Return the 'Authorization' header value, or None for public access."""

        if self.kind == TokenKind.PUBLIC or not self.value:
            return None
        return f"{self.kind.value.capitalize()} {self.value}"


@dataclass(slots=True)
class AppConfig:
    """Top-level wrapper configuration."""

    token: APIToken = field(default_factory=APIToken)
    base_url: str = BASE_URL
    timeout: float = 10.0
    request_timeout: Optional[float] = 120.0
    max_attempts: int = 3
    backoff_base: float = 0.5
    backoff_max: float = 8.0
    assumed_allowance: int = 60

    @classmethod
    def load(cls, override: Optional[Dict[str, Any]] = None) -> "AppConfig":
        """Load config from disk/.env, applying overrides."""

        _inject_dotenv()

        data: Dict[str, Any] = {}
        if CONFIG_FILE.exists():
            with CONFIG_FILE.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        data.update(_settings_from_environment())
        if override:
            data.update(override)

        defaults = _config_defaults()

        token_data = {**data.get("token", {}), **_token_from_environment()}
        config = cls(
            token=_parse_token(token_data),
            base_url=data.get("base_url", defaults["base_url"]),
            timeout=float(data.get("timeout", defaults["timeout"])),
            request_timeout=data.get("request_timeout", defaults["request_timeout"]),
            max_attempts=int(data.get("max_attempts", defaults["max_attempts"])),
            backoff_base=float(data.get("backoff_base", defaults["backoff_base"])),
            backoff_max=float(data.get("backoff_max", defaults["backoff_max"])),
            assumed_allowance=int(data.get("assumed_allowance", defaults["assumed_allowance"])),
        )
        if config.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        return config

    def save(self) -> None:
        """Persist configuration to disk."""

        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        payload = {
            "token": _filter_empty({"kind": self.token.kind.value, "value": self.token.value}),
            "base_url": self.base_url,
            "timeout": self.timeout,
            "request_timeout": self.request_timeout,
            "max_attempts": self.max_attempts,
            "backoff_base": self.backoff_base,
            "backoff_max": self.backoff_max,
            "assumed_allowance": self.assumed_allowance,
        }
        with CONFIG_FILE.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)


def _config_defaults() -> Dict[str, Any]:
    template = AppConfig()
    return _asdict(template)


def _dotenv_path() -> Path:
    return Path(os.environ.get("MCMAPI_ENV_FILE", Path.cwd() / ".env"))


def _asdict(instance: Any) -> Dict[str, Any]:
    return {field.name: getattr(instance, field.name) for field in fields(instance)}


def _filter_empty(mapping: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in mapping.items() if value}


def _parse_token(data: Dict[str, Any]) -> APIToken:
    value = str(data.get("value", "") or "")
    kind_value = data.get("kind")
    if isinstance(kind_value, TokenKind):
        return APIToken(kind=kind_value, value=value)
    raw_kind = str(kind_value or "").lower()
    if not raw_kind:
        raw_kind = TokenKind.PRIVATE.value if value else TokenKind.PUBLIC.value
    try:
        kind = TokenKind(raw_kind)
    except ValueError as exc:
        raise ValueError(f"Unknown token type: {raw_kind}") from exc
    return APIToken(kind=kind, value=value)


def _token_from_environment() -> Dict[str, str]:
    env = os.environ
    return _filter_empty(
        {
            "value": env.get("MCMAPI_TOKEN", ""),
            "kind": env.get("MCMAPI_TOKEN_TYPE", ""),
        }
    )


def _settings_from_environment() -> Dict[str, Any]:
    return _filter_empty({"base_url": os.environ.get("MCMAPI_BASE_URL", "")})


def _inject_dotenv() -> None:
    dotenv_file = _dotenv_path()
    if not dotenv_file.exists():
        return
    with dotenv_file.open("r", encoding="utf-8") as handle:
        for line in handle:
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if "=" not in stripped:
                continue
            key, _, raw_value = stripped.partition("=")
            key = key.strip()
            value = raw_value.strip()
            if (value.startswith("\"") and value.endswith("\"")) or (value.startswith("'") and value.endswith("'")):
                value = value[1:-1]
            value = value.strip()
            os.environ.setdefault(key, value)
