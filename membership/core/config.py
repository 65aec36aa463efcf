from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]
ContextFallback = Literal["lowest_id", "earliest_joined"]

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off", "")


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    redis_url: str | None
    default_org_id: str = "default"
    default_org_name: str = "Default Organization"
    default_org_owner: str = "system"
    default_class_name: str = "Default Class"
    context_fallback: ContextFallback = "lowest_id"
    invite_code_bytes: int = 12

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


def _require_non_blank(name: str, raw: str) -> str:
    if not raw:
        raise ValueError(f"{name} must be non-empty")
    if "/" in raw:
        raise ValueError(f"{name} must not contain '/' (got {raw!r})")
    return raw


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    port_raw = _getenv("PORT", "8000")
    fallback_raw = _getenv("CONTEXT_FALLBACK", "lowest_id").lower()
    invite_bytes_raw = _getenv("INVITE_CODE_BYTES", "12")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    if fallback_raw not in ("lowest_id", "earliest_joined"):
        raise ValueError(
            f"CONTEXT_FALLBACK must be lowest_id|earliest_joined (got {fallback_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    try:
        invite_code_bytes = int(invite_bytes_raw)
    except ValueError:
        raise ValueError(
            f"INVITE_CODE_BYTES must be an integer (got {invite_bytes_raw!r})"
        ) from None
    # Fewer than 8 random bytes makes codes guessable by brute force.
    if invite_code_bytes < 8:
        raise ValueError(
            f"INVITE_CODE_BYTES must be at least 8 (got {invite_code_bytes})"
        )

    redis_url = _getenv("REDIS_URL", "") or None

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_parse_bool("LOG_JSON", _getenv("LOG_JSON", "false")),
        port=port,
        redis_url=redis_url,
        default_org_id=_require_non_blank(
            "DEFAULT_ORG_ID", _getenv("DEFAULT_ORG_ID", "default")
        ),
        default_org_name=_getenv("DEFAULT_ORG_NAME", "Default Organization")
        or "Default Organization",
        default_org_owner=_require_non_blank(
            "DEFAULT_ORG_OWNER", _getenv("DEFAULT_ORG_OWNER", "system")
        ),
        default_class_name=_getenv("DEFAULT_CLASS_NAME", "Default Class")
        or "Default Class",
        context_fallback=fallback_raw,
        invite_code_bytes=invite_code_bytes,
    )


SETTINGS = load_settings()
