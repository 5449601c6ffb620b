from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]
CompletionPolicyName = Literal["simple_ratio", "quiz_gated"]


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _parse_bool(name: str, raw: str) -> bool:
    lowered = raw.lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    completion_policy: CompletionPolicyName = "simple_ratio"
    quiz_passing_score: int = 70
    analytics_cache_ttl: int = 300
    jwt_public_key_file: str | None = None

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    policy_raw = _getenv("COMPLETION_POLICY", "simple_ratio").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    if policy_raw not in ("simple_ratio", "quiz_gated"):
        raise ValueError(
            f"COMPLETION_POLICY must be simple_ratio|quiz_gated (got {policy_raw!r})"
        )

    port = _parse_int("PORT", _getenv("PORT", "8000"))
    passing_score = _parse_int("QUIZ_PASSING_SCORE", _getenv("QUIZ_PASSING_SCORE", "70"))
    if not 0 <= passing_score <= 100:
        raise ValueError(
            f"QUIZ_PASSING_SCORE must be between 0 and 100 (got {passing_score})"
        )

    cache_ttl = _parse_int("ANALYTICS_CACHE_TTL", _getenv("ANALYTICS_CACHE_TTL", "300"))
    if cache_ttl <= 0:
        raise ValueError(f"ANALYTICS_CACHE_TTL must be positive (got {cache_ttl})")

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_parse_bool("LOG_JSON", _getenv("LOG_JSON", "false")),
        port=port,
        database_url=_getenv("DATABASE_URL", "") or None,
        redis_url=_getenv("REDIS_URL", "") or None,
        completion_policy=policy_raw,
        quiz_passing_score=passing_score,
        analytics_cache_ttl=cache_ttl,
        jwt_public_key_file=_getenv("JWT_PUBLIC_KEY_FILE", "") or None,
    )


SETTINGS = load_settings()
