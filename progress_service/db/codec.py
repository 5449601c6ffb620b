"""JSON encoding for the embedded collections stored in JSONB columns."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from progress_service.models.course import AccessControl, ContentItem, ModuleSettings
from progress_service.models.progress import (
    Achievement,
    ContentProgress,
    ModuleCompletion,
)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def dump_achievements(achievements: tuple[Achievement, ...]) -> list[dict[str, Any]]:
    return [
        {"type": a.type, "description": a.description, "unlocked_at": _iso(a.unlocked_at)}
        for a in achievements
    ]


def load_achievements(raw: list[dict[str, Any]] | None) -> tuple[Achievement, ...]:
    return tuple(
        Achievement(
            type=a["type"],
            description=a.get("description", ""),
            unlocked_at=datetime.fromisoformat(a["unlocked_at"]),
        )
        for a in raw or []
    )


def dump_completions(
    completions: tuple[ModuleCompletion, ...],
) -> list[dict[str, Any]]:
    return [
        {
            "module_index": c.module_index,
            "module_id": str(c.module_id) if c.module_id else None,
            "completed_at": _iso(c.completed_at),
            "time_spent": c.time_spent,
        }
        for c in completions
    ]


def load_completions(raw: list[dict[str, Any]] | None) -> tuple[ModuleCompletion, ...]:
    return tuple(
        ModuleCompletion(
            module_index=c["module_index"],
            module_id=UUID(c["module_id"]) if c.get("module_id") else None,
            completed_at=datetime.fromisoformat(c["completed_at"]),
            time_spent=c.get("time_spent", 0),
        )
        for c in raw or []
    )


def dump_contents(contents: tuple[ContentItem, ...]) -> list[dict[str, Any]]:
    return [
        {
            "content_id": c.content_id,
            "type": c.type,
            "title": c.title,
            "duration": c.duration,
            "order": c.order,
            "is_required": c.is_required,
            "requires_premium": c.access.requires_premium,
            "required_role": c.access.required_role,
            "payload": c.payload,
        }
        for c in contents
    ]


def load_contents(raw: list[dict[str, Any]] | None) -> tuple[ContentItem, ...]:
    return tuple(
        ContentItem(
            content_id=c["content_id"],
            type=c["type"],
            title=c.get("title", ""),
            duration=c.get("duration", 0),
            order=c.get("order", 0),
            is_required=c.get("is_required", True),
            access=AccessControl(
                requires_premium=c.get("requires_premium", False),
                required_role=c.get("required_role"),
            ),
            payload=c.get("payload") or {},
        )
        for c in raw or []
    )


def dump_settings(settings: ModuleSettings) -> dict[str, Any]:
    return {
        "is_active": settings.is_active,
        "sequential_access": settings.sequential_access,
        "allow_skip": settings.allow_skip,
        "max_attempts": settings.max_attempts,
        "available_from": _iso(settings.available_from),
        "available_until": _iso(settings.available_until),
    }


def load_settings(raw: dict[str, Any] | None) -> ModuleSettings:
    raw = raw or {}
    return ModuleSettings(
        is_active=raw.get("is_active", True),
        sequential_access=raw.get("sequential_access", True),
        allow_skip=raw.get("allow_skip", False),
        max_attempts=raw.get("max_attempts", 3),
        available_from=_dt(raw.get("available_from")),
        available_until=_dt(raw.get("available_until")),
    )


def dump_content_progress(
    contents: tuple[ContentProgress, ...],
) -> list[dict[str, Any]]:
    return [
        {
            "content_id": c.content_id,
            "content_type": c.content_type,
            "is_mandatory": c.is_mandatory,
            "status": c.status,
            "time_spent": c.time_spent,
            "score": c.score,
            "best_score": c.best_score,
            "attempts": c.attempts,
            "started_at": _iso(c.started_at),
            "completed_at": _iso(c.completed_at),
        }
        for c in contents
    ]


def load_content_progress(
    raw: list[dict[str, Any]] | None,
) -> tuple[ContentProgress, ...]:
    return tuple(
        ContentProgress(
            content_id=c["content_id"],
            content_type=c.get("content_type", "text"),
            is_mandatory=c.get("is_mandatory", True),
            status=c.get("status", "not-started"),
            time_spent=c.get("time_spent", 0),
            score=c.get("score"),
            best_score=c.get("best_score", 0),
            attempts=c.get("attempts", 0),
            started_at=_dt(c.get("started_at")),
            completed_at=_dt(c.get("completed_at")),
        )
        for c in raw or []
    )
