from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from progress_service.models.course import CourseModule
from progress_service.models.principal import ROLE_RANK
from progress_service.models.progress import CourseProgress

REASON_ROLE = "Insufficient role permissions"
REASON_PREMIUM = "Premium subscription required"
REASON_NOT_YET_AVAILABLE = "Module not yet available"
REASON_EXPIRED = "Module access expired"
REASON_PREREQUISITES = "Prerequisites not completed"


class Viewer(Protocol):
    """Whatever is asking: a Principal or a stored User both qualify."""

    @property
    def role(self) -> str: ...

    @property
    def is_premium(self) -> bool: ...


@dataclass(frozen=True, slots=True)
class AccessDecision:
    allowed: bool
    reason: str | None = None


_ALLOWED = AccessDecision(allowed=True)


def _meets_role(viewer_role: str, required: str | None) -> bool:
    if required is None:
        return True
    return ROLE_RANK.get(viewer_role, 0) >= ROLE_RANK.get(required, 0)


def can_access(
    module: CourseModule,
    viewer: Viewer,
    progress: CourseProgress | None = None,
    *,
    now: datetime,
) -> AccessDecision:
    """Decide whether `viewer` may open `module`.

    Checks run in a fixed order and the first failure wins: content role
    restrictions, premium gating, availability window, then prerequisite
    modules (only when `progress` is supplied).  `required_role` is a
    minimum on the student < instructor < admin ladder.
    """
    is_admin = viewer.role == "admin"

    if any(not _meets_role(viewer.role, c.access.required_role) for c in module.contents):
        return AccessDecision(allowed=False, reason=REASON_ROLE)

    if not is_admin and not viewer.is_premium:
        if any(c.access.requires_premium for c in module.contents):
            return AccessDecision(allowed=False, reason=REASON_PREMIUM)

    settings = module.settings
    if settings.available_from is not None and now < settings.available_from:
        return AccessDecision(allowed=False, reason=REASON_NOT_YET_AVAILABLE)
    if settings.available_until is not None and now > settings.available_until:
        return AccessDecision(allowed=False, reason=REASON_EXPIRED)

    if progress is not None and module.prerequisites.modules:
        done = progress.completed_module_ids
        if not all(m in done for m in module.prerequisites.modules):
            return AccessDecision(allowed=False, reason=REASON_PREREQUISITES)

    return _ALLOWED
