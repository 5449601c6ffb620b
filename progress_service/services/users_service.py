from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from uuid import UUID

from progress_service.core.errors import ConflictError, NotFoundError, ValidationError
from progress_service.models.principal import ROLES, Principal
from progress_service.models.user import User
from progress_service.repos.registry import Repositories

logger = logging.getLogger(__name__)


async def get_or_create_user(
    repos: Repositories, principal: Principal, *, now: datetime
) -> User:
    """Return the caller's profile, provisioning it from token claims."""
    user = await repos.users.get_by_id(principal.user_id)
    if user is not None:
        return user

    user = User.new(
        id=principal.user_id,
        now=now,
        role=principal.role,
        is_premium=principal.is_premium,
    )
    try:
        await repos.users.add(user)
    except ConflictError:
        # a concurrent request provisioned it first
        existing = await repos.users.get_by_id(principal.user_id)
        if existing is None:
            raise
        return existing
    logger.info("Provisioned profile user=%s role=%s", user.id, user.role)
    return user


async def list_users(repos: Repositories) -> list[User]:
    return await repos.users.list_all()


async def update_user(
    repos: Repositories,
    admin: Principal,
    user_id: UUID,
    *,
    role: str | None = None,
    is_premium: bool | None = None,
    is_active: bool | None = None,
    email: str | None = None,
    name: str | None = None,
) -> User:
    """Admin edit of a profile.  Role changes only ever happen here."""
    user = await repos.users.get_by_id(user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")

    changes: dict[str, object] = {}
    if role is not None:
        if role not in ROLES:
            raise ValidationError(f"role must be one of {', '.join(ROLES)}")
        if user_id == admin.user_id and role != "admin":
            raise ValidationError("Admins cannot demote themselves")
        changes["role"] = role
    if is_premium is not None:
        changes["is_premium"] = is_premium
    if is_active is not None:
        changes["is_active"] = is_active
    if email is not None:
        email = email.strip().lower()
        if "@" not in email:
            raise ValidationError("email must be a valid address")
        changes["email"] = email
    if name is not None:
        changes["name"] = name.strip()

    updated = await repos.users.update(replace(user, **changes))
    logger.info(
        "User updated id=%s by admin=%s fields=%s",
        user_id,
        admin.user_id,
        sorted(changes),
    )
    return updated
