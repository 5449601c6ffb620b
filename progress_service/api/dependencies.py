from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from progress_service.core.config import SETTINGS
from progress_service.db.engine import async_session_factory, session_scope
from progress_service.models.principal import ROLES, Principal
from progress_service.repos.registry import (
    Repositories,
    in_memory_repositories,
    pg_repositories,
)
from progress_service.services import token_service
from progress_service.services.completion import CompletionPolicy

logger = logging.getLogger(__name__)

# tokens are issued by the identity service; tokenUrl only feeds the OpenAPI docs
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")

# process-wide bundle used when DATABASE_URL is unset
memory_repos = in_memory_repositories()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Extract and validate the JWT bearer token. Returns a Principal.

    Used as a FastAPI dependency on any protected endpoint.
    """
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise _unauthorized("Token expired") from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise _unauthorized("Invalid token") from None

    try:
        user_id = UUID(claims["sub"])
    except (TypeError, ValueError):
        logger.warning("Token rejected: sub is not a user id")
        raise _unauthorized("Invalid token") from None

    role = claims.get("role", "student")
    if role not in ROLES:
        logger.warning("Token rejected: unknown role=%s", role)
        raise _unauthorized("Invalid token")

    principal = Principal(
        user_id=user_id,
        role=role,
        is_premium=bool(claims.get("premium", False)),
    )
    logger.debug("Token validated for user=%s role=%s", principal.user_id, principal.role)
    return principal


def require_role(role: str):
    """Dependency factory: demand a specific role.

    Usage: Depends(require_role("admin"))
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_role(role):
            logger.warning(
                "Access denied: user=%s missing role=%s",
                principal.user_id,
                role,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


def require_any_role(roles: set[str]):
    """Dependency factory: demand at least one of the given roles.

    Usage: Depends(require_any_role({"admin", "instructor"}))
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_any_role(roles):
            logger.warning(
                "Access denied: user=%s role=%s not in %s",
                principal.user_id,
                principal.role,
                sorted(roles),
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


async def get_repos() -> AsyncGenerator[Repositories, None]:
    """Repository bundle for one request.

    With a database configured every repository shares one session, which
    commits when the handler returns and rolls back if it raises.
    """
    if async_session_factory is None:
        yield memory_repos
        return
    async with session_scope() as session:
        yield pg_repositories(session)


def get_completion_policy() -> CompletionPolicy:
    return CompletionPolicy(SETTINGS.completion_policy)


def get_passing_score() -> int:
    return SETTINGS.quiz_passing_score


CurrentUser = Annotated[Principal, Depends(require_user)]
Repos = Annotated[Repositories, Depends(get_repos)]
Policy = Annotated[CompletionPolicy, Depends(get_completion_policy)]
