"""Module endpoints: authoring (course owner or admin) and the access check."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Response, status
from pydantic import BaseModel, ConfigDict, Field

from progress_service.api.dependencies import CurrentUser, Repos
from progress_service.models.course import (
    AccessControl,
    ContentItem,
    CourseModule,
    ModuleSettings,
    Prerequisites,
)
from progress_service.services import catalog, learning

router = APIRouter(prefix="/v1", tags=["modules"])


class AccessControlSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    requires_premium: bool = False
    required_role: str | None = None


class ContentItemSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    content_id: str
    type: str
    title: str
    duration: int = 0
    order: int = 0
    is_required: bool = True
    access: AccessControlSchema = Field(default_factory=AccessControlSchema)
    payload: dict[str, Any] = Field(default_factory=dict)

    def to_domain(self) -> ContentItem:
        return ContentItem(
            content_id=self.content_id,
            type=self.type,
            title=self.title,
            duration=self.duration,
            order=self.order,
            is_required=self.is_required,
            access=AccessControl(
                requires_premium=self.access.requires_premium,
                required_role=self.access.required_role,
            ),
            payload=dict(self.payload),
        )


class PrerequisitesSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    modules: list[UUID] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    courses: list[UUID] = Field(default_factory=list)

    def to_domain(self) -> Prerequisites:
        return Prerequisites(
            modules=tuple(self.modules),
            skills=tuple(self.skills),
            courses=tuple(self.courses),
        )


class ModuleSettingsSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_active: bool = True
    sequential_access: bool = True
    allow_skip: bool = False
    max_attempts: int = 3
    available_from: datetime | None = None
    available_until: datetime | None = None

    def to_domain(self) -> ModuleSettings:
        return ModuleSettings(**self.model_dump())


class ModuleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    module_number: int
    title: str
    description: str
    contents: list[ContentItemSchema]
    prerequisites: PrerequisitesSchema
    settings: ModuleSettingsSchema
    estimated_duration: int
    created_by: UUID | None


class ModuleCreateIn(BaseModel):
    module_number: int
    title: str
    description: str = ""
    contents: list[ContentItemSchema] = Field(default_factory=list)
    prerequisites: PrerequisitesSchema = Field(default_factory=PrerequisitesSchema)
    settings: ModuleSettingsSchema = Field(default_factory=ModuleSettingsSchema)


class ModuleUpdateIn(BaseModel):
    module_number: int | None = None
    title: str | None = None
    description: str | None = None
    contents: list[ContentItemSchema] | None = None
    prerequisites: PrerequisitesSchema | None = None
    settings: ModuleSettingsSchema | None = None


class AccessOut(BaseModel):
    module_id: UUID
    allowed: bool
    reason: str | None


def _module_out(module: CourseModule) -> ModuleOut:
    return ModuleOut.model_validate(module)


@router.get("/courses/{course_id}/modules", response_model=list[ModuleOut])
async def list_modules(
    course_id: UUID, _principal: CurrentUser, repos: Repos
) -> list[ModuleOut]:
    await catalog.load_course(repos, course_id)
    return [_module_out(m) for m in await repos.modules.list_by_course(course_id)]


@router.post(
    "/courses/{course_id}/modules",
    response_model=ModuleOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_module(
    course_id: UUID, body: ModuleCreateIn, principal: CurrentUser, repos: Repos
) -> ModuleOut:
    module = await catalog.add_module(
        repos,
        principal,
        course_id,
        module_number=body.module_number,
        title=body.title,
        description=body.description,
        contents=tuple(c.to_domain() for c in body.contents),
        prerequisites=body.prerequisites.to_domain(),
        settings=body.settings.to_domain(),
        now=datetime.now(UTC),
    )
    return _module_out(module)


@router.get("/modules/{module_id}", response_model=ModuleOut)
async def get_module(module_id: UUID, _principal: CurrentUser, repos: Repos) -> ModuleOut:
    return _module_out(await catalog.load_module(repos, module_id))


@router.put("/modules/{module_id}", response_model=ModuleOut)
async def update_module(
    module_id: UUID, body: ModuleUpdateIn, principal: CurrentUser, repos: Repos
) -> ModuleOut:
    changes: dict[str, Any] = {}
    for name in ("module_number", "title", "description"):
        value = getattr(body, name)
        if value is not None:
            changes[name] = value
    if body.contents is not None:
        changes["contents"] = tuple(c.to_domain() for c in body.contents)
    if body.prerequisites is not None:
        changes["prerequisites"] = body.prerequisites.to_domain()
    if body.settings is not None:
        changes["settings"] = body.settings.to_domain()

    module = await catalog.update_module(repos, principal, module_id, changes)
    return _module_out(module)


@router.delete("/modules/{module_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_module(module_id: UUID, principal: CurrentUser, repos: Repos) -> Response:
    await catalog.delete_module(repos, principal, module_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/modules/{module_id}/access", response_model=AccessOut)
async def check_access(module_id: UUID, principal: CurrentUser, repos: Repos) -> AccessOut:
    """Report whether the caller may open the module, and why not if they can't."""
    decision = await learning.check_module_access(
        repos, principal, module_id, now=datetime.now(UTC)
    )
    return AccessOut(module_id=module_id, allowed=decision.allowed, reason=decision.reason)
