from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

CATEGORIES = ("programming", "design", "business", "marketing", "data-science", "other")
DIFFICULTIES = ("beginner", "intermediate", "advanced")
CONTENT_TYPES = (
    "video",
    "text",
    "quiz",
    "assignment",
    "interactive",
    "discussion",
    "resource",
)


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    title: str
    created_at: datetime
    description: str = ""
    category: str = "other"
    difficulty: str = "beginner"
    instructor_id: UUID | None = None
    module_ids: tuple[UUID, ...] = ()  # ordered by module_number
    is_active: bool = True
    enrollment_count: int = 0

    @property
    def total_modules(self) -> int:
        return len(self.module_ids)

    @staticmethod
    def new(
        *,
        title: str,
        now: datetime,
        description: str = "",
        category: str = "other",
        difficulty: str = "beginner",
        instructor_id: UUID | None = None,
    ) -> Course:
        return Course(
            id=uuid4(),
            title=title,
            created_at=now,
            description=description,
            category=category,
            difficulty=difficulty,
            instructor_id=instructor_id,
        )


@dataclass(frozen=True, slots=True)
class AccessControl:
    requires_premium: bool = False
    required_role: str | None = None  # minimum role; None = anyone


@dataclass(frozen=True, slots=True)
class ContentItem:
    content_id: str
    type: str
    title: str
    duration: int = 0  # minutes
    order: int = 0
    is_required: bool = True
    access: AccessControl = field(default_factory=AccessControl)
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Prerequisites:
    modules: tuple[UUID, ...] = ()
    skills: tuple[str, ...] = ()
    courses: tuple[UUID, ...] = ()


@dataclass(frozen=True, slots=True)
class ModuleSettings:
    is_active: bool = True
    sequential_access: bool = True
    allow_skip: bool = False
    max_attempts: int = 3
    available_from: datetime | None = None
    available_until: datetime | None = None


@dataclass(frozen=True, slots=True)
class CourseModule:
    id: UUID
    course_id: UUID
    module_number: int
    title: str
    description: str = ""
    contents: tuple[ContentItem, ...] = ()
    prerequisites: Prerequisites = field(default_factory=Prerequisites)
    settings: ModuleSettings = field(default_factory=ModuleSettings)
    created_by: UUID | None = None

    @property
    def estimated_duration(self) -> int:
        return sum(item.duration for item in self.contents)

    def content(self, content_id: str) -> ContentItem | None:
        for item in self.contents:
            if item.content_id == content_id:
                return item
        return None

    @staticmethod
    def new(
        *,
        course_id: UUID,
        module_number: int,
        title: str,
        description: str = "",
        contents: tuple[ContentItem, ...] = (),
        prerequisites: Prerequisites | None = None,
        settings: ModuleSettings | None = None,
        created_by: UUID | None = None,
    ) -> CourseModule:
        return CourseModule(
            id=uuid4(),
            course_id=course_id,
            module_number=module_number,
            title=title,
            description=description,
            contents=tuple(sorted(contents, key=lambda c: c.order)),
            prerequisites=prerequisites or Prerequisites(),
            settings=settings or ModuleSettings(),
            created_by=created_by,
        )
