# src/taskpilot/core/models.py

"""
DTOs exchanged with the backend.

All models are frozen dataclasses. `from_json` accepts the camelCase wire shape and
raises DecodeError on anything it cannot make sense of; `to_json` produces request bodies.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Callable, TypeVar

from .errors import DecodeError

T = TypeVar("T")


class _Unset:
    """Marker for "field omitted" in partial payloads (distinct from an explicit None)."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


class RepeatType(IntEnum):
    NONE = 0
    DAILY = 1
    EVERY_OTHER_DAY = 2
    WEEKLY = 3
    MONTHLY = 4

    @classmethod
    def from_wire(cls, raw: Any) -> RepeatType:
        if raw is None:
            return cls.NONE
        try:
            return cls(int(raw))
        except (TypeError, ValueError):
            return cls.NONE

    @property
    def title(self) -> str:
        return _REPEAT_TITLES[self]

    @property
    def short_title(self) -> str:
        return _REPEAT_SHORT_TITLES[self]


_REPEAT_TITLES = {
    RepeatType.NONE: "Never",
    RepeatType.DAILY: "Every Day",
    RepeatType.EVERY_OTHER_DAY: "Every Other Day",
    RepeatType.WEEKLY: "Every Week",
    RepeatType.MONTHLY: "Every Month",
}

_REPEAT_SHORT_TITLES = {
    RepeatType.NONE: "",
    RepeatType.DAILY: "Daily",
    RepeatType.EVERY_OTHER_DAY: "Alt",
    RepeatType.WEEKLY: "Weekly",
    RepeatType.MONTHLY: "Monthly",
}


# ---- timestamps ----


def parse_timestamp(raw: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime (naive input is treated as UTC)."""
    s = raw.strip()
    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _optional_timestamp(raw: Any) -> datetime | None:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise DecodeError(f"Invalid timestamp: {raw!r}")
    if not raw.strip():
        return None
    try:
        return parse_timestamp(raw)
    except ValueError as e:
        raise DecodeError(f"Invalid timestamp: {raw!r}") from e


def _require_str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise DecodeError(f"Missing or invalid field: {key}")
    return value


def _optional_str(data: dict[str, Any], key: str, default: str = "") -> str:
    value = data.get(key)
    if value is None:
        return default
    return str(value)


def _require_dict(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise DecodeError("Expected a JSON object.")
    return payload


def decode_list(payload: Any, item: Callable[[Any], T]) -> list[T]:
    if not isinstance(payload, list):
        raise DecodeError("Expected a JSON array.")
    return [item(x) for x in payload]


# ---- tasks ----


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    title: str
    due: datetime | None = None
    is_completed: bool = False
    repeat_type: RepeatType = RepeatType.NONE

    category_id: str = ""
    category_title: str = ""
    color: str = ""
    icon: str = ""

    description: str = ""

    def with_completed(self, is_completed: bool) -> Task:
        return replace(self, is_completed=is_completed)

    @classmethod
    def from_json(cls, payload: Any) -> Task:
        data = _require_dict(payload)
        completed = data.get("isCompleted", False)
        if not isinstance(completed, bool):
            raise DecodeError("Missing or invalid field: isCompleted")
        return cls(
            id=_require_str(data, "id"),
            title=_require_str(data, "title"),
            due=_optional_timestamp(data.get("due")),
            is_completed=completed,
            repeat_type=RepeatType.from_wire(data.get("repeatType")),
            category_id=_optional_str(data, "categoryId"),
            category_title=_optional_str(data, "categoryTitle"),
            color=_optional_str(data, "color"),
            icon=_optional_str(data, "icon"),
            description=_optional_str(data, "description"),
        )


@dataclass(frozen=True, slots=True)
class NewTask:
    """Create-task body. Optional fields are omitted, never sent as null."""

    title: str
    category_id: str
    due: datetime | None = None
    repeat_type: RepeatType | None = None

    def to_json(self) -> dict[str, Any]:
        body: dict[str, Any] = {"title": self.title, "taskCategoryId": self.category_id}
        if self.due is not None:
            body["due"] = format_timestamp(self.due)
        if self.repeat_type is not None:
            body["repeat"] = int(self.repeat_type)
        return body


@dataclass(frozen=True, slots=True)
class TaskEdit:
    """
    Partial edit. Fields left UNSET are omitted from the body;
    a field set to None is sent as JSON null (e.g. due=None clears the due date).
    """

    title: Any = UNSET
    due: Any = UNSET
    is_completed: Any = UNSET
    repeat_type: Any = UNSET
    category_id: Any = UNSET

    def is_empty(self) -> bool:
        return not self.to_json()

    def to_json(self) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if self.title is not UNSET:
            body["title"] = self.title
        if self.due is not UNSET:
            body["due"] = None if self.due is None else format_timestamp(self.due)
        if self.is_completed is not UNSET:
            body["isCompleted"] = self.is_completed
        if self.repeat_type is not UNSET:
            body["repeat"] = None if self.repeat_type is None else int(self.repeat_type)
        if self.category_id is not UNSET:
            body["taskCategoryId"] = self.category_id
        return body


@dataclass(frozen=True, slots=True)
class TaskSection:
    count: int
    tasks: list[Task] = field(default_factory=list)

    @classmethod
    def from_json(cls, payload: Any) -> TaskSection:
        data = _require_dict(payload)
        tasks = decode_list(data.get("tasks", []), Task.from_json)
        count = data.get("count", len(tasks))
        if not isinstance(count, int) or isinstance(count, bool):
            raise DecodeError("Missing or invalid field: count")
        return cls(count=count, tasks=tasks)


@dataclass(frozen=True, slots=True)
class RecentTasks:
    """Home summary computed by the server."""

    today: TaskSection
    upcoming: TaskSection
    overdue: TaskSection
    no_due: TaskSection

    @classmethod
    def from_json(cls, payload: Any) -> RecentTasks:
        data = _require_dict(payload)
        empty = {"count": 0, "tasks": []}
        return cls(
            today=TaskSection.from_json(data.get("today", empty)),
            upcoming=TaskSection.from_json(data.get("upcoming", empty)),
            overdue=TaskSection.from_json(data.get("overdue", empty)),
            no_due=TaskSection.from_json(data.get("noDue", empty)),
        )


# ---- categories ----


@dataclass(frozen=True, slots=True)
class Category:
    id: str
    title: str
    color: str
    icon: str = ""
    task_count: int = 0

    @classmethod
    def from_json(cls, payload: Any) -> Category:
        data = _require_dict(payload)
        count = data.get("taskCount", 0)
        try:
            task_count = int(count or 0)
        except (TypeError, ValueError) as e:
            raise DecodeError("Missing or invalid field: taskCount") from e
        return cls(
            id=_require_str(data, "id"),
            title=_require_str(data, "title"),
            color=_optional_str(data, "color"),
            icon=_optional_str(data, "icon"),
            task_count=task_count,
        )


# ---- sharing ----


@dataclass(frozen=True, slots=True)
class ShareInvite:
    id: str
    title: str
    invited_by_email: str
    shared_on: datetime | None = None

    @classmethod
    def from_json(cls, payload: Any) -> ShareInvite:
        data = _require_dict(payload)
        return cls(
            id=_require_str(data, "id"),
            title=_require_str(data, "title"),
            invited_by_email=_optional_str(data, "invitedByUserEmail"),
            shared_on=_optional_timestamp(data.get("sharedOn")),
        )


@dataclass(frozen=True, slots=True)
class TaskUser:
    id: str
    full_name: str
    email: str

    @classmethod
    def from_json(cls, payload: Any) -> TaskUser:
        data = _require_dict(payload)
        return cls(
            id=_require_str(data, "id"),
            full_name=_optional_str(data, "fullName"),
            email=_optional_str(data, "email"),
        )


# ---- auth ----


@dataclass(frozen=True, slots=True)
class AuthUser:
    user_id: str
    initials: str
    full_name: str

    @classmethod
    def from_json(cls, payload: Any) -> AuthUser:
        data = _require_dict(payload)
        return cls(
            user_id=_require_str(data, "userId"),
            initials=_optional_str(data, "initials"),
            full_name=_optional_str(data, "fullName"),
        )

    def to_json(self) -> dict[str, Any]:
        return {"userId": self.user_id, "initials": self.initials, "fullName": self.full_name}


@dataclass(frozen=True, slots=True)
class AuthResponse:
    token: str
    user: AuthUser

    @classmethod
    def from_json(cls, payload: Any) -> AuthResponse:
        data = _require_dict(payload)
        return cls(
            token=_require_str(data, "token"),
            user=AuthUser.from_json(data.get("userResponse")),
        )
