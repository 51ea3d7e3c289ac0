"""Common domain models for mcmapi."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar

R = TypeVar("R", bound="_Record")


class RequestKind(str, Enum):
    READ = "read"
    WRITE = "write"

    @classmethod
    def for_method(cls, method: str) -> "RequestKind":
        return cls.READ if method.upper() in {"GET", "HEAD"} else cls.WRITE


@dataclass(slots=True)
class SortOptions:
    """Sorting and paging parameters accepted by list endpoints."""

    sort: Optional[str] = None
    order: Optional[str] = None
    page: Optional[int] = None

    def to_params(self) -> List[Tuple[str, str]]:
        params: List[Tuple[str, str]] = []
        if self.sort:
            params.append(("sort", self.sort))
        if self.order:
            params.append(("order", self.order))
        if self.page is not None:
            if self.page < 1:
                raise ValueError("page must be a positive integer")
            params.append(("page", str(self.page)))
        return params


class _Record:
    __slots__ = ()

    @classmethod
    def from_payload(cls: Type[R], payload: Any) -> R:
        if not isinstance(payload, dict):
            raise ValueError(f"Expected an object for {cls.__name__}, got {type(payload).__name__}")
        values = {item.name: payload[item.name] for item in fields(cls) if item.name in payload}
        return cls(**values)

    @classmethod
    def from_list(cls: Type[R], payload: Any) -> List[R]:
        return [cls.from_payload(entry) for entry in payload or []]


@dataclass(slots=True)
class Member(_Record):
    member_id: int = 0
    username: str = ""
    join_date: int = 0
    last_activity_date: Optional[int] = None
    gender: Optional[str] = None
    timezone: Optional[str] = None
    banned: bool = False
    suspended: bool = False
    restricted: bool = False
    disabled: bool = False
    post_count: int = 0
    resource_count: int = 0
    purchase_count: int = 0
    feedback_positive: int = 0
    feedback_neutral: int = 0
    feedback_negative: int = 0

    @property
    def feedback_total(self) -> int:
        return self.feedback_positive - self.feedback_negative


@dataclass(slots=True)
class ProfilePost(_Record):
    profile_post_id: int = 0
    author_id: int = 0
    post_date: int = 0
    message: str = ""
    comment_count: int = 0


@dataclass(slots=True)
class Ban(_Record):
    member_id: int = 0
    banned_by_id: int = 0
    ban_date: int = 0
    reason: str = ""


@dataclass(slots=True)
class BasicResource(_Record):
    resource_id: int = 0
    author_id: int = 0
    title: str = ""
    tag_line: str = ""
    price: float = 0.0
    currency: str = ""


@dataclass(slots=True)
class Resource(_Record):
    resource_id: int = 0
    author_id: int = 0
    title: str = ""
    tag_line: str = ""
    description: str = ""
    release_date: int = 0
    last_update_date: int = 0
    category_title: str = ""
    current_version_id: int = 0
    discussion_thread_id: int = 0
    price: float = 0.0
    currency: str = ""
    purchase_count: int = 0
    download_count: int = 0
    review_count: int = 0
    review_average: float = 0.0


@dataclass(slots=True)
class Download(_Record):
    resource_id: int = 0
    version_id: int = 0
    downloader_id: int = 0
    download_date: int = 0


@dataclass(slots=True)
class Review(_Record):
    review_id: int = 0
    resource_id: int = 0
    version_id: int = 0
    version_name: str = ""
    reviewer_id: int = 0
    review_date: int = 0
    deleted: Optional[bool] = None
    rating: int = 0
    message: str = ""
    author_response: str = ""


@dataclass(slots=True)
class Update(_Record):
    update_id: int = 0
    title: str = ""
    message: str = ""
    deleted: Optional[bool] = None
    update_date: int = 0
    likes: int = 0


@dataclass(slots=True)
class Version(_Record):
    version_id: int = 0
    update_id: int = 0
    name: str = ""
    deleted: Optional[bool] = None
    release_date: int = 0
    download_count: int = 0


@dataclass(slots=True)
class License(_Record):
    license_id: int = 0
    purchaser_id: int = 0
    validated: bool = False
    active: bool = False
    start_date: int = 0
    end_date: int = 0
    previous_end_date: int = 0


@dataclass(slots=True)
class Purchase(_Record):
    purchase_id: int = 0
    purchaser_id: int = 0
    license_id: int = 0
    renewal: bool = False
    status: str = ""
    price: float = 0.0
    currency: str = ""
    purchase_date: int = 0
    validation_date: int = 0


@dataclass(slots=True)
class Conversation(_Record):
    conversation_id: int = 0
    title: str = ""
    creation_date: int = 0
    creator_id: int = 0
    last_message_date: int = 0
    last_read_date: int = 0
    open: bool = False
    reply_count: int = 0
    recipient_ids: List[int] = field(default_factory=list)


@dataclass(slots=True)
class ConversationReply(_Record):
    message_id: int = 0
    message_date: int = 0
    author_id: int = 0
    message: str = ""


@dataclass(slots=True)
class BasicThread(_Record):
    thread_id: int = 0
    title: str = ""
    reply_count: int = 0
    view_count: int = 0
    creation_date: int = 0
    last_message_date: int = 0


@dataclass(slots=True)
class Thread(_Record):
    thread_id: int = 0
    forum_name: str = ""
    title: str = ""
    reply_count: int = 0
    view_count: int = 0
    post_date: int = 0
    thread_type: str = ""
    thread_open: bool = False
    last_post_date: int = 0


@dataclass(slots=True)
class ThreadReply(_Record):
    reply_id: int = 0
    author_id: int = 0
    post_date: int = 0
    message: str = ""


@dataclass(slots=True)
class Alert(_Record):
    caused_member_id: int = 0
    content_type: str = ""
    content_id: int = 0
    alert_type: str = ""
    alert_date: int = 0


@dataclass(slots=True)
class MetricsInterval(_Record):
    time: int = 0
    unit: str = ""
    last: int = 0


@dataclass(slots=True)
class MetricsSnapshot:
    """Per-minute API metrics; staff only."""

    interval: MetricsInterval
    metrics: Dict[str, int]

    @classmethod
    def from_payload(cls, payload: Any) -> "MetricsSnapshot":
        if not isinstance(payload, dict):
            raise ValueError("Expected an object for MetricsSnapshot")
        metrics = payload.get("metrics") or {}
        return cls(
            interval=MetricsInterval.from_payload(payload.get("interval") or {}),
            metrics={str(key): int(value) for key, value in sorted(metrics.items())},
        )


@dataclass(slots=True)
class LicenseChange:
    """Fields for issuing or modifying a license.

    A permanent license omits ``end_date``.
    """

    purchaser_id: Optional[int] = None
    active: Optional[bool] = None
    start_date: Optional[int] = None
    end_date: Optional[int] = None

    @property
    def permanent(self) -> bool:
        return self.end_date is None

    def to_body(self) -> Dict[str, Any]:
        body = {
            "purchaser_id": self.purchaser_id,
            "active": self.active,
            "start_date": self.start_date,
            "end_date": self.end_date,
        }
        body = {key: value for key, value in body.items() if value is not None}
        body["permanent"] = self.permanent
        return body


@dataclass(slots=True)
class ProfileChange:
    """Editable fields on the authenticated member's profile."""

    custom_title: Optional[str] = None
    about_me: Optional[str] = None
    signature: Optional[str] = None

    def to_body(self) -> Dict[str, str]:
        body = {
            "custom_title": self.custom_title,
            "about_me": self.about_me,
            "signature": self.signature,
        }
        return {key: value for key, value in body.items() if value is not None}


def validate_id(value: int) -> int:
    """Return ``value`` if it is a positive integer API identifier."""

    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"Invalid identifier: {value!r}")
    return value
