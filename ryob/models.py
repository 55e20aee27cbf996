from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

from .ids import PostId, TopicId, UserId


def _utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class User:
    id: UserId
    user_name: str
    password_hash: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any], prefix: str = "") -> "User":
        return cls(
            id=UserId(row[prefix + "id"]),
            user_name=row[prefix + "user_name"],
            password_hash=row[prefix + "password_hash"],
        )


@dataclass(frozen=True)
class Topic:
    id: TopicId
    title: str
    created_by: UserId
    created_at: datetime

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Topic":
        return cls(
            id=TopicId(row["id"]),
            title=row["title"],
            created_by=UserId(row["created_by"]),
            created_at=_utc(row["created_at"]),
        )


@dataclass(frozen=True)
class Post:
    id: PostId
    posted_in: TopicId
    created_by: UserId
    created_at: datetime
    content: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Post":
        return cls(
            id=PostId(row["id"]),
            posted_in=TopicId(row["posted_in"]),
            created_by=UserId(row["created_by"]),
            created_at=_utc(row["created_at"]),
            content=row["content"],
        )
