"""
Snippet and topic types shared by every store.

Serialisation uses the camelCase keys of the MindPlace HTTP API
(``createdAt``, ``topicId``) so the same dictionaries travel over the wire
and into the local mirror files.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

from .exceptions import InvalidInputError

ALL_TOPICS = "all"


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(UTC)


def to_iso(value: datetime) -> str:
    """Format a timestamp as ISO-8601 UTC with millisecond precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


@dataclass
class Topic:
    """A named category that snippets can belong to.

    Attributes:
        id: Unique identifier (opaque remote ID or ``topic-...`` local ID)
        name: Display name, never empty
        description: Optional free text
        icon: Optional symbolic icon name
        created_at: Creation time, when the store records one
        snippet_count: Number of snippets in the topic, computed by remote
            stores at read time; absent for local topics
    """

    id: str
    name: str
    description: str | None = None
    icon: str | None = None
    created_at: datetime | None = None
    snippet_count: int | None = None

    def to_dict(self, include_count: bool = True) -> dict[str, Any]:
        """Serialize to dictionary."""
        data: dict[str, Any] = {"id": self.id, "name": self.name}
        if self.description is not None:
            data["description"] = self.description
        if self.icon is not None:
            data["icon"] = self.icon
        if self.created_at is not None:
            data["createdAt"] = to_iso(self.created_at)
        if include_count and self.snippet_count is not None:
            data["_count"] = {"snippets": self.snippet_count}
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Topic:
        """Deserialize from dictionary."""
        created = data.get("createdAt")
        count = data.get("_count")
        return cls(
            id=str(data["id"]),
            name=data["name"],
            description=data.get("description"),
            icon=data.get("icon"),
            created_at=parse_iso(created) if created else None,
            snippet_count=count.get("snippets") if isinstance(count, dict) else None,
        )


@dataclass
class Snippet:
    """A named piece of markdown text.

    ``topic`` is a read-time projection of ``topic_id``: stores attach it
    when returning snippets, the local mirror never persists it.
    """

    id: str
    name: str
    content: str
    created_at: datetime = field(default_factory=utc_now)
    topic_id: str | None = None
    topic: Topic | None = None

    def to_dict(self, include_topic: bool = True) -> dict[str, Any]:
        """Serialize to dictionary."""
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "content": self.content,
            "createdAt": to_iso(self.created_at),
        }
        if self.topic_id is not None:
            data["topicId"] = self.topic_id
        if include_topic and self.topic is not None:
            data["topic"] = self.topic.to_dict(include_count=False)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Snippet:
        """Deserialize from dictionary."""
        topic = data.get("topic")
        return cls(
            id=str(data["id"]),
            name=data["name"],
            content=data["content"],
            created_at=parse_iso(data["createdAt"]),
            topic_id=data.get("topicId"),
            topic=Topic.from_dict(topic) if topic else None,
        )


@dataclass
class LibrarySnapshot:
    """Snippets and topics read together, plus the mode they came from."""

    snippets: list[Snippet]
    topics: list[Topic]
    using_local_storage: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "snippets": [s.to_dict() for s in self.snippets],
            "topics": [t.to_dict() for t in self.topics],
            "usingLocalStorage": self.using_local_storage,
        }


def validate_snippet_input(name: str | None, content: str | None) -> None:
    """Reject a snippet creation request with an empty name or content.

    Raises:
        InvalidInputError: If name or content is missing or empty
    """
    if not name:
        raise InvalidInputError("name")
    if not content:
        raise InvalidInputError("content")


def validate_topic_input(name: str | None) -> None:
    """Reject a topic creation request with an empty name."""
    if not name:
        raise InvalidInputError("name")


def attach_topics(snippets: Iterable[Snippet], topics: Iterable[Topic]) -> list[Snippet]:
    """Project each snippet's topic from the current topic collection.

    Snippets whose ``topic_id`` no longer resolves keep the ID but lose the
    snapshot, so a stale embedded copy is never shown.
    """
    by_id = {t.id: replace(t, snippet_count=None) for t in topics}
    return [replace(s, topic=by_id.get(s.topic_id) if s.topic_id else None) for s in snippets]


def filter_by_topic(snippets: Iterable[Snippet], topic_id: str | None) -> list[Snippet]:
    """Select snippets belonging to a topic.

    ``None`` or ``"all"`` selects every snippet.
    """
    if topic_id is None or topic_id == ALL_TOPICS:
        return list(snippets)
    return [
        s
        for s in snippets
        if s.topic_id == topic_id or (s.topic is not None and s.topic.id == topic_id)
    ]


def sort_snippets(snippets: Iterable[Snippet]) -> list[Snippet]:
    """Order snippets newest first."""
    return sorted(snippets, key=lambda s: s.created_at, reverse=True)


def sort_topics(topics: Iterable[Topic]) -> list[Topic]:
    """Order topics by name ascending."""
    return sorted(topics, key=lambda t: t.name)
