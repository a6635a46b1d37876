"""Change events for the realtime feed.

A ``ChangeEvent`` describes one committed mutation of a content table. Each
subscriber sees it only when its row filter matches and the row is visible to
it; a row that stops being visible arrives as a DELETE carrying only its id.
"""
import enum
import uuid
from dataclasses import dataclass, field
from typing import Any

from app.models.content import ContentKind
from app.services.permission_service import Actor, RecordState, can_see


class ChangeType(str, enum.Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass
class ChangeEvent:
    table: ContentKind
    type: ChangeType
    new: dict[str, Any] | None = None
    old: dict[str, Any] | None = None

    @property
    def record_id(self) -> str | None:
        row = self.new or self.old or {}
        return row.get("id")

    def to_message(self) -> dict[str, Any]:
        return {
            "type": "change",
            "table": self.table.value,
            "event": self.type.value,
            "new": self.new,
            "old": self.old,
        }

    @classmethod
    def from_message(cls, message: dict[str, Any]) -> "ChangeEvent":
        return cls(
            table=ContentKind(message["table"]),
            type=ChangeType(message["event"]),
            new=message.get("new"),
            old=message.get("old"),
        )


_OPERATORS = ("eq", "neq")


@dataclass(frozen=True)
class RowFilter:
    """``column=op.value`` filter, e.g. ``organization_id=eq.<uuid>``."""

    column: str
    op: str
    value: str

    @classmethod
    def parse(cls, text: str) -> "RowFilter":
        column, sep, rest = text.partition("=")
        op, dot, value = rest.partition(".")
        if not sep or not dot or not column or op not in _OPERATORS:
            raise ValueError(f"Unsupported filter: {text!r}")
        return cls(column=column.strip(), op=op, value=value)

    def matches(self, row: dict[str, Any]) -> bool:
        if self.column not in row:
            return False
        equal = _as_text(row[self.column]) == self.value
        return equal if self.op == "eq" else not equal


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


@dataclass
class Subscription:
    table: ContentKind
    row_filter: RowFilter | None = None

    def matches(self, row: dict[str, Any] | None) -> bool:
        if row is None:
            return False
        return self.row_filter is None or self.row_filter.matches(row)


@dataclass
class Subscriber:
    """One realtime connection: who it is and what it listens to."""

    actor: Actor | None
    subscriptions: list[Subscription] = field(default_factory=list)


def state_of_row(row: dict[str, Any]) -> RecordState:
    created_by = row.get("created_by")
    return RecordState(
        organization_id=uuid.UUID(str(row["organization_id"])),
        approved=bool(row.get("approved")),
        archived=bool(row.get("archived")),
        created_by=uuid.UUID(str(created_by)) if created_by else None,
    )


def _visible(row: dict[str, Any] | None, actor: Actor | None) -> bool:
    return row is not None and "organization_id" in row and can_see(state_of_row(row), actor)


def message_for(event: ChangeEvent, subscriber: Subscriber) -> dict[str, Any] | None:
    """The message this subscriber should receive for ``event``, or None."""
    subs = [s for s in subscriber.subscriptions if s.table == event.table]
    if not subs:
        return None
    actor = subscriber.actor
    deletion = ChangeEvent(event.table, ChangeType.DELETE, old={"id": event.record_id})

    if event.type == ChangeType.DELETE:
        if any(s.matches(event.old) for s in subs) and _visible(event.old, actor):
            return deletion.to_message()
        return None

    if any(s.matches(event.new) for s in subs) and _visible(event.new, actor):
        visible_event = ChangeEvent(event.table, event.type, new=event.new, old={"id": event.record_id})
        return visible_event.to_message()

    if event.type == ChangeType.UPDATE:
        # Previously matching rows must disappear from the subscriber's view.
        previously = event.old if event.old and "organization_id" in event.old else None
        if previously is not None and not (
            any(s.matches(previously) for s in subs) and _visible(previously, actor)
        ):
            return None
        if previously is None and not any(s.matches(event.new) for s in subs):
            return None
        return deletion.to_message()
    return None


def apply_change(items: list[dict[str, Any]], message: dict[str, Any]) -> list[dict[str, Any]]:
    """Merge one delivered change message into a locally held list of rows.

    Keyed by id, so an optimistic local insert followed by its realtime echo
    leaves exactly one row. Deleted and archived rows are dropped.
    """
    event = message.get("event")
    new = message.get("new")
    record_id = (new or message.get("old") or {}).get("id")
    if record_id is None:
        return list(items)

    remaining = [item for item in items if item.get("id") != record_id]
    if event == ChangeType.DELETE.value or (new and new.get("archived")):
        return remaining

    if event in (ChangeType.INSERT.value, ChangeType.UPDATE.value) and new:
        for index, item in enumerate(items):
            if item.get("id") == record_id:
                tail = [row for row in items[index + 1:] if row.get("id") != record_id]
                return [*items[:index], {**item, **new}, *tail]
        return [new, *remaining]
    return list(items)
