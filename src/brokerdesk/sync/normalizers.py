"""Row normalizers: remote rows of unknown casing -> canonical records.

The remote tables have been deployed with three column conventions for the
same field (``lastContact``, ``lastcontact``, ``last_contact``). Every
canonical field is resolved by checking those keys in that order and then
falling back to a documented default, so an incomplete or oddly-typed row
still yields a valid record instead of raising.

Normalizing a canonical record, dumped either by alias or by field name, is a
fixed point.
"""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, TypeVar

from src.brokerdesk.sync.schemas import (
    CalendarEvent,
    EventColor,
    Lead,
    LeadStatus,
    Message,
    Property,
    Task,
    TaskPriority,
    Transaction,
    TransactionType,
    utc_now_iso,
)

E = TypeVar("E", bound=Enum)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


# ── Key resolution ──────────────────────────────────────────────────────────


def candidate_keys(camel: str) -> tuple[str, ...]:
    """Return ``(camelCase, lowercase, snake_case)`` spellings, without duplicates.

    >>> candidate_keys("lastContact")
    ('lastContact', 'lastcontact', 'last_contact')
    """
    keys = [camel, camel.lower(), _CAMEL_BOUNDARY.sub("_", camel).lower()]
    return tuple(dict.fromkeys(keys))


def pick(row: dict[str, Any], camel: str, default: Any = None) -> Any:
    """First non-empty value among the spellings of ``camel``, else ``default``."""
    for key in candidate_keys(camel):
        value = row.get(key)
        if value is not None and value != "":
            return value
    return default


# ── Coercion helpers ────────────────────────────────────────────────────────


def _text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    if isinstance(value, str):
        return value
    return str(value)


def _optional_text(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return _text(value)


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "t", "1", "yes", "y")
    if isinstance(value, (int, float)):
        return value != 0
    return False


def _optional_flag(value: Any) -> bool | None:
    if value is None or value == "":
        return None
    return _flag(value)


def _optional_number(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _number(value: Any, default: float = 0.0) -> float:
    number = _optional_number(value)
    return default if number is None else number


def _choice(value: Any, enum_cls: type[E], default: E) -> E:
    if value is None:
        return default
    try:
        return enum_cls(_text(value).strip().lower())
    except ValueError:
        return default


def _string_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [_text(v) for v in value if v is not None and v != ""]
    if isinstance(value, str):
        stripped = value.strip()
        # Postgres text[] literal that bypassed JSON encoding: {a,b}
        if stripped.startswith("{") and stripped.endswith("}"):
            inner = stripped[1:-1]
            return [p.strip().strip('"') for p in inner.split(",") if p.strip()]
        return [stripped] if stripped else []
    return []


# ── Dates ───────────────────────────────────────────────────────────────────


def parse_sortable_date(value: Any) -> float:
    """POSIX timestamp for sorting; 0 when absent or unparseable."""
    if not value:
        return 0.0
    if isinstance(value, datetime):
        parsed = value
    else:
        text = _text(value).strip().replace("Z", "+00:00")
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return 0.0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def compute_duration(start_time: str | None, end_time: str | None) -> str:
    """Display duration between two ``HH:MM`` times, e.g. ``"1h 30m"``.

    Falls back to ``"30m"`` when either time is missing or malformed or the
    end is not after the start.
    """
    if not start_time or not end_time:
        return "30m"
    try:
        sh, sm = (int(p) for p in start_time.split(":")[:2])
        eh, em = (int(p) for p in end_time.split(":")[:2])
    except ValueError:
        return "30m"
    diff = (eh * 60 + em) - (sh * 60 + sm)
    if diff <= 0:
        return "30m"
    hours, minutes = divmod(diff, 60)
    if not hours:
        return f"{minutes}m"
    if not minutes:
        return f"{hours}h"
    return f"{hours}h {minutes}m"


# ── Entity normalizers ──────────────────────────────────────────────────────


def _created_at(row: dict[str, Any]) -> str:
    return _text(pick(row, "createdAt"), utc_now_iso())


def normalize_lead(row: dict[str, Any]) -> Lead:
    created_at = _created_at(row)
    return Lead(
        id=_text(row.get("id")),
        name=_text(pick(row, "name")),
        email=_text(pick(row, "email")),
        phone=_text(pick(row, "phone")),
        status=_choice(pick(row, "status"), LeadStatus, LeadStatus.NEW),
        source=_text(pick(row, "source")),
        notes=_text(pick(row, "notes")),
        last_contact=_text(pick(row, "lastContact"), created_at),
        created_at=created_at,
    )


def normalize_task(row: dict[str, Any]) -> Task:
    """Normalize a task row; ``completed_at`` is kept only for completed tasks.

    A completed task without a completion time takes its creation time.
    """
    created_at = _created_at(row)
    completed = _flag(pick(row, "completed", False))
    completed_at = _optional_text(pick(row, "completedAt")) if completed else None
    if completed and completed_at is None:
        completed_at = created_at
    return Task(
        id=_text(row.get("id")),
        title=_text(pick(row, "title")),
        description=_text(pick(row, "description")),
        due_date=_text(pick(row, "dueDate"), utc_now_iso()),
        priority=_choice(pick(row, "priority"), TaskPriority, TaskPriority.MEDIUM),
        category=_text(pick(row, "category"), "General"),
        completed=completed,
        completed_at=completed_at,
        created_at=created_at,
    )


def normalize_event(row: dict[str, Any]) -> CalendarEvent:
    start_time = _text(pick(row, "startTime"), "09:00")
    end_time = _text(pick(row, "endTime"), "10:00")
    return CalendarEvent(
        id=_text(row.get("id")),
        title=_text(pick(row, "title")),
        description=_text(pick(row, "description")),
        date=_text(pick(row, "date")),
        start_time=start_time,
        end_time=end_time,
        color=_choice(pick(row, "color"), EventColor, EventColor.BLUE),
        duration=_text(pick(row, "duration"), compute_duration(start_time, end_time)),
        created_at=_created_at(row),
    )


def normalize_transaction(row: dict[str, Any]) -> Transaction:
    """Normalize a transaction row. Negative amounts are stored by magnitude."""
    return Transaction(
        id=_text(row.get("id")),
        date=_text(pick(row, "date")),
        description=_text(pick(row, "description")),
        type=_choice(pick(row, "type"), TransactionType, TransactionType.EXPENSE),
        category=_text(pick(row, "category")),
        amount=abs(_number(pick(row, "amount"))),
        method=_text(pick(row, "method")),
        reference=_optional_text(pick(row, "reference")),
        created_at=_created_at(row),
    )


def normalize_property(row: dict[str, Any]) -> Property:
    """Normalize a row from either the ``listings`` or legacy ``properties`` table."""
    images = pick(row, "images")
    if images is None:
        images = pick(row, "imageUrls")
    return Property(
        id=_text(row.get("id")),
        name=_text(pick(row, "name")),
        address=_text(pick(row, "address")),
        price=_number(pick(row, "price")),
        type=_text(pick(row, "type")),
        bedrooms=_optional_number(pick(row, "bedrooms")),
        bathrooms=_optional_number(pick(row, "bathrooms")),
        size=_optional_number(pick(row, "size")),
        status=_text(pick(row, "status"), "active"),
        images=_string_list(images),
        energy_class=_optional_text(pick(row, "energyClass")),
        pets_allowed=_optional_flag(pick(row, "petsAllowed")),
        coordinates=pick(row, "coordinates"),
        created_at=_created_at(row),
    )


def normalize_message(row: dict[str, Any]) -> Message:
    return Message(
        id=_text(row.get("id")),
        sender=_text(pick(row, "sender")),
        email=_text(pick(row, "email")),
        subject=_text(pick(row, "subject")),
        body=_text(pick(row, "body")),
        date=_text(pick(row, "date"), _created_at(row)),
        read=_flag(pick(row, "read", False)),
        starred=_flag(pick(row, "starred", False)),
    )
