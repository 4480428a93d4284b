"""Pydantic schemas for the dashboard's canonical entities.

Defines:
- Enums: LeadStatus, TaskPriority, EventColor, TransactionType, UserRole, ViewName
- Canonical records: Lead, Task, CalendarEvent, Transaction, Property, Message
- Form payloads: *Create (validated submissions) and *Update (partial patches)
- Local preferences: UserProfile, AppSettings

Attributes are snake_case with camelCase aliases, so a canonical record dumped
``by_alias`` matches the camelCase remote shape and normalizes back to itself.
Timestamps stay ISO-8601 strings, exactly as the remote store returns them.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class CamelModel(BaseModel):
    """Base model accepting both field names and camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PatchModel(CamelModel):
    """Partial update. Omitted fields are left alone; only ``nullable`` fields may be cleared."""

    nullable: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="after")
    def _reject_null(self) -> PatchModel:
        cleared = sorted(
            name
            for name in self.model_fields_set
            if getattr(self, name) is None and name not in self.nullable
        )
        if cleared:
            raise ValueError(f"fields cannot be cleared: {', '.join(cleared)}")
        return self


# ── Enums ───────────────────────────────────────────────────────────────────


class LeadStatus(str, Enum):
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    LOST = "lost"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class EventColor(str, Enum):
    BLUE = "blue"
    GREEN = "green"
    ORANGE = "orange"
    PURPLE = "purple"


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class UserRole(str, Enum):
    """Role label deciding which views a signed-in user may reach."""

    ADMIN = "admin"
    OWNER = "owner"
    MAINTENANCE = "maintenance"
    RENTER = "renter"


class ViewName(str, Enum):
    DASHBOARD = "dashboard"
    INBOX = "inbox"
    LEADS = "leads"
    PROPERTIES = "properties"
    TASKS = "tasks"
    CALENDAR = "calendar"
    FINANCE = "finance"
    REPORTS = "reports"
    SETTINGS = "settings"
    TOOLS = "tools"


# ── Leads ───────────────────────────────────────────────────────────────────


class Lead(CamelModel):
    id: str
    name: str = ""
    email: str = ""
    phone: str = ""
    status: LeadStatus = LeadStatus.NEW
    source: str = ""
    notes: str = ""
    last_contact: str
    created_at: str


class LeadCreate(CamelModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=1)
    phone: str = ""
    status: LeadStatus = LeadStatus.NEW
    source: str = "website"
    notes: str = ""
    last_contact: str = Field(default_factory=utc_now_iso)
    created_at: str = Field(default_factory=utc_now_iso)


class LeadUpdate(PatchModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    status: LeadStatus | None = None
    source: str | None = None
    notes: str | None = None
    last_contact: str | None = None
    created_at: str | None = None


# ── Tasks ───────────────────────────────────────────────────────────────────


class Task(CamelModel):
    """A to-do item. ``completed_at`` is set if and only if ``completed``."""

    id: str
    title: str = ""
    description: str = ""
    due_date: str
    priority: TaskPriority = TaskPriority.MEDIUM
    category: str = "General"
    completed: bool = False
    completed_at: str | None = None
    created_at: str

    @model_validator(mode="after")
    def _completion_invariant(self) -> Task:
        if not self.completed:
            self.completed_at = None
        elif not self.completed_at:
            self.completed_at = utc_now_iso()
        return self


class TaskCreate(CamelModel):
    title: str = Field(min_length=1)
    description: str = ""
    due_date: str = Field(default_factory=utc_now_iso)
    priority: TaskPriority = TaskPriority.MEDIUM
    category: str = "General"
    completed: bool = False
    completed_at: str | None = None
    created_at: str = Field(default_factory=utc_now_iso)

    @model_validator(mode="after")
    def _completion_invariant(self) -> TaskCreate:
        if not self.completed:
            self.completed_at = None
        elif not self.completed_at:
            self.completed_at = utc_now_iso()
        return self


class TaskUpdate(PatchModel):
    nullable: ClassVar[frozenset[str]] = frozenset({"completed_at"})

    title: str | None = None
    description: str | None = None
    due_date: str | None = None
    priority: TaskPriority | None = None
    category: str | None = None
    completed: bool | None = None
    completed_at: str | None = None


# ── Calendar events ─────────────────────────────────────────────────────────


class CalendarEvent(CamelModel):
    id: str
    title: str = ""
    description: str = ""
    date: str = ""
    start_time: str = "09:00"
    end_time: str = "10:00"
    color: EventColor = EventColor.BLUE
    duration: str = "30m"
    created_at: str


class CalendarEventCreate(CamelModel):
    title: str = Field(min_length=1)
    description: str = ""
    date: str = Field(default_factory=lambda: utc_now_iso()[:10])
    start_time: str = "09:00"
    end_time: str = "10:00"
    color: EventColor = EventColor.BLUE
    duration: str | None = None
    created_at: str = Field(default_factory=utc_now_iso)


class CalendarEventUpdate(PatchModel):
    title: str | None = None
    description: str | None = None
    date: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    color: EventColor | None = None
    duration: str | None = None


# ── Transactions ────────────────────────────────────────────────────────────


class Transaction(CamelModel):
    id: str
    date: str = ""
    description: str = ""
    type: TransactionType = TransactionType.EXPENSE
    category: str = ""
    amount: float = Field(default=0.0, ge=0)
    method: str = ""
    reference: str | None = None
    created_at: str


class TransactionCreate(CamelModel):
    date: str = Field(default_factory=lambda: utc_now_iso()[:10])
    description: str = Field(min_length=1)
    type: TransactionType
    category: str = ""
    amount: float = Field(ge=0)
    method: str = ""
    reference: str | None = None
    created_at: str = Field(default_factory=utc_now_iso)


class TransactionUpdate(PatchModel):
    nullable: ClassVar[frozenset[str]] = frozenset({"reference"})

    date: str | None = None
    description: str | None = None
    type: TransactionType | None = None
    category: str | None = None
    amount: float | None = Field(default=None, ge=0)
    method: str | None = None
    reference: str | None = None


# ── Properties ──────────────────────────────────────────────────────────────


class Property(CamelModel):
    """A listing, whichever remote table ("listings" or legacy "properties") holds it."""

    id: str
    name: str = ""
    address: str = ""
    price: float = 0.0
    type: str = ""
    bedrooms: float | None = None
    bathrooms: float | None = None
    size: float | None = None
    status: str = "active"
    images: list[str] = Field(default_factory=list)
    energy_class: str | None = None
    pets_allowed: bool | None = None
    coordinates: Any = None
    created_at: str


class PropertyCreate(CamelModel):
    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    price: float = Field(default=0.0, ge=0)
    type: str = "apartment"
    bedrooms: float | None = None
    bathrooms: float | None = None
    size: float | None = None
    status: str = "active"
    images: list[str] = Field(default_factory=list)
    energy_class: str | None = None
    pets_allowed: bool | None = None
    coordinates: Any = None
    created_at: str = Field(default_factory=utc_now_iso)


class PropertyUpdate(PatchModel):
    nullable: ClassVar[frozenset[str]] = frozenset(
        {"bedrooms", "bathrooms", "size", "energy_class", "pets_allowed", "coordinates"}
    )

    name: str | None = None
    address: str | None = None
    price: float | None = Field(default=None, ge=0)
    type: str | None = None
    bedrooms: float | None = None
    bathrooms: float | None = None
    size: float | None = None
    status: str | None = None
    images: list[str] | None = None
    energy_class: str | None = None
    pets_allowed: bool | None = None
    coordinates: Any = None


# ── Messages ────────────────────────────────────────────────────────────────


class Message(CamelModel):
    id: str
    sender: str = ""
    email: str = ""
    subject: str = ""
    body: str = ""
    date: str
    read: bool = False
    starred: bool = False


class MessageCreate(CamelModel):
    sender: str = Field(min_length=1)
    email: str = Field(min_length=1)
    subject: str = ""
    body: str = ""
    date: str = Field(default_factory=utc_now_iso)
    read: bool = False
    starred: bool = False


class MessageUpdate(PatchModel):
    sender: str | None = None
    email: str | None = None
    subject: str | None = None
    body: str | None = None
    read: bool | None = None
    starred: bool | None = None


# ── Local preferences ───────────────────────────────────────────────────────


class UserProfile(CamelModel):
    name: str = "Broker"
    email: str = ""
    phone: str = ""
    role: str = "Broker / Agent"


class AppSettings(CamelModel):
    """Per-install preferences. Persisted locally, never stored remotely."""

    profile: UserProfile = Field(default_factory=UserProfile)
    notify_email: bool = True
    notify_push: bool = True
    notify_sms: bool = False
    dark_mode: bool = False
    language: str = "en"
    timezone: str = "UTC"
