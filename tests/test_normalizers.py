"""Unit tests for row normalizers.

Covers key resolution across camelCase / lowercase / snake_case columns,
documented defaults for missing fields, type coercion, the task completion
invariant, and the fixed-point property on canonical records.
"""

from __future__ import annotations

import pytest

from src.brokerdesk.sync.normalizers import (
    candidate_keys,
    compute_duration,
    normalize_event,
    normalize_lead,
    normalize_message,
    normalize_property,
    normalize_task,
    normalize_transaction,
    parse_sortable_date,
    pick,
)
from src.brokerdesk.sync.schemas import (
    EventColor,
    LeadStatus,
    TaskPriority,
    TransactionType,
)

CREATED = "2026-03-01T10:00:00+00:00"


# ── Key Resolution ──────────────────────────────────────────────────────────


class TestKeyResolution:
    """candidate_keys and pick resolve the three column conventions."""

    def test_candidate_keys_order(self):
        assert candidate_keys("lastContact") == ("lastContact", "lastcontact", "last_contact")

    def test_candidate_keys_single_word_deduplicated(self):
        assert candidate_keys("name") == ("name",)

    def test_pick_prefers_camel_case(self):
        row = {"lastContact": "a", "lastcontact": "b", "last_contact": "c"}
        assert pick(row, "lastContact") == "a"

    def test_pick_skips_empty_values(self):
        row = {"lastContact": "", "lastcontact": None, "last_contact": "c"}
        assert pick(row, "lastContact") == "c"

    def test_pick_default_when_absent(self):
        assert pick({}, "lastContact", "fallback") == "fallback"


# ── Camel vs Snake Equivalence ──────────────────────────────────────────────


class TestCasingEquivalence:
    """Semantically equivalent rows in different casings normalize identically."""

    def test_lead(self):
        camel = {
            "id": "l1", "name": "Ann", "email": "ann@example.com", "status": "qualified",
            "lastContact": "2026-03-02T09:00:00Z", "createdAt": CREATED,
        }
        lower = {
            "id": "l1", "name": "Ann", "email": "ann@example.com", "status": "qualified",
            "lastcontact": "2026-03-02T09:00:00Z", "createdat": CREATED,
        }
        snake = {
            "id": "l1", "name": "Ann", "email": "ann@example.com", "status": "qualified",
            "last_contact": "2026-03-02T09:00:00Z", "created_at": CREATED,
        }
        assert normalize_lead(camel) == normalize_lead(lower) == normalize_lead(snake)

    def test_task(self):
        camel = {
            "id": "t1", "title": "Call", "dueDate": "2026-03-05", "priority": "high",
            "completed": True, "completedAt": "2026-03-04T12:00:00Z", "createdAt": CREATED,
        }
        snake = {
            "id": "t1", "title": "Call", "due_date": "2026-03-05", "priority": "high",
            "completed": True, "completed_at": "2026-03-04T12:00:00Z", "created_at": CREATED,
        }
        assert normalize_task(camel) == normalize_task(snake)

    def test_event(self):
        camel = {
            "id": "e1", "title": "Viewing", "date": "2026-03-06",
            "startTime": "14:00", "endTime": "15:30", "color": "green", "createdAt": CREATED,
        }
        lower = {
            "id": "e1", "title": "Viewing", "date": "2026-03-06",
            "starttime": "14:00", "endtime": "15:30", "color": "green", "createdat": CREATED,
        }
        assert normalize_event(camel) == normalize_event(lower)

    def test_transaction(self):
        base = {
            "id": "x1", "date": "2026-03-07", "description": "Commission", "type": "income",
            "category": "Sales", "amount": 1200, "method": "wire", "reference": "INV-7",
        }
        camel = {**base, "createdAt": CREATED}
        lower = {**base, "createdat": CREATED}
        snake = {**base, "created_at": CREATED}
        assert (
            normalize_transaction(camel)
            == normalize_transaction(lower)
            == normalize_transaction(snake)
        )

    def test_message_date_from_creation_column(self):
        base = {"id": "m1", "sender": "Bo", "email": "bo@example.com", "read": True}
        camel = {**base, "createdAt": CREATED}
        lower = {**base, "createdat": CREATED}
        snake = {**base, "created_at": CREATED}
        assert normalize_message(camel) == normalize_message(lower) == normalize_message(snake)
        assert normalize_message(camel).date == CREATED

    def test_property_listing_vs_legacy(self):
        listing = {
            "id": "p1", "name": "Loft", "address": "1 Quay", "price": 250000,
            "image_urls": ["a.jpg", "b.jpg"], "energy_class": "B",
            "pets_allowed": True, "created_at": CREATED,
        }
        legacy = {
            "id": "p1", "name": "Loft", "address": "1 Quay", "price": "250000",
            "images": ["a.jpg", "b.jpg"], "energyClass": "B",
            "petsAllowed": "true", "createdat": CREATED,
        }
        assert normalize_property(listing) == normalize_property(legacy)


# ── Defaults ────────────────────────────────────────────────────────────────


class TestDefaults:
    """Missing fields resolve to their documented defaults."""

    def test_lead_defaults(self):
        lead = normalize_lead({"id": "l1", "createdAt": CREATED})
        assert lead.status == LeadStatus.NEW
        assert lead.name == ""
        assert lead.last_contact == CREATED

    def test_lead_unknown_status_falls_back(self):
        assert normalize_lead({"id": "l1", "status": "archived"}).status == LeadStatus.NEW

    def test_lead_status_is_case_insensitive(self):
        assert normalize_lead({"id": "l1", "status": "Contacted"}).status == LeadStatus.CONTACTED

    def test_task_defaults(self):
        task = normalize_task({"id": "t1"})
        assert task.priority == TaskPriority.MEDIUM
        assert task.category == "General"
        assert task.completed is False
        assert task.completed_at is None
        assert task.due_date

    def test_event_defaults(self):
        event = normalize_event({"id": "e1"})
        assert event.start_time == "09:00"
        assert event.end_time == "10:00"
        assert event.color == EventColor.BLUE
        assert event.duration == "1h"

    def test_event_keeps_stored_duration(self):
        event = normalize_event({"id": "e1", "startTime": "09:00", "endTime": "09:45", "duration": "45 min"})
        assert event.duration == "45 min"

    def test_transaction_defaults(self):
        tx = normalize_transaction({"id": "x1"})
        assert tx.amount == 0
        assert tx.type == TransactionType.EXPENSE
        assert tx.reference is None

    def test_transaction_negative_amount_uses_magnitude(self):
        assert normalize_transaction({"id": "x1", "amount": "-120.5"}).amount == 120.5

    def test_transaction_non_numeric_amount(self):
        assert normalize_transaction({"id": "x1", "amount": "n/a"}).amount == 0

    def test_property_defaults(self):
        prop = normalize_property({"id": "p1"})
        assert prop.status == "active"
        assert prop.price == 0
        assert prop.images == []
        assert prop.pets_allowed is None

    def test_property_postgres_array_literal(self):
        prop = normalize_property({"id": "p1", "images": "{a.jpg,b.jpg}"})
        assert prop.images == ["a.jpg", "b.jpg"]

    def test_property_images_preferred_over_image_urls(self):
        prop = normalize_property({"id": "p1", "images": ["x.jpg"], "image_urls": ["y.jpg"]})
        assert prop.images == ["x.jpg"]

    def test_message_date_falls_back_to_created(self):
        message = normalize_message({"id": "m1", "created_at": CREATED, "read": "false"})
        assert message.date == CREATED
        assert message.read is False


# ── Task Completion Invariant ───────────────────────────────────────────────


class TestTaskCompletion:
    """completed is true if and only if completed_at is set."""

    def test_completed_without_timestamp_takes_created_at(self):
        task = normalize_task({"id": "t1", "completed": True, "createdAt": CREATED})
        assert task.completed_at == CREATED

    def test_open_task_drops_stale_timestamp(self):
        task = normalize_task({"id": "t1", "completed": False, "completedAt": CREATED})
        assert task.completed_at is None

    @pytest.mark.parametrize("raw", [True, "true", 1, "t"])
    def test_truthy_completed_values(self, raw):
        task = normalize_task({"id": "t1", "completed": raw})
        assert task.completed is True
        assert task.completed_at is not None


# ── Fixed Point ─────────────────────────────────────────────────────────────


class TestFixedPoint:
    """Normalizing a canonical record again changes nothing."""

    @pytest.mark.parametrize(
        ("normalize", "row"),
        [
            (normalize_lead, {"id": "l1", "name": "Ann", "status": "lost", "created_at": CREATED}),
            (normalize_task, {"id": "t1", "title": "x", "completed": True, "created_at": CREATED}),
            (normalize_event, {"id": "e1", "startTime": "08:15", "endTime": "09:00", "createdAt": CREATED}),
            (normalize_transaction, {"id": "x1", "amount": -5, "type": "income", "createdAt": CREATED}),
            (normalize_property, {"id": "p1", "image_urls": ["a"], "pets_allowed": 0, "createdAt": CREATED}),
            (normalize_message, {"id": "m1", "sender": "Bo", "date": CREATED}),
        ],
    )
    @pytest.mark.parametrize("by_alias", [True, False])
    def test_normalize_is_idempotent(self, normalize, row, by_alias):
        once = normalize(row)
        twice = normalize(once.model_dump(mode="json", by_alias=by_alias))
        assert twice == once


# ── Helpers ─────────────────────────────────────────────────────────────────


class TestHelpers:
    @pytest.mark.parametrize(
        ("start", "end", "expected"),
        [
            ("09:00", "10:00", "1h"),
            ("09:00", "09:45", "45m"),
            ("09:15", "11:00", "1h 45m"),
            ("10:00", "09:00", "30m"),
            (None, "10:00", "30m"),
            ("bad", "10:00", "30m"),
        ],
    )
    def test_compute_duration(self, start, end, expected):
        assert compute_duration(start, end) == expected

    def test_parse_sortable_date_orders_iso_strings(self):
        assert parse_sortable_date("2026-03-02T00:00:00Z") > parse_sortable_date("2026-03-01")

    def test_parse_sortable_date_unparseable_is_zero(self):
        assert parse_sortable_date("next tuesday") == 0.0
        assert parse_sortable_date(None) == 0.0
