"""Dashboard and report metrics derived from the entity store.

Pure read-side aggregation over the confirmed collections; nothing here
touches the remote store.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel

from src.brokerdesk.sync.normalizers import parse_sortable_date
from src.brokerdesk.sync.schemas import LeadStatus, TaskPriority, TransactionType
from src.brokerdesk.sync.store import EntityStore


class ReportMetrics(BaseModel):
    total_leads: int = 0
    new_leads: int = 0
    qualified_leads: int = 0
    lost_leads: int = 0
    conversion_rate: int = 0
    completed_tasks: int = 0
    pending_tasks: int = 0
    urgent_open_tasks: int = 0
    task_completion: int = 0
    income: float = 0.0
    expenses: float = 0.0
    net: float = 0.0
    upcoming_events: int = 0
    sold_properties: int = 0
    unread_messages: int = 0


def _percent(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole else 0


def build_report(store: EntityStore, now: datetime | None = None) -> ReportMetrics:
    """Compute headline metrics from the store's current collections.

    Upcoming events are those dated today or later (compared by day).
    """
    now = now or datetime.now(timezone.utc)
    today = parse_sortable_date(now.date().isoformat())

    leads = store.leads.items
    tasks = store.tasks.items
    transactions = store.transactions.items

    qualified = sum(1 for lead in leads if lead.status == LeadStatus.QUALIFIED)
    completed = sum(1 for task in tasks if task.completed)
    income = sum(t.amount for t in transactions if t.type == TransactionType.INCOME)
    expenses = sum(t.amount for t in transactions if t.type == TransactionType.EXPENSE)

    return ReportMetrics(
        total_leads=len(leads),
        new_leads=sum(1 for lead in leads if lead.status == LeadStatus.NEW),
        qualified_leads=qualified,
        lost_leads=sum(1 for lead in leads if lead.status == LeadStatus.LOST),
        conversion_rate=_percent(qualified, len(leads)),
        completed_tasks=completed,
        pending_tasks=len(tasks) - completed,
        urgent_open_tasks=sum(
            1 for task in tasks if task.priority == TaskPriority.URGENT and not task.completed
        ),
        task_completion=_percent(completed, len(tasks)),
        income=income,
        expenses=expenses,
        net=income - expenses,
        upcoming_events=sum(
            1 for e in store.events.items if e.date and parse_sortable_date(e.date) >= today
        ),
        sold_properties=sum(1 for p in store.properties.items if p.status == "sold"),
        unread_messages=sum(1 for m in store.messages.items if not m.read),
    )
