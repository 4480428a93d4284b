"""CRUD endpoints for the six dashboard collections.

Every route goes through the EntityStore, so the remote write (with its
schema fallback) happens before the local collection changes. Each collection
is gated by the view that shows it:

    leads -> leads, properties -> properties, tasks -> tasks,
    events -> calendar, transactions -> finance, messages -> inbox

A remote write failure surfaces as 502 (see ``src.brokerdesk.main``).
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel

from src.brokerdesk.api.deps import require_view
from src.brokerdesk.dashboard import DashboardSession
from src.brokerdesk.sync.schemas import (
    CalendarEvent,
    CalendarEventCreate,
    CalendarEventUpdate,
    Lead,
    LeadCreate,
    LeadUpdate,
    Message,
    MessageCreate,
    MessageUpdate,
    Property,
    PropertyCreate,
    PropertyUpdate,
    Task,
    TaskCreate,
    TaskUpdate,
    Transaction,
    TransactionCreate,
    TransactionUpdate,
    ViewName,
)

router = APIRouter(prefix="/api/v1", tags=["records"])


def _not_held(collection: str, record_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"{collection} record not found: {record_id}",
    )


def _register_collection(
    name: str,
    view: ViewName,
    record_model: type[BaseModel],
    create_model: type[BaseModel],
    update_model: type[BaseModel],
) -> None:
    """Add list/create/update/delete routes for one collection."""
    guard = require_view(view)

    async def list_records(dashboard: DashboardSession = Depends(guard)) -> Any:
        return list(dashboard.store.collections[name].items)

    async def create_record(
        body: create_model,  # type: ignore[valid-type]
        dashboard: DashboardSession = Depends(guard),
    ) -> Any:
        return await dashboard.store.collections[name].add(body)

    async def update_record(
        record_id: str,
        body: update_model,  # type: ignore[valid-type]
        dashboard: DashboardSession = Depends(guard),
    ) -> Any:
        collection = dashboard.store.collections[name]
        if collection.get(record_id) is None:
            raise _not_held(name, record_id)
        return await collection.update(record_id, body)

    async def delete_record(
        record_id: str,
        dashboard: DashboardSession = Depends(guard),
    ) -> Response:
        await dashboard.store.collections[name].remove(record_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    router.add_api_route(
        f"/{name}", list_records, methods=["GET"], response_model=list[record_model],
        name=f"list_{name}",
    )
    router.add_api_route(
        f"/{name}", create_record, methods=["POST"], response_model=record_model | None,
        status_code=201, name=f"create_{name}",
    )
    router.add_api_route(
        f"/{name}/{{record_id}}", update_record, methods=["PATCH"],
        response_model=record_model | None, name=f"update_{name}",
    )
    router.add_api_route(
        f"/{name}/{{record_id}}", delete_record, methods=["DELETE"], status_code=204,
        name=f"delete_{name}",
    )


_register_collection("leads", ViewName.LEADS, Lead, LeadCreate, LeadUpdate)
_register_collection("properties", ViewName.PROPERTIES, Property, PropertyCreate, PropertyUpdate)
_register_collection("tasks", ViewName.TASKS, Task, TaskCreate, TaskUpdate)
_register_collection(
    "events", ViewName.CALENDAR, CalendarEvent, CalendarEventCreate, CalendarEventUpdate
)
_register_collection(
    "transactions", ViewName.FINANCE, Transaction, TransactionCreate, TransactionUpdate
)
_register_collection("messages", ViewName.INBOX, Message, MessageCreate, MessageUpdate)


# ── Shortcuts ───────────────────────────────────────────────────────────────


@router.post("/tasks/{task_id}/toggle", response_model=Task)
async def toggle_task(
    task_id: str,
    dashboard: DashboardSession = Depends(require_view(ViewName.TASKS)),
) -> Any:
    """Flip a task's completion; completedAt is set or cleared with it."""
    task = await dashboard.store.tasks.toggle_complete(task_id)
    if task is None:
        raise _not_held("tasks", task_id)
    return task


@router.post("/messages/{message_id}/read", response_model=Message)
async def mark_message_read(
    message_id: str,
    dashboard: DashboardSession = Depends(require_view(ViewName.INBOX)),
) -> Any:
    if dashboard.store.messages.get(message_id) is None:
        raise _not_held("messages", message_id)
    return await dashboard.store.messages.mark_read(message_id)
