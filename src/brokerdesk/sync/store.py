"""Entity store: six in-memory collections kept in step with the remote store.

Every collection follows the same contract:
- load(): fetch all rows, replace the collection with normalized, sorted records
- add(data): insert through the fallback executor, then place the normalized
  returned row
- update(id, patch): patch through the fallback executor, then merge the patch
  into the matching record
- remove(id): delete remotely, then filter the id out

Local state changes only after the remote call has resolved successfully.
Confirmations are applied in the order they resolve. A failed mutation raises
SyncOperationError and leaves the collection untouched. After reset()
(sign-out) results of calls still in flight are discarded.
"""

from __future__ import annotations

import asyncio
import bisect
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

import structlog
from pydantic import BaseModel

from src.brokerdesk.sync.client import Row, TableClient
from src.brokerdesk.sync.errors import RemoteError, SyncOperationError
from src.brokerdesk.sync.fallback import FallbackWriteExecutor
from src.brokerdesk.sync.field_mapping import (
    WritePayloads,
    insert_payloads,
    legacy_property_insert_payloads,
    legacy_property_update_payloads,
    listing_insert_payloads,
    listing_update_payloads,
    update_payloads,
)
from src.brokerdesk.sync.normalizers import (
    compute_duration,
    normalize_event,
    normalize_lead,
    normalize_message,
    normalize_property,
    normalize_task,
    normalize_transaction,
    parse_sortable_date,
)
from src.brokerdesk.sync.resolver import PropertyTableResolver
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
    utc_now_iso,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T", bound=BaseModel)


class _SessionContext:
    """Shared generation counter; bumped on reset to orphan in-flight calls."""

    def __init__(self) -> None:
        self.generation = 0


@dataclass
class LoadReport:
    """Per-collection outcome of a full load. ``None`` means loaded."""

    errors: dict[str, RemoteError | None] = field(default_factory=dict)
    property_table: str | None = None

    @property
    def ok(self) -> bool:
        return all(e is None for e in self.errors.values())

    @property
    def failed(self) -> list[str]:
        return [name for name, e in self.errors.items() if e is not None]


class EntityCollection(Generic[T]):
    """One entity kind's collection and its remote-confirmed mutations.

    Args:
        name: Collection name, also the default remote table.
        context: Session context shared by all collections of one store.
        client: Remote table client.
        executor: Fallback write executor.
        normalize: Row normalizer producing the canonical record.
        create_model: Schema validating ``add`` input.
        update_model: Schema validating ``update`` patches.
        sort_key: Maps a record to a sortable value.
        descending: Newest first when True; adds are prepended.
    """

    def __init__(
        self,
        name: str,
        context: _SessionContext,
        client: TableClient,
        executor: FallbackWriteExecutor,
        normalize: Callable[[Row], T],
        create_model: type[BaseModel],
        update_model: type[BaseModel],
        sort_key: Callable[[T], float],
        descending: bool = True,
    ) -> None:
        self.name = name
        self._ctx = context
        self._client = client
        self._executor = executor
        self._normalize = normalize
        self._create_model = create_model
        self._update_model = update_model
        self._sort_key = sort_key
        self._descending = descending
        self._items: list[T] = []
        self._load_seq = 0

    # ── Read access ─────────────────────────────────────────────────────

    @property
    def items(self) -> tuple[T, ...]:
        """Snapshot of the collection; never mutate records through it."""
        return tuple(self._items)

    def get(self, record_id: str) -> T | None:
        for item in self._items:
            if getattr(item, "id", None) == record_id:
                return item
        return None

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(tuple(self._items))

    # ── Hooks ───────────────────────────────────────────────────────────

    @property
    def table(self) -> str:
        return self.name

    def _insert_payloads(self, data: BaseModel) -> WritePayloads:
        return insert_payloads(data)

    def _update_payloads(self, patch: BaseModel) -> WritePayloads:
        return update_payloads(patch)

    def _prepare_patch(self, patch: BaseModel, current: T | None) -> BaseModel:
        return patch

    async def _fetch(self) -> tuple[list[Row], RemoteError | None]:
        response = await self._client.select(self.table)
        return response.rows, response.error

    # ── Internals ───────────────────────────────────────────────────────

    def _sorted(self, records: list[T]) -> list[T]:
        return sorted(records, key=self._sort_key, reverse=self._descending)

    def _place(self, record: T) -> None:
        if self._descending:
            self._items.insert(0, record)
            return
        keys = [self._sort_key(r) for r in self._items]
        self._items.insert(bisect.bisect_right(keys, self._sort_key(record)), record)

    def _stale(self, generation: int, operation: str) -> bool:
        if generation != self._ctx.generation:
            logger.info("store.stale_result_discarded", collection=self.name, operation=operation)
            return True
        return False

    def clear(self) -> None:
        self._items = []

    # ── Operations ──────────────────────────────────────────────────────

    async def load(self) -> RemoteError | None:
        """Replace the collection with the remote rows; returns the failure, if any.

        On failure the collection keeps its previous contents.
        """
        generation = self._ctx.generation
        self._load_seq += 1
        seq = self._load_seq

        rows, error = await self._fetch()
        if self._stale(generation, "load") or seq != self._load_seq:
            return error
        if error is not None:
            logger.warning("store.load_failed", collection=self.name, error=error.message)
            return error

        self._items = self._sorted([self._normalize(row) for row in rows])
        logger.info("store.loaded", collection=self.name, count=len(self._items))
        return None

    async def add(self, data: BaseModel | dict[str, Any]) -> T | None:
        """Insert a record; returns the normalized stored row.

        Raises:
            pydantic.ValidationError: If data fails the create schema.
            SyncOperationError: If the remote insert failed.
        """
        validated = self._create_model.model_validate(data)
        generation = self._ctx.generation

        response = await self._executor.insert(self.table, self._insert_payloads(validated))
        if response.error is not None:
            raise SyncOperationError("insert", self.table, response.error)
        if not isinstance(response.data, dict):
            logger.warning("store.insert_without_row", collection=self.name)
            return None

        record = self._normalize(response.data)
        if self._stale(generation, "add"):
            return record
        self._place(record)
        logger.info("store.record_added", collection=self.name, record_id=getattr(record, "id", None))
        return record

    async def update(self, record_id: str, patch: BaseModel | dict[str, Any]) -> T | None:
        """Patch a record; returns the merged record, or None if it is not held locally.

        Raises:
            pydantic.ValidationError: If patch fails the update schema.
            SyncOperationError: If the remote update failed.
        """
        validated = self._prepare_patch(
            self._update_model.model_validate(patch), self.get(record_id)
        )
        changes = validated.model_dump(exclude_unset=True)
        if not changes:
            return self.get(record_id)

        generation = self._ctx.generation
        response = await self._executor.update(
            self.table, record_id, self._update_payloads(validated)
        )
        if response.error is not None:
            raise SyncOperationError("update", self.table, response.error)
        if self._stale(generation, "update"):
            return None

        merged: T | None = None
        for index, item in enumerate(self._items):
            if getattr(item, "id", None) == record_id:
                merged = type(item).model_validate({**item.model_dump(), **changes})
                self._items[index] = merged
        if merged is not None:
            self._items = self._sorted(self._items)
            logger.info("store.record_updated", collection=self.name, record_id=record_id)
        return merged

    async def remove(self, record_id: str) -> None:
        """Delete a record remotely, then locally. Absent ids are a no-op locally.

        Raises:
            SyncOperationError: If the remote delete failed.
        """
        generation = self._ctx.generation
        response = await self._client.delete(self.table, record_id)
        if response.error is not None:
            raise SyncOperationError("delete", self.table, response.error)
        if self._stale(generation, "remove"):
            return
        self._items = [i for i in self._items if getattr(i, "id", None) != record_id]
        logger.info("store.record_removed", collection=self.name, record_id=record_id)


# ── Entity-specific collections ─────────────────────────────────────────────


class TaskCollection(EntityCollection[Task]):
    """Tasks keep ``completed_at`` in step with ``completed`` on every write."""

    def _prepare_patch(self, patch: BaseModel, current: Task | None) -> BaseModel:
        changes = patch.model_dump(exclude_unset=True)
        if "completed" in changes:
            if changes["completed"]:
                changes["completed_at"] = changes.get("completed_at") or utc_now_iso()
            else:
                changes["completed_at"] = None
        elif "completed_at" in changes:
            # Only a completed task may carry, or change, a completion time.
            if current is None or not current.completed or not changes["completed_at"]:
                del changes["completed_at"]
                logger.info("store.completion_time_ignored", collection=self.name)
        else:
            return patch
        return TaskUpdate(**changes)

    async def toggle_complete(self, task_id: str) -> Task | None:
        """Flip completion of a locally held task; unknown ids are ignored."""
        task = self.get(task_id)
        if task is None:
            return None
        return await self.update(task_id, TaskUpdate(completed=not task.completed))


class EventCollection(EntityCollection[CalendarEvent]):
    """Events are ordered by date and start time; adds are placed in that order."""

    def _insert_payloads(self, data: BaseModel) -> WritePayloads:
        if isinstance(data, CalendarEventCreate) and data.duration is None:
            data = data.model_copy(
                update={"duration": compute_duration(data.start_time, data.end_time)}
            )
        return insert_payloads(data)

    def _prepare_patch(self, patch: BaseModel, current: CalendarEvent | None) -> BaseModel:
        changes = patch.model_dump(exclude_unset=True)
        if current is None or "duration" in changes:
            return patch
        if "start_time" in changes or "end_time" in changes:
            changes["duration"] = compute_duration(
                changes.get("start_time") or current.start_time,
                changes.get("end_time") or current.end_time,
            )
            return CalendarEventUpdate(**changes)
        return patch


class MessageCollection(EntityCollection[Message]):
    async def mark_read(self, message_id: str) -> Message | None:
        return await self.update(message_id, MessageUpdate(read=True))


class PropertyCollection(EntityCollection[Property]):
    """Properties live in whichever table the resolver picked at load time."""

    def __init__(self, resolver: PropertyTableResolver, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._resolver = resolver

    @property
    def table(self) -> str:
        return self._resolver.table

    def _insert_payloads(self, data: BaseModel) -> WritePayloads:
        if self._resolver.is_legacy:
            return legacy_property_insert_payloads(data)
        return listing_insert_payloads(data)

    def _update_payloads(self, patch: BaseModel) -> WritePayloads:
        if self._resolver.is_legacy:
            return legacy_property_update_payloads(patch)
        return listing_update_payloads(patch)

    async def _fetch(self) -> tuple[list[Row], RemoteError | None]:
        resolution = await self._resolver.resolve()
        return resolution.rows, resolution.error


# ── Store ───────────────────────────────────────────────────────────────────


def _created(record: Any) -> float:
    return parse_sortable_date(record.created_at)


class EntityStore:
    """Owns the six collections; the only write path to the remote tables.

    Args:
        client: Remote table client shared by every collection.
    """

    def __init__(self, client: TableClient) -> None:
        self._ctx = _SessionContext()
        self._client = client
        executor = FallbackWriteExecutor(client)
        self.resolver = PropertyTableResolver(client)

        common = {"context": self._ctx, "client": client, "executor": executor}
        self.leads: EntityCollection[Lead] = EntityCollection(
            name="leads",
            normalize=normalize_lead,
            create_model=LeadCreate,
            update_model=LeadUpdate,
            sort_key=_created,
            **common,
        )
        self.messages = MessageCollection(
            name="messages",
            normalize=normalize_message,
            create_model=MessageCreate,
            update_model=MessageUpdate,
            sort_key=lambda m: parse_sortable_date(m.date),
            **common,
        )
        self.properties = PropertyCollection(
            resolver=self.resolver,
            name="properties",
            normalize=normalize_property,
            create_model=PropertyCreate,
            update_model=PropertyUpdate,
            sort_key=_created,
            **common,
        )
        self.tasks = TaskCollection(
            name="tasks",
            normalize=normalize_task,
            create_model=TaskCreate,
            update_model=TaskUpdate,
            sort_key=_created,
            **common,
        )
        self.events = EventCollection(
            name="events",
            normalize=normalize_event,
            create_model=CalendarEventCreate,
            update_model=CalendarEventUpdate,
            sort_key=lambda e: parse_sortable_date(f"{e.date} {e.start_time}"),
            descending=False,
            **common,
        )
        self.transactions: EntityCollection[Transaction] = EntityCollection(
            name="transactions",
            normalize=normalize_transaction,
            create_model=TransactionCreate,
            update_model=TransactionUpdate,
            sort_key=_created,
            **common,
        )

    @property
    def collections(self) -> dict[str, EntityCollection[Any]]:
        return {
            "leads": self.leads,
            "messages": self.messages,
            "properties": self.properties,
            "tasks": self.tasks,
            "events": self.events,
            "transactions": self.transactions,
        }

    async def load_all(self) -> LoadReport:
        """Load all six collections concurrently and wait for every one to finish."""
        names = list(self.collections)
        results = await asyncio.gather(
            *(c.load() for c in self.collections.values()),
            return_exceptions=True,
        )

        report = LoadReport(property_table=None)
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                logger.error("store.load_crashed", collection=name, error=str(result))
                report.errors[name] = RemoteError(message=str(result))
            else:
                report.errors[name] = result
        report.property_table = self.resolver.resolved_table

        logger.info(
            "store.load_all_complete",
            failed=report.failed,
            property_table=report.property_table,
        )
        return report

    def reset(self) -> None:
        """Drop all local state and orphan in-flight calls (sign-out)."""
        self._ctx.generation += 1
        for collection in self.collections.values():
            collection.clear()
        self.resolver.reset()
        logger.info("store.reset", generation=self._ctx.generation)
