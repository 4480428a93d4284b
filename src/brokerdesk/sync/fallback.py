"""Fallback write executor: one schema-drift retry per write.

A write is first sent with the primary column mapping. Only when the remote
rejects it as a schema-cache miss (unknown or renamed column) is it re-sent,
once, with the fallback mapping; that second outcome is final. Any other
failure is returned after the first call. The caller only ever sees the final
outcome.
"""

from __future__ import annotations

import structlog

from src.brokerdesk.sync.client import RemoteResponse, TableClient
from src.brokerdesk.sync.field_mapping import WritePayloads

logger = structlog.get_logger(__name__)


class FallbackWriteExecutor:
    """Runs inserts and updates through the primary/fallback payload pair.

    Args:
        client: Remote table client used for every write.
    """

    def __init__(self, client: TableClient) -> None:
        self._client = client

    @staticmethod
    def _should_retry(first: RemoteResponse, payloads: WritePayloads) -> bool:
        if first.error is None or not first.error.is_schema_cache_miss:
            return False
        # A resend of the same columns would fail the same way
        return payloads.fallback is not None and payloads.fallback != payloads.primary

    async def insert(self, table: str, payloads: WritePayloads) -> RemoteResponse:
        """Insert a row; on success ``data`` is the stored row."""
        first = await self._client.insert(table, payloads.primary)
        if not self._should_retry(first, payloads):
            if first.error is not None:
                logger.info(
                    "fallback.insert_failed",
                    table=table,
                    kind=first.error.kind.value,
                    error=first.error.message,
                )
            return first

        logger.info(
            "fallback.insert_retrying",
            table=table,
            error=first.error.message if first.error else None,
        )
        second = await self._client.insert(table, payloads.fallback or {})
        if second.error is not None:
            logger.warning(
                "fallback.insert_retry_failed",
                table=table,
                error=second.error.message,
            )
        return second

    async def update(
        self, table: str, row_id: str, payloads: WritePayloads
    ) -> RemoteResponse:
        """Patch the row identified by row_id."""
        first = await self._client.update(table, row_id, payloads.primary)
        if not self._should_retry(first, payloads):
            if first.error is not None:
                logger.info(
                    "fallback.update_failed",
                    table=table,
                    row_id=row_id,
                    kind=first.error.kind.value,
                    error=first.error.message,
                )
            return first

        logger.info(
            "fallback.update_retrying",
            table=table,
            row_id=row_id,
            error=first.error.message if first.error else None,
        )
        second = await self._client.update(table, row_id, payloads.fallback or {})
        if second.error is not None:
            logger.warning(
                "fallback.update_retry_failed",
                table=table,
                row_id=row_id,
                error=second.error.message,
            )
        return second
