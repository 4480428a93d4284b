"""PostgREST (Supabase) table client over httpx.

Translates HTTP failures into classified RemoteError values so no caller has
to inspect raw error bodies. Reads are retried on transport failures
(tenacity, 3 attempts, exponential backoff 1-10s); writes are sent exactly
once so the only write retry in the system is the schema fallback.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.brokerdesk.sync.client import RemoteResponse, Row, TableClient
from src.brokerdesk.sync.errors import RemoteError

logger = structlog.get_logger(__name__)

_read_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((httpx.ConnectError, httpx.TimeoutException)),
    reraise=True,
)


def _eq(value: Any) -> str:
    if isinstance(value, bool):
        return "eq." + ("true" if value else "false")
    return f"eq.{value}"


def error_from_response(response: httpx.Response) -> RemoteError:
    """Build a RemoteError from a PostgREST error body (message/details/code/hint)."""
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    details = body.get("details") or body.get("hint")
    return RemoteError(
        message=str(body.get("message") or response.reason_phrase or f"HTTP {response.status_code}"),
        details=str(details) if details else None,
        code=str(body["code"]) if body.get("code") is not None else None,
        status=response.status_code,
    )


def _decode(response: httpx.Response, table: str, operation: str) -> RemoteResponse:
    """Success body as a RemoteResponse; an undecodable body is a failure, not an exception."""
    try:
        body = response.json()
    except ValueError:
        logger.warning("postgrest.invalid_body", table=table, operation=operation)
        return RemoteResponse.failure(
            RemoteError(
                message=f"Invalid JSON in {operation} response from {table}",
                status=response.status_code,
            )
        )
    if isinstance(body, list) and operation == "insert":
        body = body[0] if body else None
    return RemoteResponse.success(body)


class SupabaseTableClient(TableClient):
    """Generic CRUD against ``{base_url}/rest/v1/{table}``.

    Args:
        base_url: Project URL.
        api_key: Public anon key, sent as ``apikey`` and as the fallback bearer.
        token_provider: Returns the signed-in user's access token, if any.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        token_provider: Callable[[], str | None] | None = None,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._rest_url = base_url.rstrip("/") + "/rest/v1"
        self._api_key = api_key
        self._token_provider = token_provider
        self._timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        token = self._token_provider() if self._token_provider else None
        return {
            "apikey": self._api_key,
            "Authorization": f"Bearer {token or self._api_key}",
            "Content-Type": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers=self._headers(), timeout=self._timeout, transport=self._transport
        )

    @_read_retry
    async def _get(self, table: str, params: dict[str, str]) -> httpx.Response:
        async with self._client() as client:
            return await client.get(f"{self._rest_url}/{table}", params=params)

    async def select(
        self, table: str, filters: dict[str, Any] | None = None
    ) -> RemoteResponse:
        params = {"select": "*"}
        for column, value in (filters or {}).items():
            params[column] = _eq(value)

        try:
            response = await self._get(table, params)
        except httpx.HTTPError as exc:
            logger.warning("postgrest.select_transport_error", table=table, error=str(exc))
            return RemoteResponse.failure(RemoteError(message=str(exc)))

        if response.status_code >= 400:
            error = error_from_response(response)
            logger.info("postgrest.select_failed", table=table, kind=error.kind.value)
            return RemoteResponse.failure(error)
        return _decode(response, table, "select")

    async def insert(self, table: str, payload: Row) -> RemoteResponse:
        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self._rest_url}/{table}",
                    json=payload,
                    headers={"Prefer": "return=representation"},
                )
        except httpx.HTTPError as exc:
            logger.warning("postgrest.insert_transport_error", table=table, error=str(exc))
            return RemoteResponse.failure(RemoteError(message=str(exc)))

        if response.status_code >= 400:
            return RemoteResponse.failure(error_from_response(response))

        return _decode(response, table, "insert")

    async def update(self, table: str, row_id: str, patch: Row) -> RemoteResponse:
        try:
            async with self._client() as client:
                response = await client.patch(
                    f"{self._rest_url}/{table}",
                    params={"id": _eq(row_id)},
                    json=patch,
                    headers={"Prefer": "return=minimal"},
                )
        except httpx.HTTPError as exc:
            logger.warning("postgrest.update_transport_error", table=table, error=str(exc))
            return RemoteResponse.failure(RemoteError(message=str(exc)))

        if response.status_code >= 400:
            return RemoteResponse.failure(error_from_response(response))
        return RemoteResponse.success()

    async def delete(self, table: str, row_id: str) -> RemoteResponse:
        try:
            async with self._client() as client:
                response = await client.delete(
                    f"{self._rest_url}/{table}",
                    params={"id": _eq(row_id)},
                )
        except httpx.HTTPError as exc:
            logger.warning("postgrest.delete_transport_error", table=table, error=str(exc))
            return RemoteResponse.failure(RemoteError(message=str(exc)))

        if response.status_code >= 400:
            return RemoteResponse.failure(error_from_response(response))
        return RemoteResponse.success()
