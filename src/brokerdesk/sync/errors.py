"""Remote error taxonomy, classified once at the client boundary.

The remote store reports failures as opaque message/details strings. The
adapter wraps every failure in a RemoteError, whose ``kind`` is computed here
and nowhere else:

- SCHEMA_CACHE_MISS: the write used a column name the server does not expose.
  Triggers exactly one fallback-payload retry.
- MISSING_RELATION: the named table does not exist. Only used for table
  resolution; never retried as a write.
- TRANSIENT: anything else. Surfaced to the caller as a failed operation.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, computed_field


class ErrorKind(str, Enum):
    """Classification of a remote failure."""

    SCHEMA_CACHE_MISS = "schema_cache_miss"
    MISSING_RELATION = "missing_relation"
    TRANSIENT = "transient"


# Postgres / PostgREST error codes that identify the two known drift classes
_MISSING_RELATION_CODES = frozenset({"42P01", "PGRST205"})
_UNKNOWN_COLUMN_CODES = frozenset({"42703", "PGRST204"})


def _is_missing_relation_text(text: str) -> bool:
    if "could not find the table" in text:
        return True
    return "relation" in text and "does not exist" in text and "column" not in text


def _is_schema_cache_miss_text(text: str) -> bool:
    return (
        ("schema cache" in text and "could not find" in text)
        or ("column" in text and "does not exist" in text)
        or ("could not find" in text and "column" in text)
    )


def classify_error(
    message: str | None,
    details: str | None = None,
    code: str | None = None,
) -> ErrorKind:
    """Classify a raw remote failure by code, then by lower-cased message/details.

    Missing-relation is checked first: PostgREST reports an absent table as
    "Could not find the table ... in the schema cache", which would otherwise
    read as a column miss.
    """
    if code in _MISSING_RELATION_CODES:
        return ErrorKind.MISSING_RELATION
    if code in _UNKNOWN_COLUMN_CODES:
        return ErrorKind.SCHEMA_CACHE_MISS

    texts = [str(message or "").lower(), str(details or "").lower()]
    if any(_is_missing_relation_text(t) for t in texts):
        return ErrorKind.MISSING_RELATION
    if any(_is_schema_cache_miss_text(t) for t in texts):
        return ErrorKind.SCHEMA_CACHE_MISS
    return ErrorKind.TRANSIENT


class RemoteError(BaseModel):
    """Structured failure returned by the remote table or auth client."""

    message: str = ""
    details: str | None = None
    code: str | None = None
    status: int | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def kind(self) -> ErrorKind:
        return classify_error(self.message, self.details, self.code)

    @property
    def is_schema_cache_miss(self) -> bool:
        return self.kind == ErrorKind.SCHEMA_CACHE_MISS

    @property
    def is_missing_relation(self) -> bool:
        return self.kind == ErrorKind.MISSING_RELATION

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} ({self.details})"
        return self.message


class SyncOperationError(Exception):
    """A store mutation whose final remote outcome was a failure.

    The local collection is unchanged when this is raised; user-facing
    feedback is the caller's concern.
    """

    def __init__(self, operation: str, table: str, error: RemoteError) -> None:
        self.operation = operation
        self.table = table
        self.error = error
        super().__init__(f"{operation} on '{table}' failed: {error}")
