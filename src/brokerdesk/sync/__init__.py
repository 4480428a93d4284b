"""Schema-adaptive synchronization layer.

Provides:
- TableClient / SupabaseTableClient: generic per-table CRUD returning RemoteResponse
- Row normalizers: remote rows of any column casing -> canonical records
- FallbackWriteExecutor: one schema-drift retry with the alternate column naming
- PropertyTableResolver: picks ``listings`` or legacy ``properties`` per session
- EntityStore: six collections updated only after remote confirmation

Remote failures are classified once, in the client adapter, into the
ErrorKind taxonomy; nothing downstream re-inspects raw error text.
"""

from src.brokerdesk.sync.client import RemoteResponse, TableClient
from src.brokerdesk.sync.errors import ErrorKind, RemoteError, SyncOperationError
from src.brokerdesk.sync.fallback import FallbackWriteExecutor
from src.brokerdesk.sync.resolver import PropertyTableResolver, TableResolution
from src.brokerdesk.sync.store import EntityStore, LoadReport

__all__ = [
    "TableClient",
    "RemoteResponse",
    "RemoteError",
    "ErrorKind",
    "SyncOperationError",
    "FallbackWriteExecutor",
    "PropertyTableResolver",
    "TableResolution",
    "EntityStore",
    "LoadReport",
]
