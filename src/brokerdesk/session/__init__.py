"""Session-scoped state: auth/role gate, local preferences, cache-version guard."""

from src.brokerdesk.session.cache_guard import CACHE_VERSION, CacheVersionGuard
from src.brokerdesk.session.gate import ROLE_VIEWS, SessionGate, SessionState, normalize_user_role
from src.brokerdesk.session.preferences import PreferenceStore

__all__ = [
    "CACHE_VERSION",
    "CacheVersionGuard",
    "ROLE_VIEWS",
    "SessionGate",
    "SessionState",
    "normalize_user_role",
    "PreferenceStore",
]
