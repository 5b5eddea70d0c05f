"""
Triplit integration for better-auth style authentication.

This package provides:
- A storage adapter that persists users, sessions and accounts in Triplit
- Signed session tokens issued when sessions are created
- A session synchronizer that keeps a Triplit client's live token in step
  with the current authentication state

SECURITY NOTES:
- Session tokens are signed with BETTER_AUTH_SECRET (or an explicit secret)
- Tokens and secrets are never logged
- Token verification is the Triplit server's job, not this package's
"""

from triplit_auth.adapter import (
    DefaultSchemaResolver,
    SchemaResolver,
    SortBy,
    TriplitAdapter,
    Where,
    WhereOperator,
    mint_session_token,
    parse_where,
    triplit_adapter,
)
from triplit_auth.client import QueryClient, SessionClient, TriplitHttpClient
from triplit_auth.config import AdapterCapabilities, AdapterConfig
from triplit_auth.exceptions import (
    ConfigurationError,
    NotFoundError,
    RemoteOperationError,
    TriplitAuthError,
)
from triplit_auth.sync import (
    ReconcileAction,
    ReconcileResult,
    SessionData,
    SessionSynchronizer,
    SyncOptions,
    init_triplit_auth,
)

__all__ = [
    # Adapter
    "TriplitAdapter",
    "triplit_adapter",
    "Where",
    "WhereOperator",
    "SortBy",
    "parse_where",
    "mint_session_token",
    "SchemaResolver",
    "DefaultSchemaResolver",
    # Client
    "QueryClient",
    "SessionClient",
    "TriplitHttpClient",
    # Config
    "AdapterConfig",
    "AdapterCapabilities",
    # Exceptions
    "TriplitAuthError",
    "ConfigurationError",
    "NotFoundError",
    "RemoteOperationError",
    # Session sync
    "SessionSynchronizer",
    "SessionData",
    "SyncOptions",
    "ReconcileAction",
    "ReconcileResult",
    "init_triplit_auth",
]
