"""
Client-side session token synchronization for Triplit.
"""

from triplit_auth.sync.session_sync import (
    ReconcileAction,
    ReconcileResult,
    SessionData,
    SessionSynchronizer,
    SyncOptions,
    init_triplit_auth,
)

__all__ = [
    "ReconcileAction",
    "ReconcileResult",
    "SessionData",
    "SessionSynchronizer",
    "SyncOptions",
    "init_triplit_auth",
]
