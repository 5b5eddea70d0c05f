"""
Keeps a Triplit client's live session token in step with the app's auth state.

Whenever the authenticated session changes (login, logout, token refresh,
role change) the host calls ``reconcile`` with the current
``SessionData`` (or None). The synchronizer then:

- does nothing if no token applies, or the client already uses it
- swaps the token in place when the user id and role are unchanged
- otherwise clears local data (on logout), disconnects and starts a new
  session with the new token

Client failures are logged and reported in the ReconcileResult; they are
never raised, so a failed background resync cannot crash the host.

Reconciliations run one at a time and are generation-tagged. A run stops
before its next client call once a newer run has started, and a queued run
that is already stale makes no calls. After a disconnect the client counts
as torn down until a session is started again, so the next run reconnects
even when its token matches the one the client still reports.

Usage:
    sync = SessionSynchronizer(triplit, SyncOptions(on_session_error=handle))
    teardown = sync.start(session_data)
    ...
    await sync.reconcile(new_session_data)
    teardown()
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Mapping, Optional, Union

from triplit_auth.client.protocols import SessionClient
from triplit_auth.config import ANON_TOKEN_ENV_VAR, get_env

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionData:
    """Session and user as reported by the auth framework."""
    session: Mapping[str, Any]
    user: Mapping[str, Any]

    @property
    def token(self) -> Optional[str]:
        return self.session.get("token") or None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SessionData":
        return cls(session=data["session"], user=data["user"])


class ReconcileAction(str, Enum):
    """What a reconciliation run did."""
    PENDING = "pending"
    IDLE = "idle"
    UNCHANGED = "unchanged"
    TOKEN_REFRESHED = "token_refreshed"
    SESSION_RESTARTED = "session_restarted"
    SESSION_CLEARED = "session_cleared"
    SUPERSEDED = "superseded"


@dataclass
class ReconcileResult:
    """Outcome of a single reconciliation run."""
    action: ReconcileAction
    generation: int
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {
            "action": self.action.value,
            "generation": self.generation,
            "success": self.success,
            "error_count": len(self.errors),
        }


@dataclass
class SyncOptions:
    """
    Options for the session synchronizer.

    anon_token: token used when there is no user session (default: TRIPLIT_ANON_TOKEN)
    is_pending: auth state is still loading; skip reconciliation and observers
    on_session_error: called with every session error the client reports
    on_reconcile: called with every ReconcileResult
    """
    anon_token: Optional[str] = None
    is_pending: bool = False
    on_session_error: Optional[Callable[[Any], None]] = None
    on_reconcile: Optional[Callable[[ReconcileResult], None]] = None


SessionInput = Union[SessionData, Mapping[str, Any], None]


class SessionSynchronizer:
    """
    Reconciles a SessionClient's live token against external auth state.

    Only this class writes the client's session state.
    """

    def __init__(self, client: SessionClient, options: Optional[SyncOptions] = None):
        self.client = client
        self.options = options or SyncOptions()
        self.task: Optional[asyncio.Task] = None
        self._generation = 0
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._lock = asyncio.Lock()
        self._torn_down = False

    # =========================================================================
    # Reconciliation
    # =========================================================================

    def candidate_token(self, session_data: Optional[SessionData]) -> Optional[str]:
        """First non-empty of: session token, anon_token, TRIPLIT_ANON_TOKEN."""
        return (
            (session_data.token if session_data else None)
            or self.options.anon_token
            or get_env(ANON_TOKEN_ENV_VAR)
        )

    def _same_identity(self, session_data: SessionData) -> bool:
        decoded = self.client.decoded_token
        if not decoded:
            return False
        return (
            decoded.get("sub") == session_data.user.get("id")
            and decoded.get("role") == session_data.user.get("role")
        )

    def _is_superseded(self, generation: int) -> bool:
        return generation != self._generation

    async def _step(self, name: str, call: Callable[[], Any], result: ReconcileResult) -> bool:
        """Run one client call; log and record failures instead of raising."""
        try:
            await call()
            return True
        except Exception as e:
            logger.error(
                "Triplit session step failed",
                extra={"step": name, "generation": result.generation, "error": str(e)},
            )
            result.errors.append(f"{name}: {e}")
            return False

    def _finish(self, result: ReconcileResult) -> ReconcileResult:
        logger.info("Triplit session reconciled", extra=result.to_dict())
        if self.options.on_reconcile:
            try:
                self.options.on_reconcile(result)
            except Exception as e:
                logger.error("on_reconcile handler failed", extra={"error": str(e)})
        return result

    async def reconcile(self, session_data: SessionInput = None) -> ReconcileResult:
        """
        Bring the client's live token into agreement with ``session_data``.

        Args:
            session_data: Current session and user, or None when signed out

        Returns:
            ReconcileResult describing what happened
        """
        self._generation += 1
        generation = self._generation

        if self.options.is_pending:
            return self._finish(ReconcileResult(ReconcileAction.PENDING, generation))

        if session_data is not None and not isinstance(session_data, SessionData):
            session_data = SessionData.from_dict(session_data)

        async with self._lock:
            if self._is_superseded(generation):
                return self._finish(ReconcileResult(ReconcileAction.SUPERSEDED, generation))
            return self._finish(await self._transition(session_data, generation))

    async def _transition(self, session_data: Optional[SessionData], generation: int) -> ReconcileResult:
        token = self.candidate_token(session_data)
        current = self.client.token
        live = not self._torn_down

        if token and token == current and live:
            return ReconcileResult(ReconcileAction.UNCHANGED, generation)

        # No token to switch to and nothing to tear down
        if not token and (session_data is not None or not current or not live):
            return ReconcileResult(ReconcileAction.IDLE, generation)

        if live and session_data is not None and self._same_identity(session_data):
            result = ReconcileResult(ReconcileAction.TOKEN_REFRESHED, generation)
            await self._step(
                "update_session_token",
                lambda: self.client.update_session_token(token),
                result,
            )
            return result

        action = ReconcileAction.SESSION_RESTARTED if token else ReconcileAction.SESSION_CLEARED
        result = ReconcileResult(action, generation)

        # Signing out: drop data cached for the previous user
        if session_data is None:
            await self._step("clear", self.client.clear, result)
            if self._is_superseded(generation):
                result.action = ReconcileAction.SUPERSEDED
                return result

        disconnected = True
        if live:
            # Stays set until a session is started again, so the next run
            # reconnects even if this one is superseded
            self._torn_down = True
            disconnected = await self._step("disconnect", self.client.disconnect, result)
            if self._is_superseded(generation):
                result.action = ReconcileAction.SUPERSEDED
                return result

        if token and disconnected:
            if await self._step("start_session", lambda: self.client.start_session(token), result):
                self._torn_down = False

        return result

    # =========================================================================
    # Session error observer
    # =========================================================================

    def _handle_session_error(self, error: Any) -> None:
        logger.error("Triplit session error", extra={"error": str(error)})
        if self.options.on_session_error:
            try:
                self.options.on_session_error(error)
            except Exception as e:
                logger.error("on_session_error handler failed", extra={"error": str(e)})

    def bind(self) -> Callable[[], None]:
        """
        Register the session error observer.

        Returns:
            Teardown function; safe to call more than once
        """
        if self.options.is_pending:
            return lambda: None

        if self._unsubscribe is None:
            self._unsubscribe = self.client.on_session_error(self._handle_session_error)
        return self.unbind

    def unbind(self) -> None:
        """Unregister the session error observer, if registered."""
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is None:
            return
        try:
            unsubscribe()
        except Exception as e:
            logger.error("Failed to unregister session error handler", extra={"error": str(e)})

    def start(self, session_data: SessionInput = None) -> Optional[Callable[[], None]]:
        """
        Schedule a reconciliation and bind the error observer.

        Must be called from a running event loop.

        Returns:
            Teardown function, or None while auth state is pending
        """
        if self.options.is_pending:
            return None

        self.task = asyncio.get_running_loop().create_task(self.reconcile(session_data))
        self.task.add_done_callback(_log_task_failure)
        return self.bind()


def _log_task_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error(
            "Triplit session reconcile task failed",
            extra={"error": str(error), "error_type": type(error).__name__},
        )


def init_triplit_auth(
    client: SessionClient,
    options: Optional[SyncOptions] = None,
    session_data: SessionInput = None,
) -> Optional[Callable[[], None]]:
    """
    Start keeping ``client`` in step with ``session_data``.

    Args:
        client: Triplit client with a live session
        options: Synchronizer options
        session_data: Current session and user, or None when signed out

    Returns:
        Teardown function, or None when ``options.is_pending`` is set
    """
    return SessionSynchronizer(client, options).start(session_data)
