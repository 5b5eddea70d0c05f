"""
Interfaces of the Triplit client consumed by this package.

QueryClient is the CRUD surface used by the adapter. SessionClient is the
live-connection surface used by the session synchronizer. A full Triplit
client implements both; TriplitHttpClient implements QueryClient only.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple, runtime_checkable

# (field, operator, value)
NativeFilter = Tuple[str, str, Any]
# (field, "ASC" | "DESC")
OrderStatement = Tuple[str, str]
Entity = Dict[str, Any]
Mutator = Callable[[Entity], None]


@runtime_checkable
class QueryClient(Protocol):
    """Query and mutation primitives of a Triplit client."""

    async def fetch(
        self,
        collection: str,
        where: Sequence[NativeFilter],
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        order: Optional[Sequence[OrderStatement]] = None,
    ) -> List[Entity]:
        ...

    async def fetch_one(self, collection: str, where: Sequence[NativeFilter]) -> Optional[Entity]:
        ...

    async def insert(self, collection: str, record: Entity) -> Any:
        ...

    async def update(self, collection: str, entity_id: Any, mutator: Mutator) -> Any:
        """Apply ``mutator`` to the stored entity in place."""
        ...

    async def delete(self, collection: str, entity_id: Any) -> Any:
        ...


@runtime_checkable
class SessionClient(Protocol):
    """Live session state of a Triplit client."""

    @property
    def token(self) -> Optional[str]:
        ...

    @property
    def decoded_token(self) -> Optional[Mapping[str, Any]]:
        """Claims of the active token (at least ``sub`` and ``role``)."""
        ...

    async def clear(self) -> None:
        """Drop all locally cached data."""
        ...

    async def disconnect(self) -> None:
        ...

    async def start_session(self, token: str) -> Any:
        ...

    async def update_session_token(self, token: str) -> Any:
        ...

    def on_session_error(self, handler: Callable[[Any], None]) -> Callable[[], None]:
        """Register a session error handler; returns the unsubscribe function."""
        ...
