"""
Storage adapter that persists auth entities through a Triplit query client.

Implements the auth framework's adapter contract:
create, count, delete, delete_many, find_many, find_one, update, update_many.

Every operation resolves the generic model name to a collection, resolves and
translates the where clause, and delegates to the client. Creating a session
additionally signs a session token for the owning user and stores it on the
record, so the Triplit client can authenticate with it.

The adapter never touches the client's live session state.

Usage:
    client = TriplitHttpClient(server_url=url, token=service_token)
    adapter = triplit_adapter(client, secret_key=secret)

    session = await adapter.create("session", {"userId": user_id, "expiresAt": expires_at})
    users = await adapter.find_many("user", where=[Where(field="role", value="admin")])
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel

from triplit_auth.adapter.schema import DefaultSchemaResolver, SchemaResolver
from triplit_auth.adapter.tokens import mint_session_token, resolve_secret
from triplit_auth.adapter.where import WhereInput, parse_where, to_where
from triplit_auth.client.protocols import Entity, Mutator, NativeFilter, QueryClient
from triplit_auth.config import DEFAULT_MAX_CONCURRENCY, AdapterCapabilities, AdapterConfig
from triplit_auth.exceptions import NotFoundError, RemoteOperationError, TriplitAuthError

logger = logging.getLogger(__name__)

SESSION_MODEL = "session"
USER_MODEL = "user"


class SortBy(BaseModel):
    """Single-field ordering for find_many."""
    field: str
    direction: str = "asc"


def _serialize(value: Any) -> str:
    return json.dumps(value, default=str)


def _merge(update: Mapping[str, Any]) -> Mutator:
    """Mutator that assigns every updated field onto the stored entity."""
    def mutator(entity: Entity) -> None:
        entity.update(update)
    return mutator


class TriplitAdapter:
    """
    Auth storage adapter backed by a Triplit QueryClient.

    Batch mutations (delete, delete_many, update_many) issue one call per
    matched entity, at most ``max_concurrency`` at a time. A failing call
    propagates to the caller; calls already in flight keep running and
    completed ones are not rolled back.
    """

    def __init__(
        self,
        client: QueryClient,
        config: Optional[AdapterConfig] = None,
        resolver: Optional[SchemaResolver] = None,
    ):
        """
        Initialize the adapter.

        Args:
            client: Triplit query client used for all reads and writes
            config: Adapter options (defaults apply when omitted)
            resolver: Model/field name resolver (default: DefaultSchemaResolver)
        """
        self.client = client
        self._config = config or AdapterConfig()
        self.resolver = resolver or DefaultSchemaResolver(use_plural=self._config.use_plural)

    @property
    def config(self) -> AdapterCapabilities:
        """Adapter id, name and capability flags reported to the auth framework."""
        return AdapterCapabilities(
            use_plural=self._config.use_plural,
            debug_logs=self._config.debug_logs,
        )

    @property
    def options(self) -> Dict[str, bool]:
        return {"use_plural": self._config.use_plural, "debug_logs": self._config.debug_logs}

    # =========================================================================
    # Helpers
    # =========================================================================

    def _debug(self, message: str, model: str, **fields: Any) -> None:
        if not self._config.debug_logs:
            return
        extra = {"model": model}
        for key, value in fields.items():
            extra[key] = _serialize(value)
        logger.info(f"[Triplit Adapter] {message}", extra=extra)

    def _where(self, model: str, where: Optional[Iterable[WhereInput]]) -> List[NativeFilter]:
        """Resolve field names, then translate to Triplit clauses."""
        resolved = []
        for item in where or []:
            entry = to_where(item)
            field = self.resolver.get_field_name(model, entry.field)
            resolved.append(entry.model_copy(update={"field": field}))
        return parse_where(resolved)

    async def _call(self, operation: str, model: str, call: Awaitable[Any]) -> Any:
        """Await a client call, wrapping unexpected failures."""
        try:
            return await call
        except TriplitAuthError:
            raise
        except Exception as e:
            logger.error(
                "Triplit operation failed",
                extra={"operation": operation, "model": model, "error": str(e)},
            )
            raise RemoteOperationError(
                f"Triplit {operation} failed: {e}", operation=operation, model=model
            ) from e

    async def _fan_out(
        self,
        operation: str,
        model: str,
        calls: List[Callable[[], Awaitable[Any]]],
    ) -> None:
        """Run per-entity calls concurrently, bounded by max_concurrency."""
        if not calls:
            return

        semaphore = asyncio.Semaphore(self._config.max_concurrency)

        async def _run_one(call: Callable[[], Awaitable[Any]]) -> Any:
            async with semaphore:
                return await self._call(operation, model, call())

        await asyncio.gather(*[_run_one(call) for call in calls])

    async def _fetch(self, collection: str, where: List[NativeFilter], **kwargs: Any) -> List[Entity]:
        return await self._call("fetch", collection, self.client.fetch(collection, where, **kwargs))

    async def _fetch_one(self, collection: str, where: List[NativeFilter]) -> Optional[Entity]:
        return await self._call("fetch_one", collection, self.client.fetch_one(collection, where))

    async def _attach_session_token(self, model: str, record: Entity) -> Entity:
        """
        Sign a token for the session's user and store it on the record.

        Raises:
            ConfigurationError: If no signing secret is configured
            NotFoundError: If the session's user does not exist
        """
        user_id = record.get(self.resolver.get_field_name(model, "userId"))
        self._debug("Create JWT token for userId", model, user_id=user_id)

        secret = resolve_secret(self._config.secret_key)

        users = self.resolver.get_model_name(USER_MODEL)
        user = await self._fetch_one(users, [("id", "=", user_id)])
        if not user:
            raise NotFoundError(
                "User not found", resource_type=USER_MODEL, resource_id=str(user_id)
            )

        expires_at = record.get(self.resolver.get_field_name(model, "expiresAt"))
        record[self.resolver.get_field_name(model, "token")] = mint_session_token(
            user, expires_at, secret
        )
        return record

    # =========================================================================
    # Adapter contract
    # =========================================================================

    async def create(self, model: str, data: Mapping[str, Any]) -> Entity:
        """
        Insert a record and return it as written.

        Session records get a signed ``token`` before insertion.

        Raises:
            ConfigurationError: Session create without a signing secret
            NotFoundError: Session create for an unknown user
            RemoteOperationError: If the client call fails
        """
        collection = self.resolver.get_model_name(model)
        record = dict(data)

        if self.resolver.get_default_model_name(model) == SESSION_MODEL:
            record = await self._attach_session_token(model, record)

        self._debug("Insert", model, data=record)
        await self._call("insert", collection, self.client.insert(collection, record))

        return record

    async def count(self, model: str, where: Optional[Iterable[WhereInput]] = None) -> int:
        """Count matching entities (fetches every match)."""
        collection = self.resolver.get_model_name(model)
        parsed = self._where(model, where)
        self._debug("Count Fetch", model, where=parsed)

        entities = await self._fetch(collection, parsed)
        self._debug("Count Entities", model, count=len(entities), entities=entities)

        return len(entities)

    async def delete(self, model: str, where: Optional[Iterable[WhereInput]] = None) -> None:
        """Delete every matching entity."""
        await self._delete_matching(model, where, "Delete")

    async def delete_many(self, model: str, where: Optional[Iterable[WhereInput]] = None) -> int:
        """
        Delete every matching entity.

        Returns:
            Number of entities targeted for deletion
        """
        return await self._delete_matching(model, where, "Delete Many")

    async def _delete_matching(
        self, model: str, where: Optional[Iterable[WhereInput]], label: str
    ) -> int:
        collection = self.resolver.get_model_name(model)
        parsed = self._where(model, where)
        self._debug(f"{label} Fetch", model, where=parsed)

        entities = await self._fetch(collection, parsed)
        self._debug(f"{label} Entities", model, entities=entities)

        await self._fan_out(
            "delete",
            collection,
            [
                (lambda entity_id=entity["id"]: self.client.delete(collection, entity_id))
                for entity in entities
            ],
        )
        return len(entities)

    async def find_many(
        self,
        model: str,
        where: Optional[Iterable[WhereInput]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        sort_by: Optional[Union[SortBy, Mapping[str, Any]]] = None,
    ) -> List[Entity]:
        """
        Fetch matching entities.

        Args:
            model: Generic model name
            where: Generic filters
            limit: Maximum number of results
            offset: Number of results to skip
            sort_by: Single-field ordering (``asc`` or ``desc``)

        Returns:
            List of entities
        """
        collection = self.resolver.get_model_name(model)
        parsed = self._where(model, where)

        order = None
        if sort_by is not None:
            if not isinstance(sort_by, SortBy):
                sort_by = SortBy(**sort_by)
            order = [(self.resolver.get_field_name(model, sort_by.field), sort_by.direction.upper())]

        self._debug(
            "Find Many Fetch", model, limit=limit, offset=offset, order=order, where=parsed
        )

        entities = await self._fetch(
            collection, parsed, limit=limit, offset=offset, order=order
        )
        self._debug("Find Many Entities", model, entities=entities)

        return entities

    async def find_one(
        self, model: str, where: Optional[Iterable[WhereInput]] = None
    ) -> Optional[Entity]:
        """Fetch the first matching entity, or None."""
        collection = self.resolver.get_model_name(model)
        parsed = self._where(model, where)
        self._debug("Find One Fetch", model, where=parsed)

        entity = await self._fetch_one(collection, parsed)
        self._debug("Find One Entity", model, entity=entity)

        return entity

    async def update(
        self,
        model: str,
        where: Optional[Iterable[WhereInput]],
        update: Mapping[str, Any],
    ) -> Entity:
        """
        Update the first matching entity.

        Returns:
            The fetched entity merged with ``update`` (not re-read from storage)

        Raises:
            NotFoundError: If nothing matches
            RemoteOperationError: If the client call fails
        """
        collection = self.resolver.get_model_name(model)
        parsed = self._where(model, where)
        self._debug("Update Fetch", model, where=parsed)

        entity = await self._fetch_one(collection, parsed)
        self._debug("Update Entity", model, entity=entity, update=update)

        if not entity:
            raise NotFoundError("Entity not found", resource_type=model)

        await self._call(
            "update", collection, self.client.update(collection, entity["id"], _merge(update))
        )

        return {**entity, **update}

    async def update_many(
        self,
        model: str,
        where: Optional[Iterable[WhereInput]],
        update: Mapping[str, Any],
    ) -> int:
        """
        Update every matching entity.

        Returns:
            Number of entities updated (0 when nothing matches)
        """
        collection = self.resolver.get_model_name(model)
        parsed = self._where(model, where)
        self._debug("Update Many Fetch", model, where=parsed)

        entities = await self._fetch(collection, parsed)
        self._debug("Update Many Entities", model, entities=entities)

        mutator = _merge(update)
        await self._fan_out(
            "update",
            collection,
            [
                (lambda entity_id=entity["id"]: self.client.update(collection, entity_id, mutator))
                for entity in entities
            ],
        )
        return len(entities)


def triplit_adapter(
    client: QueryClient,
    use_plural: bool = True,
    debug_logs: bool = False,
    secret_key: Optional[str] = None,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    resolver: Optional[SchemaResolver] = None,
) -> TriplitAdapter:
    """
    Factory function to create a TriplitAdapter.

    Args:
        client: Triplit query client
        use_plural: Collection names in the schema are plural
        debug_logs: Log every query and its result
        secret_key: Session token secret (default: BETTER_AUTH_SECRET)
        max_concurrency: Bound on concurrent per-entity mutations
        resolver: Custom model/field name resolver

    Returns:
        Configured TriplitAdapter instance
    """
    config = AdapterConfig(
        use_plural=use_plural,
        debug_logs=debug_logs,
        secret_key=secret_key,
        max_concurrency=max_concurrency,
    )
    return TriplitAdapter(client, config=config, resolver=resolver)
