"""
HTTP client for a Triplit server.

Implements the QueryClient surface over Triplit's HTTP API so the adapter
can run server-side without a live sync connection:
- fetch / fetch_one: POST /fetch
- insert: POST /insert
- update: read-modify-write, POST /update with the changed fields
- delete: POST /delete

SECURITY: the service token is sent as a bearer token and never logged.
"""

import copy
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from triplit_auth.client.protocols import Entity, Mutator, NativeFilter, OrderStatement
from triplit_auth.config import DB_URL_ENV_VAR, SERVICE_TOKEN_ENV_VAR, get_env
from triplit_auth.exceptions import NotFoundError, RemoteOperationError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_CONNECT_TIMEOUT_SECONDS = 10.0


class TriplitHttpClient:
    """
    Async client for the Triplit HTTP API.

    All methods are async and should be used with async/await.
    """

    def __init__(
        self,
        server_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT_SECONDS,
    ):
        """
        Initialize Triplit HTTP client.

        Args:
            server_url: Triplit server URL (default: from TRIPLIT_DB_URL)
            token: Service token (default: from TRIPLIT_SERVICE_TOKEN)
            timeout: Request timeout in seconds
            connect_timeout: Connection timeout in seconds
        """
        server_url = server_url or get_env(DB_URL_ENV_VAR)
        self.token = token or get_env(SERVICE_TOKEN_ENV_VAR)

        if not server_url:
            raise ValueError(
                f"Triplit server URL is required. Set {DB_URL_ENV_VAR} environment variable "
                "or pass server_url parameter."
            )
        if not self.token:
            raise ValueError(
                f"Triplit service token is required. Set {SERVICE_TOKEN_ENV_VAR} environment "
                "variable or pass token parameter."
            )

        self.server_url = server_url.rstrip("/")
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=connect_timeout),
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
                "Authorization": f"Bearer {self.token}",
            },
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "TriplitHttpClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _request(self, endpoint: str, payload: Dict[str, Any]) -> Any:
        """
        POST a JSON payload to the Triplit server.

        Raises:
            RemoteOperationError: On HTTP, timeout or connection errors
        """
        url = f"{self.server_url}/{endpoint.lstrip('/')}"
        operation = endpoint.strip("/")

        try:
            response = await self._client.request(method="POST", url=url, json=payload)
        except httpx.TimeoutException as e:
            logger.error("Triplit request timeout", extra={"endpoint": endpoint, "error": str(e)})
            raise RemoteOperationError(f"Request timeout: {e}", operation=operation)
        except httpx.RequestError as e:
            logger.error(
                "Triplit connection error", extra={"endpoint": endpoint, "error": str(e)}
            )
            raise RemoteOperationError(f"Connection error: {e}", operation=operation)

        if response.status_code in (401, 403):
            logger.error(
                "Triplit authorization failed",
                extra={"status_code": response.status_code, "endpoint": endpoint},
            )
            raise RemoteOperationError(
                "Authorization failed - service token may be invalid",
                operation=operation,
                status_code=response.status_code,
            )

        if response.status_code >= 400:
            logger.error(
                "Triplit API error",
                extra={
                    "status_code": response.status_code,
                    "endpoint": endpoint,
                    "response": response.text[:500],
                },
            )
            raise RemoteOperationError(
                f"Triplit API error: {response.status_code}",
                operation=operation,
                status_code=response.status_code,
            )

        if response.status_code == 204 or not response.content:
            return None

        return response.json()

    async def fetch(
        self,
        collection: str,
        where: Sequence[NativeFilter],
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        order: Optional[Sequence[OrderStatement]] = None,
    ) -> List[Entity]:
        query: Dict[str, Any] = {
            "collectionName": collection,
            "where": [list(clause) for clause in where],
        }
        if limit is not None:
            query["limit"] = limit
        if offset is not None:
            query["offset"] = offset
        if order:
            query["order"] = [list(statement) for statement in order]

        data = await self._request("/fetch", {"query": query})
        if isinstance(data, dict):
            data = data.get("result", [])
        return list(data or [])

    async def fetch_one(self, collection: str, where: Sequence[NativeFilter]) -> Optional[Entity]:
        entities = await self.fetch(collection, where, limit=1)
        return entities[0] if entities else None

    async def insert(self, collection: str, record: Entity) -> Any:
        return await self._request("/insert", {"collectionName": collection, "entity": record})

    async def update(self, collection: str, entity_id: Any, mutator: Mutator) -> Any:
        """
        Apply ``mutator`` to a copy of the stored entity and send the diff.

        Keys the mutator removes are sent as None.
        """
        current = await self.fetch_one(collection, [("id", "=", entity_id)])
        if current is None:
            raise NotFoundError(
                f"Entity not found: {collection}/{entity_id}",
                resource_type=collection,
                resource_id=str(entity_id),
            )

        updated = copy.deepcopy(current)
        mutator(updated)

        changes = {
            key: value
            for key, value in updated.items()
            if key not in current or current[key] != value
        }
        for key in current:
            if key not in updated:
                changes[key] = None

        if not changes:
            return None

        return await self._request(
            "/update",
            {"collectionName": collection, "entityId": entity_id, "changes": changes},
        )

    async def delete(self, collection: str, entity_id: Any) -> Any:
        return await self._request(
            "/delete", {"collectionName": collection, "entityId": entity_id}
        )


def get_triplit_http_client(
    server_url: Optional[str] = None,
    token: Optional[str] = None,
) -> TriplitHttpClient:
    """
    Factory function to create a TriplitHttpClient.

    Args:
        server_url: Override server URL
        token: Override service token

    Returns:
        Configured TriplitHttpClient instance
    """
    return TriplitHttpClient(server_url=server_url, token=token)
