"""
Shared fixtures for triplit_auth tests.

Provides in-memory fakes for the Triplit client surfaces:
- FakeQueryClient: collections held in dicts, evaluates native where clauses
- FakeSessionClient: records live-session calls in order
"""

import copy
import re
from typing import Any, Callable, Dict, List, Optional

import pytest

from triplit_auth.config import ANON_TOKEN_ENV_VAR, SECRET_ENV_VAR

TEST_SECRET = "test-secret-key-for-session-tokens-0123456789"


def _like(value: Any, pattern: str) -> bool:
    if not isinstance(value, str):
        return False
    regex = "".join(
        ".*" if char == "%" else "." if char == "_" else re.escape(char) for char in pattern
    )
    return re.fullmatch(regex, value, flags=re.DOTALL) is not None


def _matches(entity: Dict[str, Any], where) -> bool:
    for field, op, expected in where:
        actual = entity.get(field)
        if op == "=" and actual != expected:
            return False
        if op == "!=" and actual == expected:
            return False
        if op == "in" and actual not in expected:
            return False
        if op == "like" and not _like(actual, expected):
            return False
        if op in (">", ">=", "<", "<="):
            if actual is None:
                return False
            if op == ">" and not actual > expected:
                return False
            if op == ">=" and not actual >= expected:
                return False
            if op == "<" and not actual < expected:
                return False
            if op == "<=" and not actual <= expected:
                return False
    return True


class FakeQueryClient:
    """In-memory QueryClient recording every call."""

    def __init__(self, collections: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.collections: Dict[str, Dict[Any, Dict[str, Any]]] = {}
        for name, entities in (collections or {}).items():
            self.collections[name] = {entity["id"]: dict(entity) for entity in entities}
        self.calls: List[tuple] = []
        self.failures: Dict[str, Exception] = {}

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.failures:
            raise self.failures[operation]

    def calls_to(self, operation: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == operation]

    async def fetch(self, collection, where, limit=None, offset=None, order=None):
        self.calls.append(("fetch", collection, list(where), limit, offset, order))
        self._maybe_fail("fetch")
        entities = [
            e for e in self.collections.get(collection, {}).values() if _matches(e, where)
        ]
        for field, direction in reversed(order or []):
            entities.sort(key=lambda e: e.get(field), reverse=direction == "DESC")
        if offset:
            entities = entities[offset:]
        if limit is not None:
            entities = entities[:limit]
        return copy.deepcopy(entities)

    async def fetch_one(self, collection, where):
        self.calls.append(("fetch_one", collection, list(where)))
        self._maybe_fail("fetch_one")
        for entity in self.collections.get(collection, {}).values():
            if _matches(entity, where):
                return copy.deepcopy(entity)
        return None

    async def insert(self, collection, record):
        self.calls.append(("insert", collection, copy.deepcopy(record)))
        self._maybe_fail("insert")
        self.collections.setdefault(collection, {})[record.get("id")] = copy.deepcopy(record)

    async def update(self, collection, entity_id, mutator):
        self.calls.append(("update", collection, entity_id))
        self._maybe_fail("update")
        mutator(self.collections[collection][entity_id])

    async def delete(self, collection, entity_id):
        self.calls.append(("delete", collection, entity_id))
        self._maybe_fail("delete")
        self.collections.get(collection, {}).pop(entity_id, None)


class FakeSessionClient:
    """SessionClient recording live-session calls in order."""

    def __init__(self, token: Optional[str] = None, decoded_token: Optional[dict] = None):
        self.token = token
        self.decoded_token = decoded_token
        self.calls: List[tuple] = []
        self.failures: Dict[str, Exception] = {}
        self.handlers: List[Callable[[Any], None]] = []
        self.unsubscribe_calls = 0

    def _record(self, *call) -> None:
        self.calls.append(call)
        if call[0] in self.failures:
            raise self.failures[call[0]]

    async def clear(self):
        self._record("clear")

    async def disconnect(self):
        self._record("disconnect")

    async def start_session(self, token):
        self._record("start_session", token)
        self.token = token

    async def update_session_token(self, token):
        self._record("update_session_token", token)
        self.token = token

    def on_session_error(self, handler):
        self.handlers.append(handler)

        def unsubscribe():
            self.unsubscribe_calls += 1
            self.handlers.remove(handler)

        return unsubscribe

    def emit_session_error(self, error) -> None:
        for handler in list(self.handlers):
            handler(error)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Tests start without auth-related environment variables."""
    monkeypatch.delenv(SECRET_ENV_VAR, raising=False)
    monkeypatch.delenv(ANON_TOKEN_ENV_VAR, raising=False)


@pytest.fixture
def secret():
    return TEST_SECRET


@pytest.fixture
def user():
    return {
        "id": "u1",
        "email": "a@b.com",
        "emailVerified": True,
        "name": "A",
        "role": "member",
        "username": "a",
    }


@pytest.fixture
def query_client(user):
    return FakeQueryClient({"users": [user]})


@pytest.fixture
def session_client():
    return FakeSessionClient()


@pytest.fixture
def make_query_client():
    return FakeQueryClient


@pytest.fixture
def make_session_client():
    return FakeSessionClient
