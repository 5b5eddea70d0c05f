"""
Triplit client interfaces and the HTTP implementation of the query surface.
"""

from triplit_auth.client.protocols import (
    Entity,
    Mutator,
    NativeFilter,
    OrderStatement,
    QueryClient,
    SessionClient,
)
from triplit_auth.client.http import TriplitHttpClient, get_triplit_http_client

__all__ = [
    # Protocols
    "QueryClient",
    "SessionClient",
    # Types
    "Entity",
    "Mutator",
    "NativeFilter",
    "OrderStatement",
    # HTTP client
    "TriplitHttpClient",
    "get_triplit_http_client",
]
