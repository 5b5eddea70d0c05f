"""
Auth storage adapter for Triplit.

This module provides:
- Filter translation from the auth framework's where model
- Model/field name resolution
- Session token issuance
- The CRUD adapter itself
"""

from triplit_auth.adapter.where import Where, WhereOperator, parse_where
from triplit_auth.adapter.schema import DefaultSchemaResolver, SchemaResolver
from triplit_auth.adapter.tokens import (
    build_session_claims,
    expires_at_to_epoch,
    mint_session_token,
    resolve_secret,
)
from triplit_auth.adapter.triplit_adapter import SortBy, TriplitAdapter, triplit_adapter

__all__ = [
    # Filters
    "Where",
    "WhereOperator",
    "parse_where",
    # Schema
    "SchemaResolver",
    "DefaultSchemaResolver",
    # Tokens
    "build_session_claims",
    "expires_at_to_epoch",
    "mint_session_token",
    "resolve_secret",
    # Adapter
    "SortBy",
    "TriplitAdapter",
    "triplit_adapter",
]
