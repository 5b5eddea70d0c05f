"""
Configuration for the Triplit auth adapter.

Environment variables:
- BETTER_AUTH_SECRET: signing secret for session tokens (fallback for secret_key)
- TRIPLIT_ANON_TOKEN: anonymous token used when no user session exists
- TRIPLIT_DB_URL: Triplit server URL for TriplitHttpClient
- TRIPLIT_SERVICE_TOKEN: service token for TriplitHttpClient

Variables are read when they are needed, not at import time, so tests and
long-running processes pick up changes.
"""

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

SECRET_ENV_VAR = "BETTER_AUTH_SECRET"
ANON_TOKEN_ENV_VAR = "TRIPLIT_ANON_TOKEN"
DB_URL_ENV_VAR = "TRIPLIT_DB_URL"
SERVICE_TOKEN_ENV_VAR = "TRIPLIT_SERVICE_TOKEN"

ADAPTER_ID = "triplit-adapter"
ADAPTER_NAME = "Triplit Adapter"

# Upper bound on concurrent per-entity mutations in batch operations
DEFAULT_MAX_CONCURRENCY = 10


class AdapterConfig(BaseModel):
    """User-facing adapter options."""

    use_plural: bool = Field(True, description="Collection names in the schema are plural")
    debug_logs: bool = Field(False, description="Log every query and its result")
    secret_key: Optional[str] = Field(
        None, description=f"Session token signing secret (default: ${SECRET_ENV_VAR})"
    )
    max_concurrency: int = Field(DEFAULT_MAX_CONCURRENCY, gt=0)

    model_config = ConfigDict(frozen=True)


class AdapterCapabilities(BaseModel):
    """
    Capabilities reported to the auth framework.

    Triplit stores JSON, dates and booleans natively and lets the auth
    framework generate ids.
    """

    adapter_id: str = ADAPTER_ID
    adapter_name: str = ADAPTER_NAME
    use_plural: bool = True
    debug_logs: bool = False
    supports_json: bool = True
    supports_dates: bool = True
    supports_booleans: bool = True
    disable_id_generation: bool = False
    supports_numeric_ids: bool = True

    model_config = ConfigDict(frozen=True)


def get_env(name: str) -> Optional[str]:
    """Return an environment variable, treating empty strings as unset."""
    return os.getenv(name) or None
