"""Credential store adapters.

The admission core talks to an ``AbstractCredentialStore``; the concrete
backend (in-memory or SQL) is chosen from ``DATABASE_URL`` by
``create_credential_store``.
"""

from app.adapters.credential_store.base import (
    AbstractCredentialStore,
    ApiKeyRecord,
    KeyChanges,
    KeyStatus,
)
from app.adapters.credential_store.factory import create_credential_store
from app.adapters.credential_store.in_memory import InMemoryCredentialStore
from app.adapters.credential_store.sql import SQLCredentialStore

__all__ = [
    "AbstractCredentialStore",
    "ApiKeyRecord",
    "InMemoryCredentialStore",
    "KeyChanges",
    "KeyStatus",
    "SQLCredentialStore",
    "create_credential_store",
]
