"""Factory for the configured credential store."""

from app.adapters.credential_store.base import AbstractCredentialStore
from app.adapters.credential_store.in_memory import InMemoryCredentialStore
from app.adapters.credential_store.sql import SQLCredentialStore
from app.core.config import DatabaseSettings, settings
from app.core.database import build_engine, build_session_factory, init_schema

MEMORY_URL = "memory://"


def create_credential_store(db_settings: DatabaseSettings | None = None) -> AbstractCredentialStore:
    """Build the store selected by ``DATABASE_URL``.

    ``memory://`` gives an empty in-process store; any other value is treated
    as a SQLAlchemy URL and its schema is created if missing.

    Args:
        db_settings: Optional override; defaults to global settings.

    Returns:
        AbstractCredentialStore: Ready-to-use store.
    """
    cfg = db_settings or settings.database

    if cfg.url == MEMORY_URL:
        return InMemoryCredentialStore()

    engine = build_engine(cfg)
    init_schema(engine)
    return SQLCredentialStore(build_session_factory(engine))
