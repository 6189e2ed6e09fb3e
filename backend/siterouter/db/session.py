import math
from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker

from siterouter.core.config import settings


def engine_options(database_url: str, timeout_ms: int | None) -> dict[str, Any]:
    """Bound connect and pool checkout waits by the domain store timeout (PostgreSQL only)."""
    options: dict[str, Any] = {'pool_pre_ping': True}
    if not timeout_ms or timeout_ms <= 0 or not database_url.startswith('postgresql'):
        return options
    options['pool_timeout'] = timeout_ms / 1000
    # libpq only accepts whole seconds here.
    options['connect_args'] = {'connect_timeout': max(1, math.ceil(timeout_ms / 1000))}
    return options


engine = create_engine(
    settings.DATABASE_URL,
    **engine_options(settings.DATABASE_URL, settings.DOMAIN_STORE_TIMEOUT_MS),
)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def set_statement_timeout(db: Session, timeout_ms: int | None) -> None:
    """
    Bound every statement in the current transaction.

    Only PostgreSQL supports this; other backends (SQLite in tests) run unbounded.
    """
    if not timeout_ms or timeout_ms <= 0:
        return
    if db.get_bind().dialect.name != 'postgresql':
        return
    db.execute(
        text("select set_config('statement_timeout', :timeout, true)"),
        {'timeout': str(int(timeout_ms))},
    )
