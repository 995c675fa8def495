"""
kv/store.py -- SQLAlchemy Core key-value table used as the durable user store.

One table, two columns: key (primary key) and value (opaque text). The
credential store keeps one serialized UserRecord per username here.

Contract (what auth.store.UserRepository relies on):
  get(key)         -> value or None
  set(key, value)  -> upsert
  delete(key)      -> no-op if absent
  count()          -> number of keys
  values()         -> every stored value, any order

Each call is its own transaction, so every individual get/set/delete is
atomic. Cross-call atomicity (read-modify-write) is the repository's job.

Errors: every SQLAlchemyError is re-raised as auth.exceptions.BackendError
with the original chained as __cause__. Callers never see driver types.

Usage:
    store = KVStore()                                  # SQLite default
    store = KVStore("postgresql://user:pw@host/db")    # PostgreSQL
    store.set("alice", "{...}")
    store.get("alice")
    store.close()
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from auth.exceptions import BackendError
from core.config import get_settings

logger = logging.getLogger("credstore.kv")


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


@contextmanager
def _backend_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise BackendError(f"Key-value store {operation} failed: {exc}") from exc


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class KVStore:
    """Persistent string -> string map backed by a single SQL table.

    db_url and table_name default to the DATABASE_URL / USERS_TABLE settings.
    """

    def __init__(self, db_url: str | None = None, table_name: str | None = None) -> None:
        settings = get_settings()
        db_url = db_url or settings.database_url
        table_name = table_name or settings.users_table

        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        with _backend_errors("setup"):
            self.engine: Engine = create_engine(db_url, connect_args=connect_args)
            if db_url.startswith("sqlite"):
                event.listen(self.engine, "connect", _set_wal_mode)
            self._metadata = MetaData()
            self._table = Table(
                table_name,
                self._metadata,
                Column("key", String(255), primary_key=True),
                Column("value", Text, nullable=False),
            )
            self._metadata.create_all(self.engine)
        logger.debug("Key-value table %r ready on %s", table_name, self.engine.url.render_as_string(hide_password=True))

    def get(self, key: str) -> str | None:
        """Return the value stored under key, or None if absent."""
        t = self._table
        with _backend_errors("get"), self.engine.connect() as conn:
            row = conn.execute(select(t.c.value).where(t.c.key == key)).fetchone()
        return row.value if row is not None else None

    def set(self, key: str, value: str) -> None:
        """Create or overwrite the value stored under key.

        UPDATE first, INSERT when nothing matched -- portable across SQLite and
        PostgreSQL without dialect-specific ON CONFLICT clauses. Both
        statements share one transaction.
        """
        t = self._table
        with _backend_errors("set"), self.engine.connect() as conn:
            result = conn.execute(t.update().where(t.c.key == key).values(value=value))
            if result.rowcount == 0:
                conn.execute(t.insert().values(key=key, value=value))
            conn.commit()

    def delete(self, key: str) -> None:
        """Remove key. Deleting a missing key is not an error."""
        t = self._table
        with _backend_errors("delete"), self.engine.connect() as conn:
            conn.execute(t.delete().where(t.c.key == key))
            conn.commit()

    def count(self) -> int:
        with _backend_errors("count"), self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(self._table)).scalar()
        return result or 0

    def values(self) -> list[str]:
        """Return every stored value, ordered by key for stable output."""
        t = self._table
        with _backend_errors("values"), self.engine.connect() as conn:
            rows = conn.execute(select(t.c.value).order_by(t.c.key)).fetchall()
        return [r.value for r in rows]

    def close(self) -> None:
        self.engine.dispose()
