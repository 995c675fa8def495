"""Unit tests for kv/store.py -- SQLAlchemy key-value backend.

Covers:
- get/set/delete/count/values contract
- set() upserts in place
- delete() of a missing key is a no-op
- values survive engine restart on a file database
- SQLAlchemy errors surface as BackendError
- table name comes from settings when not given
"""

import pytest
from sqlalchemy import text

from auth.exceptions import BackendError
from kv.store import KVStore


def test_get_missing_returns_none(kv):
    assert kv.get("nobody") is None


def test_set_then_get(kv):
    kv.set("alice", "v1")
    assert kv.get("alice") == "v1"
    assert kv.count() == 1


def test_set_overwrites(kv):
    kv.set("alice", "v1")
    kv.set("alice", "v2")
    assert kv.get("alice") == "v2"
    assert kv.count() == 1


def test_delete(kv):
    kv.set("alice", "v1")
    kv.delete("alice")
    kv.delete("alice")
    kv.delete("never-existed")
    assert kv.get("alice") is None
    assert kv.count() == 0


def test_values_returns_every_value(kv):
    for key in ("c", "a", "b"):
        kv.set(key, f"value-{key}")
    assert sorted(kv.values()) == ["value-a", "value-b", "value-c"]


def test_keys_are_case_sensitive(kv):
    kv.set("alice", "lower")
    kv.set("Alice", "upper")
    assert kv.get("alice") == "lower"
    assert kv.get("Alice") == "upper"
    assert kv.count() == 2


def test_persists_across_instances(tmp_path):
    url = f"sqlite:///{tmp_path / 'users.db'}"
    first = KVStore(url)
    first.set("alice", "kept")
    first.close()

    second = KVStore(url)
    assert second.get("alice") == "kept"
    assert second.count() == 1
    second.close()


def test_custom_table_name(tmp_path):
    url = f"sqlite:///{tmp_path / 'users.db'}"
    a = KVStore(url, table_name="accounts_a")
    b = KVStore(url, table_name="accounts_b")
    a.set("alice", "in-a")
    assert b.get("alice") is None
    a.close()
    b.close()


def test_table_name_from_settings(tmp_path, monkeypatch):
    monkeypatch.setenv("USERS_TABLE", "people")
    store = KVStore(f"sqlite:///{tmp_path / 'users.db'}")
    assert store._table.name == "people"
    store.close()


def test_sqlalchemy_errors_become_backend_error(kv):
    with kv.engine.connect() as conn:
        conn.execute(text("DROP TABLE users"))
        conn.commit()
    with pytest.raises(BackendError) as exc_info:
        kv.get("alice")
    assert exc_info.value.__cause__ is not None
    with pytest.raises(BackendError):
        kv.set("alice", "v")
