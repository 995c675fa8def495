"""
auth/store.py -- Credential store: users, salted password hashes, roles.

Pattern: Repository + Data Mapper. UserRepository is the repository; the
codec (auth/codec.py) is the mapper between UserRecord and the string the
backend persists. Web/CLI code never touches the backend directly.

Backend: any object with get/set/delete/count/values over str -> str (see
KeyValueBackend). kv.store.KVStore is the production implementation.

Security:
  Unknown username and wrong password both return None from
  authenticate_user(), and both paths compute one SHA-256 [C1], so
  neither the result nor the work done reveals whether a username exists.

  Principal.roles is a tuple copy -- a caller cannot mutate stored roles
  through an authenticated principal.

Concurrency:
  Every mutation reads the full record, changes it in memory and writes it
  back with a single backend set(). Those read-modify-write sequences run
  under a per-username lock so two threads changing the same account cannot
  lose an update. Account creation additionally takes one repository-wide
  re-entrant lock, shared with the first-run bootstrap, so the bootstrap's
  "store is empty" check cannot interleave with another create. Other
  mutations on different usernames never contend. The locks are
  process-local; separate processes sharing one database still rely on the
  backend's per-call atomicity only.

Layer rule: no imports from kv/ or main.py.
"""

from __future__ import annotations

import logging
import secrets
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Protocol

from auth.codec import JsonRecordCodec
from auth.exceptions import DuplicateUserError, UserNotFoundError
from auth.hashing import DUMMY_HASH, DUMMY_SALT, RandomSource, generate_salt, hash_password, verify_password
from auth.models import Principal, Roles, UserRecord
from core.config import get_settings

logger = logging.getLogger("credstore.auth")

BOOTSTRAP_ADMIN_USERNAME = "admin"


class KeyValueBackend(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def count(self) -> int: ...

    def values(self) -> Iterable[str]: ...


class RecordCodec(Protocol):
    def encode(self, record: UserRecord) -> str: ...

    def decode(self, data: str) -> UserRecord: ...


# ---------------------------------------------------------------------------
# Per-key locking
# ---------------------------------------------------------------------------


class _KeyedLocks:
    """Mutual exclusion per key, with entries dropped once nobody holds them."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, list] = {}  # key -> [Lock, holders+waiters]

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------


class UserRepositoryBase(ABC):
    """Caller-facing surface consumed by the web layer."""

    @abstractmethod
    def authenticate_user(self, username: str, password: str) -> Principal | None:
        """Return a Principal for valid credentials, otherwise None."""

    @abstractmethod
    def create_user(self, username: str, password: str, roles: Iterable[str]) -> None:
        """Create a new account. Raises DuplicateUserError if it exists."""

    @abstractmethod
    def change_password(self, username: str, new_password: str) -> None:
        """Replace the password hash. Raises UserNotFoundError if absent."""

    @abstractmethod
    def set_roles(self, username: str, roles: Iterable[str]) -> None:
        """Replace the role list wholesale. Raises UserNotFoundError if absent."""

    @abstractmethod
    def delete_user(self, username: str) -> None:
        """Remove the account. Deleting a missing account is not an error."""

    @property
    @abstractmethod
    def all_users(self) -> Iterable[Principal]:
        """Every stored account as a Principal."""


class _AllUsers:
    """Re-iterable view: each iteration re-reads the backend."""

    def __init__(self, backend: KeyValueBackend, codec: RecordCodec) -> None:
        self._backend = backend
        self._codec = codec

    def __iter__(self) -> Iterator[Principal]:
        for data in self._backend.values():
            record = self._codec.decode(data)
            yield Principal(username=record.username, roles=tuple(record.roles))


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserRepository(UserRepositoryBase):
    """Persistent credential store over a string key-value backend.

    Usage:
        repo = UserRepository(KVStore())
        repo.create_admin_account_if_no_users_exist()
        repo.create_user("alice", "s3cret", [Roles.READER])
        principal = repo.authenticate_user("alice", "s3cret")

    random_bytes is the salt source and must be cryptographically secure.
    bootstrap_password overrides the BOOTSTRAP_ADMIN_PASSWORD setting.
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        codec: RecordCodec | None = None,
        random_bytes: RandomSource = secrets.token_bytes,
        bootstrap_password: str | None = None,
    ) -> None:
        self._backend = backend
        self._codec = codec if codec is not None else JsonRecordCodec()
        self._random_bytes = random_bytes
        self._bootstrap_password = bootstrap_password
        self._locks = _KeyedLocks()
        self._create_lock = threading.RLock()

    # ------------------------------------------------------------------
    # Record access
    # ------------------------------------------------------------------

    def _try_get_user(self, username: str) -> UserRecord | None:
        data = self._backend.get(username)
        return self._codec.decode(data) if data is not None else None

    def _get_existing_user(self, username: str) -> UserRecord:
        record = self._try_get_user(username)
        if record is None:
            raise UserNotFoundError(username)
        return record

    def _save_user(self, record: UserRecord) -> None:
        self._backend.set(record.username, self._codec.encode(record))

    # ------------------------------------------------------------------
    # Authentication [C1]
    # ------------------------------------------------------------------

    def authenticate_user(self, username: str, password: str) -> Principal | None:
        """Check a username/password pair.

        Returns a Principal (username + copy of roles) on success and None on
        any failure. Unknown usernames still hash once against DUMMY_SALT so
        the miss path costs the same as a wrong password.
        """
        record = self._try_get_user(username)
        if record is None:
            verify_password(password, DUMMY_SALT, DUMMY_HASH)
            return None
        if not verify_password(password, record.password_salt, record.password_hash):
            return None
        return Principal(username=record.username, roles=tuple(record.roles))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_user(self, username: str, password: str, roles: Iterable[str]) -> None:
        """Create an account with a fresh salt.

        roles is materialized immediately, so a generator or a list the
        caller keeps mutating is captured as it was at call time.
        """
        roles = list(roles)
        with self._create_lock, self._locks.hold(username):
            if self._try_get_user(username) is not None:
                raise DuplicateUserError(username)
            salt = generate_salt(self._random_bytes)
            self._save_user(
                UserRecord(
                    username=username,
                    password_salt=salt,
                    password_hash=hash_password(password, salt),
                    roles=roles,
                )
            )
        logger.info("Created user %r with roles %s", username, roles)

    def change_password(self, username: str, new_password: str) -> None:
        """Re-hash with the account's existing salt. The salt never changes."""
        with self._locks.hold(username):
            record = self._get_existing_user(username)
            record.password_hash = hash_password(new_password, record.password_salt)
            self._save_user(record)
        logger.info("Changed password for user %r", username)

    def set_roles(self, username: str, roles: Iterable[str]) -> None:
        roles = list(roles)
        with self._locks.hold(username):
            record = self._get_existing_user(username)
            record.roles = roles
            self._save_user(record)
        logger.info("Set roles for user %r to %s", username, roles)

    def delete_user(self, username: str) -> None:
        with self._locks.hold(username):
            self._backend.delete(username)
        logger.info("Deleted user %r", username)

    # ------------------------------------------------------------------
    # Enumeration
    # ------------------------------------------------------------------

    @property
    def all_users(self) -> Iterable[Principal]:
        """Lazy, re-iterable view of every account as a Principal.

        Nothing is read until iteration starts; each new iteration re-reads
        the backend, so it reflects the store at that moment.
        """
        return _AllUsers(self._backend, self._codec)

    # ------------------------------------------------------------------
    # First-run bootstrap
    # ------------------------------------------------------------------

    def create_admin_account_if_no_users_exist(self) -> None:
        """Create "admin" with every role -- only if the store is empty.

        Emptiness is checked over the whole store, not just the "admin" key,
        so once any account exists (however it was created) this is a no-op.
        The count and the insert run under the same lock as create_user(), so
        no create from this repository can slip in between them. If another
        process creates "admin" in that window, the DuplicateUserError is the
        signal that bootstrap already happened and is not re-raised [M1].
        """
        with self._create_lock:
            if self._backend.count() != 0:
                return
            password = self._bootstrap_password or get_settings().bootstrap_admin_password
            try:
                self.create_user(BOOTSTRAP_ADMIN_USERNAME, password, Roles.ALL_ROLES)
            except DuplicateUserError:
                logger.info("Bootstrap skipped: %r was created concurrently", BOOTSTRAP_ADMIN_USERNAME)
                return
        logger.warning(
            "No users existed; created %r with the bootstrap password. Change it now.",
            BOOTSTRAP_ADMIN_USERNAME,
        )
