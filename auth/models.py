"""
auth/models.py -- Domain dataclasses for the credential store.

Pattern: Data class (pure data container, near-zero logic). The repository
in auth/store.py does the work; auth/codec.py maps records to and from the
string form the key-value backend persists.

Layer rule: no imports from kv/ or main.py.
"""

from __future__ import annotations

from dataclasses import dataclass, field


class Roles:
    """Role vocabulary understood by the web layer.

    The store never validates against this list -- any string is accepted
    and persisted, so new roles can be introduced without a store change.
    """

    READER = "Reader"
    WRITER = "Writer"
    ADMINISTRATOR = "Administrator"
    ALL_ROLES: tuple[str, ...] = (READER, WRITER, ADMINISTRATOR)


@dataclass
class UserRecord:
    """The persisted form of one account, keyed by username.

    password_salt is generated once at creation and never changes.
    password_hash is SHA-256(password_salt ++ password) for the most recently
    set password. roles is stored as an ordered list but is a set semantically.
    """

    username: str
    password_salt: bytes
    password_hash: bytes
    roles: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Principal:
    """An authenticated actor: identity plus role set. Never persisted.

    roles is a tuple so a caller holding a Principal cannot reach back into
    the stored record and mutate it.
    """

    username: str
    roles: tuple[str, ...] = ()

    def is_in_role(self, role: str) -> bool:
        return role in self.roles
