"""
auth/exceptions.py -- Error hierarchy for the credential store.

DuplicateUserError and UserNotFoundError are caller-recoverable: the web
layer turns them into a conflict / not-found response. BackendError wraps
any failure of the underlying store or codec and is propagated untouched
by the repository.

Bad credentials are NOT an error. authenticate_user() returns None.
"""

from __future__ import annotations


class CredentialStoreError(Exception):
    """Base class for every error raised by the credential store."""


class DuplicateUserError(CredentialStoreError, ValueError):
    def __init__(self, username: str) -> None:
        super().__init__(f"User {username!r} already exists.")
        self.username = username


class UserNotFoundError(CredentialStoreError, KeyError):
    def __init__(self, username: str) -> None:
        super().__init__(f"User {username!r} does not exist.")
        self.username = username

    # KeyError.__str__ repr()s its argument; keep the plain message.
    def __str__(self) -> str:
        return str(self.args[0])


class BackendError(CredentialStoreError):
    """The durable key-value store failed (I/O, schema, corruption)."""


class RecordDecodeError(BackendError):
    """A stored value could not be decoded back into a UserRecord."""
