"""
auth/codec.py -- JSON mapper between UserRecord and the stored string.

Pattern: Data Mapper (same role as _row_to_user in auth/store.py, but the
backend stores one opaque string per key instead of columns).

Wire format: a JSON object with the keys Username, PasswordHash,
PasswordSalt and Roles. Byte fields are standard base64 because the
backend is string-valued. Field order is fixed so identical records encode
to identical strings.

Any malformed value raises RecordDecodeError, including a missing or null
Roles field and non-string role entries. The repository does not
catch it -- a corrupt record is a backend failure, not a missing user.
"""

from __future__ import annotations

import base64
import binascii
import json

from auth.exceptions import RecordDecodeError
from auth.models import UserRecord


class JsonRecordCodec:
    """Encode/decode UserRecord <-> JSON string.

    Usage:
        codec = JsonRecordCodec()
        data = codec.encode(record)
        record = codec.decode(data)
    """

    def encode(self, record: UserRecord) -> str:
        return json.dumps(
            {
                "Username": record.username,
                "PasswordHash": base64.b64encode(record.password_hash).decode("ascii"),
                "PasswordSalt": base64.b64encode(record.password_salt).decode("ascii"),
                "Roles": list(record.roles),
            }
        )

    def decode(self, data: str) -> UserRecord:
        try:
            payload = json.loads(data)
            username = payload["Username"]
            password_hash = base64.b64decode(payload["PasswordHash"], validate=True)
            password_salt = base64.b64decode(payload["PasswordSalt"], validate=True)
            roles = payload["Roles"]
        except (ValueError, TypeError, KeyError, binascii.Error) as exc:
            raise RecordDecodeError(f"Stored user record is not valid: {exc}") from exc
        if (
            not isinstance(username, str)
            or not isinstance(roles, list)
            or not all(isinstance(r, str) for r in roles)
        ):
            raise RecordDecodeError("Stored user record has wrong field types.")
        return UserRecord(
            username=username,
            password_salt=password_salt,
            password_hash=password_hash,
            roles=list(roles),
        )
