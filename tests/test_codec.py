"""Unit tests for auth/codec.py -- UserRecord <-> JSON string mapping.

Covers:
- encoded form uses the documented keys with base64 byte fields
- arbitrary bytes (including NUL and 0xFF) survive encode/decode
- malformed input raises RecordDecodeError (a BackendError), including
  missing, null or non-string roles
"""

import base64
import json

import pytest

from auth.codec import JsonRecordCodec
from auth.exceptions import BackendError, RecordDecodeError
from auth.models import UserRecord

codec = JsonRecordCodec()


def _record() -> UserRecord:
    return UserRecord(
        username="alice",
        password_salt=b"\x00\xff" * 16,
        password_hash=bytes(range(32)),
        roles=["Writer", "Reader"],
    )


def test_encoded_layout():
    payload = json.loads(codec.encode(_record()))
    assert list(payload) == ["Username", "PasswordHash", "PasswordSalt", "Roles"]
    assert payload["Username"] == "alice"
    assert base64.b64decode(payload["PasswordSalt"]) == b"\x00\xff" * 16
    assert base64.b64decode(payload["PasswordHash"]) == bytes(range(32))
    assert payload["Roles"] == ["Writer", "Reader"]


def test_decode_restores_every_field():
    assert codec.decode(codec.encode(_record())) == _record()


def test_decode_returns_fresh_role_list():
    data = codec.encode(_record())
    first, second = codec.decode(data), codec.decode(data)
    first.roles.append("Administrator")
    assert second.roles == ["Writer", "Reader"]


def test_missing_roles_is_corrupt():
    payload = json.loads(codec.encode(_record()))
    del payload["Roles"]
    with pytest.raises(RecordDecodeError):
        codec.decode(json.dumps(payload))


@pytest.mark.parametrize("roles", [None, [None], ["Reader", 3], [["Reader"]]])
def test_null_or_non_string_roles_are_corrupt(roles):
    payload = json.loads(codec.encode(_record()))
    payload["Roles"] = roles
    with pytest.raises(RecordDecodeError):
        codec.decode(json.dumps(payload))


def test_empty_roles_are_valid():
    payload = json.loads(codec.encode(_record()))
    payload["Roles"] = []
    assert codec.decode(json.dumps(payload)).roles == []


@pytest.mark.parametrize(
    "data",
    [
        "",
        "not json",
        "[]",
        '{"Username": "alice"}',
        '{"Username": "alice", "PasswordHash": "!!!", "PasswordSalt": "AAAA", "Roles": []}',
        '{"Username": 7, "PasswordHash": "AAAA", "PasswordSalt": "AAAA", "Roles": []}',
        '{"Username": "alice", "PasswordHash": "AAAA", "PasswordSalt": "AAAA", "Roles": "Reader"}',
    ],
)
def test_malformed_input_raises(data):
    with pytest.raises(RecordDecodeError):
        codec.decode(data)


def test_decode_error_is_backend_error():
    assert issubclass(RecordDecodeError, BackendError)
