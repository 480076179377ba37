"""
nosskey.records
---------------
Persisted representation of a passkey-bound signing key.

A record is one of two variants, discriminated by ``alg``:

- ``EncryptedKeyRecord`` (``aes-gcm-256``): the signing key is AES-GCM
  wrapped under an HKDF key derived from the passkey's PRF secret.
- ``DirectKeyRecord`` (``prf-direct``): the PRF secret itself is the
  signing key; nothing is stored besides identifiers.

The variants are separate dataclasses joined by the ``WrappedKeyRecord``
union; callers dispatch on ``record.alg``. Binary fields are lowercase hex.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union
import json

from .constants import (
    ALG_AES_GCM_256, ALG_PRF_DIRECT, IV_LEN, RECORD_VERSION, SALT_LEN,
    SECRET_KEY_LEN, TAG_LEN,
)
from .errors import InvalidRecord

# Long-form field names accepted on read, mapped to the wire names
_ALIASES = {
    "version": "v",
    "algorithm": "alg",
    "ciphertext": "ct",
    "authTag": "tag",
    "publicKey": "pubkey",
}


@dataclass(frozen=True)
class EncryptedKeyRecord:
    salt: str           # hex(16 B)
    iv: str             # hex(12 B)
    ct: str             # hex(32 B)
    tag: str            # hex(16 B)
    credentialId: str   # hex
    pubkey: str         # hex(32 B), x-only
    username: Optional[str] = None
    v: int = RECORD_VERSION
    alg: str = ALG_AES_GCM_256

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "v": self.v,
            "alg": self.alg,
            "salt": self.salt,
            "iv": self.iv,
            "ct": self.ct,
            "tag": self.tag,
            "credentialId": self.credentialId,
            "pubkey": self.pubkey,
        }
        if self.username is not None:
            d["username"] = self.username
        return d

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))


@dataclass(frozen=True)
class DirectKeyRecord:
    credentialId: str   # hex
    pubkey: str         # hex(32 B), x-only
    username: Optional[str] = None
    v: int = RECORD_VERSION
    alg: str = ALG_PRF_DIRECT

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "v": self.v,
            "alg": self.alg,
            "credentialId": self.credentialId,
            "pubkey": self.pubkey,
        }
        if self.username is not None:
            d["username"] = self.username
        return d

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))


WrappedKeyRecord = Union[EncryptedKeyRecord, DirectKeyRecord]


def _hex_field(data: Dict[str, Any], name: str, length: Optional[int] = None) -> str:
    value = data.get(name)
    if not isinstance(value, str):
        raise InvalidRecord(f"field '{name}' must be a hex string")
    value = value.lower()
    try:
        raw = bytes.fromhex(value)
    except ValueError as e:
        raise InvalidRecord(f"field '{name}' is not valid hex") from e
    if length is not None and len(raw) != length:
        raise InvalidRecord(f"field '{name}' must be {length} bytes, got {len(raw)}")
    if length is None and not raw:
        raise InvalidRecord(f"field '{name}' must not be empty")
    return value


def parse_record(data: Union[str, Dict[str, Any]]) -> WrappedKeyRecord:
    """
    Validate a persisted record (dict or JSON text) and return the matching variant.

    Raises InvalidRecord on an unknown version or algorithm, a missing field,
    or a binary field of the wrong length.
    """
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as e:
            raise InvalidRecord("record is not valid JSON") from e
    if not isinstance(data, dict):
        raise InvalidRecord("record must be a JSON object")

    data = {_ALIASES.get(k, k): v for k, v in data.items()}

    if data.get("v") != RECORD_VERSION:
        raise InvalidRecord(f"unsupported record version: {data.get('v')!r}")

    username = data.get("username")
    if username is not None and not isinstance(username, str):
        raise InvalidRecord("field 'username' must be a string")

    alg = data.get("alg")
    if alg == ALG_AES_GCM_256:
        return EncryptedKeyRecord(
            salt=_hex_field(data, "salt", SALT_LEN),
            iv=_hex_field(data, "iv", IV_LEN),
            ct=_hex_field(data, "ct", SECRET_KEY_LEN),
            tag=_hex_field(data, "tag", TAG_LEN),
            credentialId=_hex_field(data, "credentialId"),
            pubkey=_hex_field(data, "pubkey", 32),
            username=username,
        )
    if alg == ALG_PRF_DIRECT:
        return DirectKeyRecord(
            credentialId=_hex_field(data, "credentialId"),
            pubkey=_hex_field(data, "pubkey", 32),
            username=username,
        )
    raise InvalidRecord(f"unsupported record algorithm: {alg!r}")
