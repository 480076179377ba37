"""
nosskey.utils
-------------
Small helpers for hex conversion, timestamps, canonical JSON and zero-filling
key buffers. Nothing here touches the network or the authenticator.
"""

from __future__ import annotations
import json, time
from typing import Any, Union

BytesLike = Union[bytes, bytearray, memoryview]


def bytes_to_hex(b: BytesLike) -> str:
    return bytes(b).hex()


def hex_to_bytes(s: str) -> bytes:
    # bytes.fromhex accepts upper case; odd lengths raise ValueError
    return bytes.fromhex(s)


def credential_key(credential_id: Union[BytesLike, str]) -> str:
    """Normalize a credential id (raw bytes or hex) to the lowercase hex form used as a map key."""
    if isinstance(credential_id, str):
        return credential_id.lower()
    return bytes_to_hex(credential_id)


def short_id(credential_id: Union[BytesLike, str]) -> str:
    # Log-safe prefix of a credential id
    return credential_key(credential_id)[:8]


def now_ms() -> int:
    return int(time.time() * 1000)


def now_ts() -> str:
    # RFC3339 / ISO 8601 in UTC, second precision
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def canonical_json(obj: Any) -> bytes:
    # Compact UTF-8 JSON, key order preserved (NIP-01 serialization)
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def is_all_zero(b: BytesLike) -> bool:
    return not any(b)


def clear_bytes(buf: Union[bytearray, memoryview]) -> None:
    """
    Overwrite a mutable key buffer with zeros in place.

    Raises TypeError for immutable buffers (``bytes``); callers that treat
    zeroing as best-effort catch it.
    """
    if isinstance(buf, bytes):
        raise TypeError("cannot zero an immutable bytes object")
    view = memoryview(buf).cast("B")
    view[:] = bytes(len(view))
