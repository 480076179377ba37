"""
nosskey.crypto
--------------
Key derivation and wrapping primitives:

- HKDF-SHA256: PRF secret + per-record salt -> 256-bit AES-GCM key
- AES-256-GCM: wrap/unwrap a 32-byte signing key, tag split out explicitly

Every function is synchronous and side-effect free apart from drawing
randomness. Derived keys and plaintexts come back as ``bytearray`` so callers
can zero them when done.
"""

from __future__ import annotations
from typing import Tuple
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
import os

from .constants import AES_KEY_LEN, HKDF_INFO, IV_LEN, SALT_LEN, SECRET_KEY_LEN, TAG_LEN
from .errors import DecryptionFailed
from .utils import BytesLike, is_all_zero


def random_bytes(n: int) -> bytearray:
    return bytearray(os.urandom(n))


def new_salt() -> bytearray:
    return random_bytes(SALT_LEN)


def new_iv() -> bytearray:
    return random_bytes(IV_LEN)


def generate_secret_key() -> bytearray:
    sk = random_bytes(SECRET_KEY_LEN)
    while is_all_zero(sk):
        sk = random_bytes(SECRET_KEY_LEN)
    return sk


# --------- HKDF ----------
def derive_aes_gcm_key(secret: BytesLike, salt: BytesLike, info: bytes = HKDF_INFO) -> bytearray:
    """
    Derive the AES-256-GCM wrapping key for one record.

    Deterministic for identical (secret, salt); a different salt yields an
    independent key for the same secret.
    """
    hkdf = HKDF(algorithm=hashes.SHA256(), length=AES_KEY_LEN, salt=bytes(salt), info=info)
    return bytearray(hkdf.derive(secret))


# --------- AES-GCM ----------
def aes_gcm_encrypt(key: BytesLike, iv: BytesLike, plaintext: BytesLike) -> Tuple[bytes, bytes]:
    """Encrypt ``plaintext`` and return ``(ciphertext, tag)``; len(ciphertext) == len(plaintext)."""
    combined = AESGCM(key).encrypt(bytes(iv), plaintext, None)
    return combined[:-TAG_LEN], combined[-TAG_LEN:]


def aes_gcm_decrypt(key: BytesLike, iv: BytesLike, ciphertext: BytesLike, tag: BytesLike) -> bytearray:
    """Recombine ``ciphertext + tag`` and decrypt. Fails closed with DecryptionFailed."""
    if len(tag) != TAG_LEN:
        raise DecryptionFailed(f"authentication tag must be {TAG_LEN} bytes, got {len(tag)}")
    try:
        pt = AESGCM(key).decrypt(bytes(iv), bytes(ciphertext) + bytes(tag), None)
    except InvalidTag as e:
        raise DecryptionFailed("authentication tag verification failed") from e
    return bytearray(pt)
