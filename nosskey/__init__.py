"""
Nosskey
=======
Passkey-bound Nostr identities: a secp256k1 signing key that is either
AES-GCM wrapped under, or taken directly from, a WebAuthn PRF secret.

Provides:
- Key derivation and wrapping (HKDF-SHA256, AES-256-GCM)
- Wrapped-key records and their JSON form
- A TTL-scoped, zeroing key cache
- KeyManager orchestrating ceremony, unwrap, cache and signing
"""

from .cache import KeyCache
from .crypto import aes_gcm_decrypt, aes_gcm_encrypt, derive_aes_gcm_key
from .errors import (
    AuthenticationFailed, DecryptionFailed, InvalidRecord, InvalidSecretMaterial,
    NoActiveKey, NosskeyError, PublicKeyMismatch, SecretUnavailable,
)
from .event import NostrEvent
from .manager import KeyManager
from .options import (
    CacheOptions, KeyOptions, PasskeyCreationOptions, SecretRequestOptions,
    SignOptions, StorageOptions,
)
from .prf import Fido2SecretProvider, SecretProvider, SecretResult
from .records import DirectKeyRecord, EncryptedKeyRecord, WrappedKeyRecord, parse_record
from .signer import Secp256k1Signer, Signer
from .utils import bytes_to_hex, hex_to_bytes

__all__ = [
    "KeyCache",
    "aes_gcm_decrypt",
    "aes_gcm_encrypt",
    "derive_aes_gcm_key",
    "AuthenticationFailed",
    "DecryptionFailed",
    "InvalidRecord",
    "InvalidSecretMaterial",
    "NoActiveKey",
    "NosskeyError",
    "PublicKeyMismatch",
    "SecretUnavailable",
    "NostrEvent",
    "KeyManager",
    "CacheOptions",
    "KeyOptions",
    "PasskeyCreationOptions",
    "SecretRequestOptions",
    "SignOptions",
    "StorageOptions",
    "Fido2SecretProvider",
    "SecretProvider",
    "SecretResult",
    "DirectKeyRecord",
    "EncryptedKeyRecord",
    "WrappedKeyRecord",
    "parse_record",
    "Secp256k1Signer",
    "Signer",
    "bytes_to_hex",
    "hex_to_bytes",
]
