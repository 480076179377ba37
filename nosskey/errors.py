from __future__ import annotations


class NosskeyError(Exception):
    pass


class AuthenticationFailed(NosskeyError):
    """The passkey ceremony returned no result or was cancelled."""


class SecretUnavailable(NosskeyError):
    """The ceremony succeeded but the authenticator returned no PRF output."""


class InvalidSecretMaterial(NosskeyError):
    pass


class DecryptionFailed(NosskeyError):
    """AES-GCM tag verification failed while unwrapping a signing key."""


class NoActiveKey(NosskeyError):
    pass


class InvalidRecord(NosskeyError, ValueError):
    pass


class PublicKeyMismatch(NosskeyError):
    """A derived signing key does not reproduce the record's public key."""


__all__ = [
    "NosskeyError",
    "AuthenticationFailed",
    "SecretUnavailable",
    "InvalidSecretMaterial",
    "DecryptionFailed",
    "NoActiveKey",
    "InvalidRecord",
    "PublicKeyMismatch",
]
