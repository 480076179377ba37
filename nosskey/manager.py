"""
nosskey.manager
---------------
KeyManager: the public surface for passkey-bound Nostr keys.

- create / import / generate a signing key wrapped under the passkey PRF
- use the PRF secret directly as the signing key
- sign events, consulting the key cache before prompting the user
- export the plaintext signing key
- NIP-07 style convenience methods over a "current" record

One KeyManager is constructed by the application and passed to whatever
needs it; there is no module-level instance.
"""

from __future__ import annotations
from typing import Any, Dict, Optional, Union

from .cache import KeyCache
from .constants import ALG_AES_GCM_256, ALG_PRF_DIRECT, SECRET_KEY_LEN
from .crypto import (
    aes_gcm_decrypt, aes_gcm_encrypt, derive_aes_gcm_key, generate_secret_key,
    new_iv, new_salt,
)
from .errors import InvalidRecord, InvalidSecretMaterial, NoActiveKey, PublicKeyMismatch
from .event import NostrEvent
from .logger import get_logger
from .options import (
    CacheOptions, KeyOptions, PasskeyCreationOptions, SecretRequestOptions,
    SignOptions, StorageOptions, default_secret_request_options, load_cache_options,
)
from .prf import SecretProvider, SecretResult
from .records import DirectKeyRecord, EncryptedKeyRecord, WrappedKeyRecord, parse_record
from .signer import Secp256k1Signer, Signer
from .storage import load_storage_options
from .utils import BytesLike, bytes_to_hex, clear_bytes, hex_to_bytes, is_all_zero, short_id

log = get_logger("nosskey.manager")

RecordLike = Union[WrappedKeyRecord, Dict[str, Any], str]


def _check_direct_secret(secret: BytesLike) -> None:
    if len(secret) != SECRET_KEY_LEN:
        raise InvalidSecretMaterial(f"PRF secret must be {SECRET_KEY_LEN} bytes, got {len(secret)}")
    if is_all_zero(secret):
        raise InvalidSecretMaterial("PRF secret is all zero")


class KeyManager:
    """
    Composes the secret provider, key derivation, key cache and signer.

    Args:
        secret_provider: obtains PRF secrets (see ``nosskey.prf``).
        signer: defaults to ``Secp256k1Signer``.
        cache_options: defaults to ``load_cache_options()`` (environment).
        storage_options: defaults to ``load_storage_options()`` (environment).
        secret_options: rp id / timeout / user verification passed to the
            provider on every ceremony.
        cache: a pre-built KeyCache (tests inject one with a manual clock).
    """

    def __init__(
        self,
        secret_provider: SecretProvider,
        signer: Optional[Signer] = None,
        cache_options: Optional[CacheOptions] = None,
        storage_options: Optional[StorageOptions] = None,
        secret_options: Optional[SecretRequestOptions] = None,
        cache: Optional[KeyCache] = None,
    ):
        self.secret_provider = secret_provider
        self.signer = signer or Secp256k1Signer()
        self.secret_options = secret_options or default_secret_request_options()
        if cache is None:
            cache = KeyCache(cache_options if cache_options is not None else load_cache_options())
        self._cache = cache
        self._storage_options = storage_options or load_storage_options()
        self._current: Optional[WrappedKeyRecord] = None

    # ------------------------------------------------------------------
    # Passkeys
    # ------------------------------------------------------------------
    async def create_passkey(self, options: Optional[PasskeyCreationOptions] = None) -> bytes:
        return await self.secret_provider.create_passkey(options)

    async def is_prf_supported(self) -> bool:
        return await self.secret_provider.is_prf_supported()

    # ------------------------------------------------------------------
    # Key creation
    # ------------------------------------------------------------------
    async def create_or_import_key(
        self,
        secret_key: Optional[bytearray] = None,
        credential_id: Optional[bytes] = None,
        options: Optional[KeyOptions] = None,
    ) -> EncryptedKeyRecord:
        """
        Wrap ``secret_key`` (or a freshly generated key) under the passkey PRF.

        On success the caller's ``secret_key`` buffer is zeroed unless
        ``options.clear_memory`` is False. A generated key never leaves this
        method in plaintext.
        """
        options = options or KeyOptions()
        generated = secret_key is None
        if generated:
            sk = generate_secret_key()
            try:
                record = await self._wrap_key(sk, credential_id, options)
            finally:
                clear_bytes(sk)
        else:
            if len(secret_key) != SECRET_KEY_LEN:
                raise InvalidSecretMaterial(
                    f"secret key must be {SECRET_KEY_LEN} bytes, got {len(secret_key)}"
                )
            record = await self._wrap_key(secret_key, credential_id, options)
            if options.clear_memory:
                self._clear_best_effort(secret_key)
        log.info(f"[KEY WRAP] credential={short_id(record.credentialId)} generated={generated}")
        return record

    async def _wrap_key(self, sk: BytesLike, credential_id: Optional[bytes],
                        options: KeyOptions) -> EncryptedKeyRecord:
        # reject an unusable key before prompting the user
        pubkey = self.signer.get_public_key(bytes_to_hex(sk))

        result = await self._acquire(credential_id)
        salt, iv = new_salt(), new_iv()
        try:
            aes_key = derive_aes_gcm_key(result.secret, salt)
            try:
                ct, tag = aes_gcm_encrypt(aes_key, iv, sk)
            finally:
                clear_bytes(aes_key)
        finally:
            clear_bytes(result.secret)

        return EncryptedKeyRecord(
            salt=bytes_to_hex(salt),
            iv=bytes_to_hex(iv),
            ct=bytes_to_hex(ct),
            tag=bytes_to_hex(tag),
            credentialId=bytes_to_hex(result.credential_id),
            pubkey=pubkey,
            username=options.username,
        )

    async def import_nostr_key(self, secret_key: bytearray, credential_id: Optional[bytes] = None,
                               options: Optional[KeyOptions] = None) -> EncryptedKeyRecord:
        return await self.create_or_import_key(secret_key, credential_id, options)

    async def generate_nostr_key(self, credential_id: Optional[bytes] = None,
                                 options: Optional[KeyOptions] = None) -> EncryptedKeyRecord:
        return await self.create_or_import_key(None, credential_id, options)

    async def create_direct_key(self, credential_id: Optional[bytes] = None,
                                options: Optional[KeyOptions] = None) -> DirectKeyRecord:
        """Use the PRF secret itself as the signing key. An all-zero secret is rejected."""
        options = options or KeyOptions()
        result = await self._acquire(credential_id)
        try:
            _check_direct_secret(result.secret)
            pubkey = self.signer.get_public_key(bytes_to_hex(result.secret))
        finally:
            clear_bytes(result.secret)

        record = DirectKeyRecord(
            credentialId=bytes_to_hex(result.credential_id),
            pubkey=pubkey,
            username=options.username,
        )
        log.info(f"[KEY DIRECT] credential={short_id(record.credentialId)}")
        return record

    direct_prf_to_nostr_key = create_direct_key

    # ------------------------------------------------------------------
    # Signing / export
    # ------------------------------------------------------------------
    async def sign_event(
        self,
        event: Union[NostrEvent, Dict[str, Any]],
        record: Optional[RecordLike] = None,
        options: Optional[SignOptions] = None,
    ) -> NostrEvent:
        """
        Sign ``event`` with the key behind ``record`` (the current record if omitted).

        A live cache entry skips the passkey ceremony. A freshly derived key
        is written to the cache when caching applies; the cache keeps its own
        copy and the local buffer is zeroed. When caching does not apply the
        key is zeroed unless ``options.clear_memory`` is False.
        """
        record = self._as_record(record) if record is not None else self._require_current()
        options = options or SignOptions()
        if isinstance(event, dict):
            event = NostrEvent.from_dict(event)

        use_cache = self._cache.enabled and options.use_cache is not False
        if use_cache:
            signed = self._sign_from_cache(event, record, options)
            if signed is not None:
                return signed

        sk = await self._resolve_signing_key(record)
        try:
            if use_cache:
                self._cache.set(record.credentialId, sk)
            signed = self.signer.sign_event(event, bytes_to_hex(sk), options.tags)
        finally:
            if use_cache or options.clear_memory:
                self._clear_best_effort(sk)
        log.info(f"[SIGN] kind={signed.kind} credential={short_id(record.credentialId)} cached={use_cache}")
        return signed

    def _sign_from_cache(self, event: NostrEvent, record: WrappedKeyRecord,
                         options: SignOptions) -> Optional[NostrEvent]:
        sk = self._cache.get_copy(record.credentialId)
        if sk is None:
            return None
        try:
            sk_hex = bytes_to_hex(sk)
            # one credential can back both an encrypted and a direct record
            if self.signer.get_public_key(sk_hex) != record.pubkey.lower():
                log.warning(f"[SIGN] cached key does not match record credential={short_id(record.credentialId)}; dropping")
                self._cache.clear(record.credentialId)
                return None
            log.debug(f"[SIGN] cache hit credential={short_id(record.credentialId)}")
            return self.signer.sign_event(event, sk_hex, options.tags)
        finally:
            clear_bytes(sk)

    async def export_key(self, record: RecordLike, credential_id: Optional[bytes] = None) -> str:
        """Return the plaintext signing key as hex. Bypasses the cache entirely."""
        record = self._as_record(record)
        sk = await self._resolve_signing_key(record, credential_id)
        try:
            return bytes_to_hex(sk)
        finally:
            clear_bytes(sk)

    export_nostr_key = export_key

    async def _resolve_signing_key(self, record: WrappedKeyRecord,
                                   credential_id: Optional[bytes] = None) -> bytearray:
        cid = credential_id if credential_id is not None else hex_to_bytes(record.credentialId)
        result = await self._acquire(cid)
        try:
            if record.alg == ALG_PRF_DIRECT:
                _check_direct_secret(result.secret)
                sk = bytearray(result.secret)
            elif record.alg == ALG_AES_GCM_256:
                aes_key = derive_aes_gcm_key(result.secret, hex_to_bytes(record.salt))
                try:
                    sk = aes_gcm_decrypt(aes_key, hex_to_bytes(record.iv),
                                         hex_to_bytes(record.ct), hex_to_bytes(record.tag))
                finally:
                    clear_bytes(aes_key)
            else:
                raise InvalidRecord(f"unsupported record algorithm: {record.alg!r}")
        finally:
            clear_bytes(result.secret)

        try:
            if self.signer.get_public_key(bytes_to_hex(sk)) != record.pubkey.lower():
                raise PublicKeyMismatch(
                    f"derived key does not match record pubkey for credential {short_id(record.credentialId)}"
                )
        except Exception:
            clear_bytes(sk)
            raise
        return sk

    async def _acquire(self, credential_id: Optional[bytes]) -> SecretResult:
        label = short_id(credential_id) if credential_id else "<any>"
        log.debug(f"[PRF] requesting secret credential={label}")
        return await self.secret_provider.acquire_secret(credential_id, self.secret_options)

    # ------------------------------------------------------------------
    # NIP-07 surface / current record
    # ------------------------------------------------------------------
    async def get_public_key(self) -> str:
        return self._require_current().pubkey

    def set_current_record(self, record: RecordLike) -> None:
        record = self._as_record(record)
        self._current = record
        opts = self._storage_options
        if opts.enabled and opts.storage is not None:
            opts.storage.upsert_record(opts.storage_key, record)
            log.info(f"[STORE] saved record under '{opts.storage_key}'")

    def get_current_record(self) -> Optional[WrappedKeyRecord]:
        if self._current is None:
            opts = self._storage_options
            if opts.enabled and opts.storage is not None:
                self._current = opts.storage.get_record(opts.storage_key)
        return self._current

    def has_record(self) -> bool:
        return self.get_current_record() is not None

    def set_storage_options(self, options: Optional[StorageOptions] = None, **changes) -> None:
        base = options or self._storage_options
        self._storage_options = base.merged(**changes)

    def get_storage_options(self) -> StorageOptions:
        return self._storage_options.merged()

    def clear_stored_record(self) -> None:
        """Delete the persisted record and forget the in-memory current record."""
        opts = self._storage_options
        if opts.storage is not None:
            opts.storage.delete_record(opts.storage_key)
        self._current = None

    def _require_current(self) -> WrappedKeyRecord:
        record = self.get_current_record()
        if record is None:
            raise NoActiveKey("no current key record is set")
        return record

    @staticmethod
    def _as_record(record: RecordLike) -> WrappedKeyRecord:
        if isinstance(record, (EncryptedKeyRecord, DirectKeyRecord)):
            return record
        return parse_record(record)

    # ------------------------------------------------------------------
    # Cache / memory
    # ------------------------------------------------------------------
    def set_cache_options(self, options: Optional[CacheOptions] = None, *,
                          enabled: Optional[bool] = None, timeout_ms: Optional[int] = None) -> None:
        self._cache.set_options(options, enabled=enabled, timeout_ms=timeout_ms)

    def get_cache_options(self) -> CacheOptions:
        return self._cache.get_options()

    def clear_cached_key(self, credential_id: Union[BytesLike, str]) -> None:
        self._cache.clear(credential_id)

    def clear_all_cached_keys(self) -> None:
        self._cache.clear_all()

    def clear_key(self, buf: bytearray) -> None:
        clear_bytes(buf)

    def close(self) -> None:
        """Purge the key cache and close the record storage backend."""
        self._cache.close()
        storage = self._storage_options.storage
        if storage is not None:
            storage.close()
        log.info("[MANAGER] closed; cache purged, storage closed")

    @staticmethod
    def _clear_best_effort(buf: Any) -> None:
        try:
            clear_bytes(buf)
        except (TypeError, ValueError) as e:
            log.warning(f"[MEMORY] could not zero key buffer: {e}")
