"""
nosskey.prf
-----------
Secret Provider: obtains the per-credential PRF secret from a passkey.

``SecretProvider`` is the contract the key manager consumes. The
``Fido2SecretProvider`` adapter drives a python-fido2 client (USB/NFC
security key, or any object with the same ``get_assertion`` /
``make_credential`` surface) and requests the WebAuthn PRF extension
evaluated on a fixed input.

The fido2 client is blocking, so ceremonies run in a worker thread and the
public methods stay awaitable. No retries happen here.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional
import asyncio, os

from fido2.client import ClientError
from fido2.utils import websafe_decode
from fido2.webauthn import (
    AuthenticatorSelectionCriteria,
    PublicKeyCredentialCreationOptions,
    PublicKeyCredentialDescriptor,
    PublicKeyCredentialParameters,
    PublicKeyCredentialRequestOptions,
    PublicKeyCredentialRpEntity,
    PublicKeyCredentialType,
    PublicKeyCredentialUserEntity,
    ResidentKeyRequirement,
    UserVerificationRequirement,
)

from .constants import COSE_ALG_ES256, PRF_EVAL_INPUT
from .errors import AuthenticationFailed, SecretUnavailable
from .logger import get_logger
from .options import PasskeyCreationOptions, SecretRequestOptions
from .utils import clear_bytes, short_id

log = get_logger("nosskey.prf")


@dataclass
class SecretResult:
    secret: bytearray
    credential_id: bytes    # the credential actually used; persist it if it was not known


class SecretProvider:
    """Acquires PRF secrets via a user-present authentication ceremony."""

    async def acquire_secret(
        self,
        credential_id: Optional[bytes] = None,
        options: Optional[SecretRequestOptions] = None,
    ) -> SecretResult:  # pragma: no cover - interface
        """
        Run the ceremony and return the secret plus the credential id used.

        Raises AuthenticationFailed when the ceremony yields nothing and
        SecretUnavailable when the PRF output is missing.
        """
        raise NotImplementedError

    async def create_passkey(self, options: Optional[PasskeyCreationOptions] = None) -> bytes:  # pragma: no cover
        """Register a new PRF-capable passkey and return its raw credential id."""
        raise NotImplementedError

    async def is_prf_supported(self) -> bool:  # pragma: no cover
        raise NotImplementedError


def _prf_first(extension_results: Any) -> Optional[bytearray]:
    first = (((extension_results or {}).get("prf") or {}).get("results") or {}).get("first")
    if not first:
        return None
    if isinstance(first, str):
        first = websafe_decode(first)
    return bytearray(first)


def _assertion_credential_id(response: Any) -> bytes:
    # fido2 1.2 exposes raw_id; 1.1 only credential_id
    raw_id = getattr(response, "raw_id", None)
    if raw_id is None:
        raw_id = response.credential_id
    return bytes(raw_id)


def _assertion_extensions(response: Any) -> Any:
    results = getattr(response, "client_extension_results", None)
    if results is None:
        results = getattr(response, "extension_results", None)
    return results


def _registration_credential_id(response: Any) -> bytes:
    raw_id = getattr(response, "raw_id", None)
    if raw_id is None:
        raw_id = response.attestation_object.auth_data.credential_data.credential_id
    return bytes(raw_id)


class Fido2SecretProvider(SecretProvider):
    """
    PRF secret provider backed by a python-fido2 ``Fido2Client``.

    Args:
        client: a ``fido2.client.Fido2Client`` (or compatible object).
        default_options: rp id / timeout / user verification used when a
            call passes none.
        prf_input: the PRF ``eval.first`` input; fixed per application.
    """

    def __init__(self, client: Any, default_options: Optional[SecretRequestOptions] = None,
                 prf_input: bytes = PRF_EVAL_INPUT):
        self.client = client
        self.default_options = default_options or SecretRequestOptions()
        self.prf_input = prf_input

    @classmethod
    def from_first_device(cls, origin: str, user_interaction: Any = None,
                          default_options: Optional[SecretRequestOptions] = None) -> "Fido2SecretProvider":
        """Build a provider for the first attached CTAP HID authenticator."""
        from fido2.client import Fido2Client
        from fido2.hid import CtapHidDevice

        device = next(CtapHidDevice.list_devices(), None)
        if device is None:
            raise AuthenticationFailed("no FIDO2 authenticator attached")
        kwargs = {"user_interaction": user_interaction} if user_interaction is not None else {}
        return cls(Fido2Client(device, origin, **kwargs), default_options=default_options)

    def _request_options(self, credential_id: Optional[bytes],
                         options: SecretRequestOptions) -> PublicKeyCredentialRequestOptions:
        allow = []
        if credential_id:
            allow = [PublicKeyCredentialDescriptor(type=PublicKeyCredentialType.PUBLIC_KEY, id=bytes(credential_id))]
        return PublicKeyCredentialRequestOptions(
            challenge=os.urandom(32),
            timeout=options.timeout_ms,
            rp_id=options.rp_id,
            allow_credentials=allow,
            user_verification=UserVerificationRequirement(options.user_verification),
            extensions={"prf": {"eval": {"first": self.prf_input}}},
        )

    async def acquire_secret(self, credential_id: Optional[bytes] = None,
                             options: Optional[SecretRequestOptions] = None) -> SecretResult:
        options = options or self.default_options
        request = self._request_options(credential_id, options)
        label = short_id(credential_id) if credential_id else "<any>"
        log.info(f"[PRF GET] credential={label} rp_id={options.rp_id}")

        try:
            selection = await asyncio.to_thread(self.client.get_assertion, request)
        except ClientError as e:
            log.warning(f"[PRF GET] ceremony failed: {e}")
            raise AuthenticationFailed(f"authentication failed: {e}") from e
        if selection is None:
            raise AuthenticationFailed("authentication failed")

        response = selection.get_response(0)
        if response is None:
            raise AuthenticationFailed("authentication failed")

        secret = _prf_first(_assertion_extensions(response))
        if secret is None:
            raise SecretUnavailable("PRF secret not available")

        used_id = _assertion_credential_id(response)
        log.info(f"[PRF GET] ok credential={short_id(used_id)}")
        return SecretResult(secret=secret, credential_id=used_id)

    async def create_passkey(self, options: Optional[PasskeyCreationOptions] = None) -> bytes:
        options = options or PasskeyCreationOptions()
        creation = PublicKeyCredentialCreationOptions(
            rp=PublicKeyCredentialRpEntity(name=options.rp_name, id=options.rp_id),
            user=PublicKeyCredentialUserEntity(
                name=options.user_name,
                id=os.urandom(16),
                display_name=options.user_display_name,
            ),
            challenge=os.urandom(32),
            pub_key_cred_params=[
                PublicKeyCredentialParameters(type=PublicKeyCredentialType.PUBLIC_KEY, alg=COSE_ALG_ES256)
            ],
            timeout=options.timeout_ms,
            authenticator_selection=AuthenticatorSelectionCriteria(
                resident_key=ResidentKeyRequirement(options.resident_key),
                user_verification=UserVerificationRequirement(options.user_verification),
            ),
            extensions={"prf": {}},
        )
        log.info(f"[PRF CREATE] rp={options.rp_name} user={options.user_name}")
        try:
            response = await asyncio.to_thread(self.client.make_credential, creation)
        except ClientError as e:
            raise AuthenticationFailed(f"passkey registration failed: {e}") from e
        if response is None:
            raise AuthenticationFailed("passkey registration failed")

        credential_id = _registration_credential_id(response)
        log.info(f"[PRF CREATE] credential={short_id(credential_id)}")
        return credential_id

    async def is_prf_supported(self) -> bool:
        """Probe ceremony with an empty allow list; any failure means unsupported."""
        try:
            result = await self.acquire_secret(None)
            clear_bytes(result.secret)
            return True
        except Exception as e:
            log.debug(f"[PRF PROBE] unsupported: {e}")
            return False
