from types import SimpleNamespace
import pytest
from fido2.client import ClientError
from fido2.utils import websafe_encode
from fido2.webauthn import UserVerificationRequirement

from nosskey.errors import AuthenticationFailed, SecretUnavailable
from nosskey.options import PasskeyCreationOptions, SecretRequestOptions
from nosskey.prf import Fido2SecretProvider

CRED = bytes([5]) * 16
SECRET = bytes([42]) * 32


class FakeSelection:
    def __init__(self, response):
        self.response = response

    def get_response(self, index):
        assert index == 0
        return self.response


class FakeClient:
    """Minimal python-fido2 client double."""

    def __init__(self, first=SECRET, credential_id=CRED, error=None, selection=True):
        self.first = first
        self.credential_id = credential_id
        self.error = error
        self.selection = selection
        self.requests = []
        self.creations = []

    def get_assertion(self, options):
        self.requests.append(options)
        if self.error:
            raise self.error
        if not self.selection:
            return None
        ext = {"prf": {"results": {"first": self.first}}} if self.first is not None else {}
        return FakeSelection(SimpleNamespace(credential_id=self.credential_id, extension_results=ext))

    def make_credential(self, options):
        self.creations.append(options)
        credential_data = SimpleNamespace(credential_id=self.credential_id)
        return SimpleNamespace(
            attestation_object=SimpleNamespace(auth_data=SimpleNamespace(credential_data=credential_data))
        )


@pytest.mark.asyncio
async def test_acquire_secret_with_known_credential():
    client = FakeClient()
    provider = Fido2SecretProvider(client, SecretRequestOptions(rp_id="example.com", timeout_ms=60000))
    result = await provider.acquire_secret(CRED)

    assert result.secret == bytearray(SECRET)
    assert result.credential_id == CRED
    req = client.requests[0]
    assert req.rp_id == "example.com"
    assert req.timeout == 60000
    assert req.user_verification == UserVerificationRequirement.REQUIRED
    assert [c.id for c in req.allow_credentials] == [CRED]
    assert req.extensions == {"prf": {"eval": {"first": b"nostr-pwk"}}}


@pytest.mark.asyncio
async def test_acquire_secret_lets_platform_choose():
    client = FakeClient(credential_id=bytes([9]) * 16)
    result = await Fido2SecretProvider(client).acquire_secret()
    assert not client.requests[0].allow_credentials
    assert result.credential_id == bytes([9]) * 16


@pytest.mark.asyncio
async def test_websafe_prf_output_is_decoded():
    client = FakeClient(first=websafe_encode(SECRET))
    result = await Fido2SecretProvider(client).acquire_secret(CRED)
    assert result.secret == bytearray(SECRET)


@pytest.mark.asyncio
async def test_no_result_is_authentication_failure():
    with pytest.raises(AuthenticationFailed):
        await Fido2SecretProvider(FakeClient(selection=False)).acquire_secret(CRED)


@pytest.mark.asyncio
async def test_client_error_is_authentication_failure():
    client = FakeClient(error=ClientError(ClientError.ERR.TIMEOUT))
    with pytest.raises(AuthenticationFailed) as exc:
        await Fido2SecretProvider(client).acquire_secret(CRED)
    assert isinstance(exc.value.__cause__, ClientError)


@pytest.mark.asyncio
async def test_missing_prf_output_is_secret_unavailable():
    with pytest.raises(SecretUnavailable):
        await Fido2SecretProvider(FakeClient(first=None)).acquire_secret(CRED)


@pytest.mark.asyncio
async def test_create_passkey_requests_prf():
    client = FakeClient()
    opts = PasskeyCreationOptions(rp_id="example.com", user_name="alice")
    cred = await Fido2SecretProvider(client).create_passkey(opts)

    assert cred == CRED
    creation = client.creations[0]
    assert creation.rp.name == "Nosskey"
    assert creation.rp.id == "example.com"
    assert creation.user.name == "alice"
    assert creation.pub_key_cred_params[0].alg == -7
    assert creation.extensions == {"prf": {}}


@pytest.mark.asyncio
async def test_prf_probe():
    assert await Fido2SecretProvider(FakeClient()).is_prf_supported() is True
    assert await Fido2SecretProvider(FakeClient(first=None)).is_prf_supported() is False
    assert await Fido2SecretProvider(FakeClient(selection=False)).is_prf_supported() is False
