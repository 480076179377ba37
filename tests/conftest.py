import hashlib
import pytest

from nosskey.cache import KeyCache
from nosskey.manager import KeyManager
from nosskey.options import CacheOptions, SecretRequestOptions, StorageOptions
from nosskey.prf import SecretProvider, SecretResult
from nosskey.signer import Signer, prepare_event
from nosskey.storage import InMemoryStorage

PRF_SECRET = bytes([42]) * 32
CREDENTIAL_ID = bytes([1]) * 16


class FakeSecretProvider(SecretProvider):
    """Returns a fixed PRF secret and counts ceremonies."""

    def __init__(self, secret=PRF_SECRET, credential_id=CREDENTIAL_ID):
        self.secret = bytes(secret)
        self.credential_id = credential_id
        self.calls = []
        self.error = None

    async def acquire_secret(self, credential_id=None, options=None):
        self.calls.append(credential_id)
        if self.error is not None:
            raise self.error
        used = bytes(credential_id) if credential_id else self.credential_id
        return SecretResult(secret=bytearray(self.secret), credential_id=used)

    async def create_passkey(self, options=None):
        return self.credential_id

    async def is_prf_supported(self):
        return self.error is None


class FakeSigner(Signer):
    """Deterministic stand-in: pubkey = sha256(sk)."""

    def get_public_key(self, sk_hex):
        return hashlib.sha256(bytes.fromhex(sk_hex)).hexdigest()

    def sign_event(self, event, sk_hex, tags=None):
        signed = prepare_event(event, self.get_public_key(sk_hex), tags)
        signed.sig = hashlib.sha256(bytes.fromhex(signed.id) + bytes.fromhex(sk_hex)).hexdigest() * 2
        return signed


class ManualClock:
    def __init__(self, start=1_672_531_200_000):  # 2023-01-01T00:00:00Z
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


class ManualTimer:
    def __init__(self, interval, function, args=()):
        self.interval = interval
        self.function = function
        self.args = args
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function(*self.args)


class ManualTimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, interval, function, args=()):
        timer = ManualTimer(interval, function, args)
        self.timers.append(timer)
        return timer


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def timers():
    return ManualTimerFactory()


@pytest.fixture
def make_cache(clock, timers):
    def _make(enabled=True, timeout_ms=5 * 60 * 1000):
        return KeyCache(CacheOptions(enabled=enabled, timeout_ms=timeout_ms), clock=clock, timer_factory=timers)
    return _make


@pytest.fixture
def provider():
    return FakeSecretProvider()


@pytest.fixture
def signer():
    return FakeSigner()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def make_manager(provider, signer, storage, make_cache):
    def _make(cache_enabled=False, timeout_ms=5 * 60 * 1000, **kwargs):
        return KeyManager(
            provider,
            signer=signer,
            cache=make_cache(enabled=cache_enabled, timeout_ms=timeout_ms),
            storage_options=StorageOptions(storage=storage),
            secret_options=SecretRequestOptions(rp_id="example.com"),
            **kwargs,
        )
    return _make
