import pytest

from nosskey.records import DirectKeyRecord, EncryptedKeyRecord
from nosskey.storage import InMemoryStorage, SQLiteStorage, load_storage_options, load_storage_provider

REC = EncryptedKeyRecord(
    salt="11" * 16, iv="22" * 12, ct="33" * 32, tag="44" * 16,
    credentialId="55" * 16, pubkey="66" * 32, username="alice",
)


@pytest.fixture(params=["memory", "sqlite"])
def backend(request, tmp_path):
    if request.param == "memory":
        store = InMemoryStorage()
    else:
        store = SQLiteStorage(str(tmp_path / "db" / "records.db"))
    yield store
    store.close()


def test_upsert_get_delete(backend):
    assert backend.get_record("k") is None
    backend.upsert_record("k", REC)
    assert backend.get_record("k") == REC

    direct = DirectKeyRecord(credentialId="aa" * 16, pubkey="bb" * 32)
    backend.upsert_record("k", direct)
    assert backend.get_record("k") == direct

    backend.delete_record("k")
    backend.delete_record("k")
    assert backend.get_record("k") is None


def test_sqlite_survives_reopen(tmp_path):
    path = str(tmp_path / "records.db")
    store = SQLiteStorage(path)
    store.upsert_record("b", REC)
    store.upsert_record("b", REC)
    store.close()

    reopened = SQLiteStorage(path)
    assert reopened.get_record("b") == REC
    reopened.close()


def test_factory_defaults_to_memory(monkeypatch):
    monkeypatch.delenv("NOSSKEY_STORAGE_PROVIDER", raising=False)
    assert isinstance(load_storage_provider(), InMemoryStorage)


def test_factory_reads_env(monkeypatch, tmp_path):
    monkeypatch.setenv("NOSSKEY_STORAGE_PROVIDER", "sqlite")
    monkeypatch.setenv("NOSSKEY_DB_PATH", str(tmp_path / "env.db"))
    store = load_storage_provider()
    assert isinstance(store, SQLiteStorage)
    store.close()
    assert (tmp_path / "env.db").exists()


def test_factory_rejects_unknown_provider():
    with pytest.raises(ValueError):
        load_storage_provider({"provider": "redis"})


def test_storage_options_from_env(monkeypatch):
    monkeypatch.delenv("NOSSKEY_STORAGE_PROVIDER", raising=False)
    monkeypatch.setenv("NOSSKEY_STORAGE_KEY", "my_key")
    opts = load_storage_options()
    assert opts.enabled is True
    assert opts.storage_key == "my_key"
    assert isinstance(opts.storage, InMemoryStorage)
