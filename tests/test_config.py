import json
import logging

import pytest

from nosskey.logger import get_logger
from nosskey.options import CacheOptions, default_secret_request_options, load_cache_options


def test_cache_options_from_env(monkeypatch):
    monkeypatch.setenv("NOSSKEY_CACHE_ENABLED", "true")
    monkeypatch.setenv("NOSSKEY_CACHE_TIMEOUT_MS", "60000")
    assert load_cache_options() == CacheOptions(enabled=True, timeout_ms=60000)


def test_explicit_config_beats_env(monkeypatch):
    monkeypatch.setenv("NOSSKEY_CACHE_ENABLED", "1")
    opts = load_cache_options({"enabled": False, "timeout_ms": 10})
    assert opts == CacheOptions(enabled=False, timeout_ms=10)


def test_cache_defaults_without_env(monkeypatch):
    monkeypatch.delenv("NOSSKEY_CACHE_ENABLED", raising=False)
    monkeypatch.delenv("NOSSKEY_CACHE_TIMEOUT_MS", raising=False)
    assert load_cache_options() == CacheOptions(enabled=False, timeout_ms=300000)


def test_cache_options_dict_and_merge():
    opts = CacheOptions.from_dict({"enabled": True, "timeoutMs": 1000})
    assert opts.to_dict() == {"enabled": True, "timeoutMs": 1000}
    assert opts.merged(timeout_ms=None) == opts
    assert opts.merged(enabled=False).enabled is False
    with pytest.raises(ValueError):
        CacheOptions(timeout_ms=-1)


def test_rp_id_from_env(monkeypatch):
    monkeypatch.setenv("NOSSKEY_RP_ID", "example.com")
    assert default_secret_request_options().rp_id == "example.com"


def test_logger_emits_json_once(capsys, tmp_path):
    log_file = tmp_path / "logs" / "nosskey.log"
    log = get_logger("nosskey.test-json", to_file=str(log_file))
    again = get_logger("nosskey.test-json")
    assert log is again
    assert len(log.handlers) == 2

    log.info("[CACHE SET] id=abcd1234")
    line = capsys.readouterr().out.strip().splitlines()[-1]
    payload = json.loads(line)
    assert payload["level"] == "INFO"
    assert payload["msg"] == "[CACHE SET] id=abcd1234"
    for h in log.handlers:
        h.flush()
    assert "[CACHE SET]" in log_file.read_text()
    for h in list(log.handlers):
        h.close()
        log.removeHandler(h)
    log.setLevel(logging.NOTSET)


def test_logger_escapes_quotes_and_includes_exceptions(capsys):
    log = get_logger("nosskey.test-escape")
    try:
        raise ValueError("bad")
    except ValueError:
        log.exception('record "alpha" rejected')
    payload = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert payload["msg"] == 'record "alpha" rejected'
    assert payload["level"] == "ERROR"
    assert "ValueError: bad" in payload["exc"]
    for h in list(log.handlers):
        log.removeHandler(h)


def test_log_level_from_env(monkeypatch):
    monkeypatch.setenv("NOSSKEY_LOG_LEVEL", "debug")
    assert get_logger("nosskey.test-level").level == logging.DEBUG
    assert get_logger("nosskey.test-level", level=logging.WARNING).level == logging.WARNING
    log = logging.getLogger("nosskey.test-level")
    for h in list(log.handlers):
        log.removeHandler(h)
