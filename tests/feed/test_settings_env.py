from __future__ import annotations

import importlib


def test_invalid_env_does_not_crash(monkeypatch):
    monkeypatch.setenv("WS_PING_INTERVAL_S", "not-a-number")
    monkeypatch.setenv("WS_RECONNECT_BACKOFF_S", "nope")
    monkeypatch.setenv("READER_TIMEOUT_S", "invalid")
    monkeypatch.setenv("READER_RETRY_MAX", "invalid")
    monkeypatch.setenv("BOOK_MAX_OFFERS", "lots")

    import ob_feed.settings as settings_mod

    try:
        importlib.reload(settings_mod)
        assert settings_mod.WS_PING_INTERVAL_S == 20
        assert settings_mod.WS_RECONNECT_BACKOFF_S == 1.0
        assert settings_mod.READER_TIMEOUT_S == 10.0
        assert settings_mod.READER_RETRY_MAX == 3
        assert settings_mod.BOOK_MAX_OFFERS == 50
    finally:
        monkeypatch.undo()
        importlib.reload(settings_mod)


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("BOOK_MAX_OFFERS", "200")
    monkeypatch.setenv("INSECURE_TLS", "yes")

    import ob_feed.settings as settings_mod

    try:
        importlib.reload(settings_mod)
        assert settings_mod.BOOK_MAX_OFFERS == 200
        assert settings_mod.INSECURE_TLS is True
    finally:
        monkeypatch.undo()
        importlib.reload(settings_mod)
