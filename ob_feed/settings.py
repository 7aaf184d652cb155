from __future__ import annotations

import os


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "y")


# Snapshot reads (HTTP)
READER_BASE_URL = os.getenv("READER_BASE_URL", "http://127.0.0.1:8545")
READER_TIMEOUT_S = _env_float("READER_TIMEOUT_S", 10.0)
READER_RETRY_MAX = _env_int("READER_RETRY_MAX", 3)
READER_RETRY_BACKOFF_S = _env_float("READER_RETRY_BACKOFF_S", 0.5)
READER_RETRY_BACKOFF_MAX_S = _env_float("READER_RETRY_BACKOFF_MAX_S", 5.0)

# Event stream (WS) keepalive/reconnect
EVENTS_WS_URL = os.getenv("EVENTS_WS_URL", "ws://127.0.0.1:8546")
WS_PING_INTERVAL_S = _env_int("WS_PING_INTERVAL_S", 20)
WS_PING_TIMEOUT_S = _env_int("WS_PING_TIMEOUT_S", 60)
WS_RECONNECT_BACKOFF_S = _env_float("WS_RECONNECT_BACKOFF_S", 1.0)
WS_RECONNECT_BACKOFF_MAX_S = _env_float("WS_RECONNECT_BACKOFF_MAX_S", 30.0)
WS_OPEN_TIMEOUT_S = _env_float("WS_OPEN_TIMEOUT_S", 10.0)

# TLS verification should remain enabled by default.
INSECURE_TLS = _env_bool("INSECURE_TLS", False)

# Book cache
BOOK_MAX_OFFERS = _env_int("BOOK_MAX_OFFERS", 50)
BOOK_CHUNK_SIZE = _env_int("BOOK_CHUNK_SIZE", 0)  # 0 -> one page of max_offers
