from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from typing import Any, Awaitable, Dict, Optional

import yaml

from ob_core.book import OrderBook
from ob_core.market import Market, Token
from ob_core.semibook import BookChange
from ob_core.snapshot import BookOptions
from ob_feed import settings
from ob_feed.event_stream import BookEventStream
from ob_feed.logging_config import setup_logging
from ob_feed.reader_client import HttpOfferListReader


DEFAULT_CONFIG_PATH = "config/config.example.yaml"


def load_config(path: str) -> dict:
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def _token(raw: Dict[str, Any]) -> Token:
    return Token(symbol=raw["symbol"], address=raw["address"], decimals=int(raw.get("decimals", 18)))


def build_market(cfg: Dict[str, Any]) -> Market:
    m = cfg["market"]
    return Market(base=_token(m["base"]), quote=_token(m["quote"]))


def build_options(cfg: Dict[str, Any]) -> BookOptions:
    book = cfg.get("book") or {}
    max_offers = int(book.get("max_offers", settings.BOOK_MAX_OFFERS))
    chunk_size = book.get("chunk_size", settings.BOOK_CHUNK_SIZE or None)
    return BookOptions(max_offers=max_offers, chunk_size=int(chunk_size) if chunk_size else None)


def log_change(change: BookChange) -> None:
    offer = change.offer
    logging.getLogger("book_changes").info(
        "%s %s id=%d price=%s volume=%s",
        change.ba,
        change.kind,
        offer.id,
        offer.price,
        offer.volume,
    )


async def _until_stream_ends(aw: Awaitable, stream_task: asyncio.Task) -> Optional[Any]:
    """Await `aw` unless the event stream finishes first.

    Returns None when the stream ended (re-raising the error that stopped it).
    """
    task = asyncio.ensure_future(aw)
    try:
        await asyncio.wait({task, stream_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        if not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
    if not task.cancelled():
        return task.result()
    stream_task.result()
    return None


async def watch(cfg: Dict[str, Any]) -> None:
    log = logging.getLogger("runner")
    market = build_market(cfg)
    options = build_options(cfg)
    endpoints = cfg.get("endpoints") or {}

    resync = asyncio.Event()
    current: Dict[str, OrderBook] = {}

    def on_gap(details: dict) -> None:
        # Any reconnect implies potential missed events; always resync.
        book = current.pop("book", None)
        if book is not None:
            book.disconnect()
        log.warning("Event stream gap %s, resyncing %s", details, market.name)
        resync.set()

    reader = HttpOfferListReader(base_url=endpoints.get("reader_url"))
    stream = BookEventStream(
        ws_url=endpoints.get("events_url") or settings.EVENTS_WS_URL,
        on_gap=on_gap,
        insecure_tls=settings.INSECURE_TLS,
        ping_interval_s=settings.WS_PING_INTERVAL_S,
        ping_timeout_s=settings.WS_PING_TIMEOUT_S,
        reconnect_backoff_s=settings.WS_RECONNECT_BACKOFF_S,
        reconnect_backoff_max_s=settings.WS_RECONNECT_BACKOFF_MAX_S,
        open_timeout_s=settings.WS_OPEN_TIMEOUT_S,
        on_status=lambda typ, details: log.info("stream %s %s", typ, details),
    )

    stream_task = asyncio.create_task(stream.run_async())
    try:
        while True:
            resync.clear()
            book = await _until_stream_ends(
                OrderBook.connect(market, reader, stream, options, on_change=log_change),
                stream_task,
            )
            if book is None:
                return
            current["book"] = book
            best_ask, best_bid = book.best_ask(), book.best_bid()
            log.info(
                "Watching %s: best ask %s, best bid %s, spread %s",
                market.name,
                best_ask.price if best_ask else None,
                best_bid.price if best_bid else None,
                book.spread(),
            )
            if await _until_stream_ends(resync.wait(), stream_task) is None:
                return
            # The gap may have hit while connecting, before on_gap could see this book.
            stale = current.pop("book", None)
            if stale is not None:
                stale.disconnect()
    finally:
        book = current.pop("book", None)
        if book is not None:
            book.disconnect()
        stream.close()
        if not stream_task.done():
            stream_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await stream_task
        reader.close()


def main() -> None:
    cfg = load_config(os.getenv("BOOK_CONFIG", DEFAULT_CONFIG_PATH))
    market = build_market(cfg)
    setup_logging(cfg.get("log_level", "INFO"), component="book", market=market.name)
    try:
        asyncio.run(watch(cfg))
    except KeyboardInterrupt:
        logging.getLogger("runner").info("Interrupted, exiting")


if __name__ == "__main__":
    main()
