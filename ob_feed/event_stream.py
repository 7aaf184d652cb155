import asyncio
import contextlib
import itertools
import json
import logging
import os
import random
import ssl
import time
from typing import Callable, Dict, List, Optional, Set, Tuple

from websockets.asyncio.client import connect as ws_connect  # type: ignore
from websockets.exceptions import ConnectionClosed  # type: ignore

from ob_core.events import BookEvent, EventDecodeError, decode_event
from ob_core.market import BookResource
from ob_core.offer import OfferIntegrityError
from ob_core.sources import BookEventSource, Subscription


# Errors that mean the cache can no longer be trusted; they end the stream.
FATAL_ERRORS = (EventDecodeError, OfferIntegrityError)


class BookEventStream(BookEventSource):
    """Async websocket client that routes offer-list events to per-resource subscribers.

    Wire format, one JSON object per message:
      {"outbound": "0x..", "inbound": "0x..", "name": "OfferWrite", "block_number": 12, "args": {...}}
    Subscriptions are (re)sent as {"op": "subscribe", "outbound": .., "inbound": ..}
    on every connect and the server answers each with
    {"op": "subscribed", "outbound": .., "inbound": ..}; `subscribe()` returns
    only after that ack.

    Events emitted while the socket is down are never replayed. Every open
    after the first calls `on_gap` before any new message is read, so owners
    of cached state can drop it and resync.
    """

    def __init__(
        self,
        ws_url: str,
        on_gap: Optional[Callable[[dict], None]] = None,
        on_status: Optional[Callable[[str, dict], None]] = None,
        insecure_tls: bool = False,
        ping_interval_s: int = 20,
        ping_timeout_s: int = 60,
        reconnect_backoff_s: float = 1.0,
        reconnect_backoff_max_s: float = 30.0,
        open_timeout_s: float = 10.0,
        recv_poll_timeout_s: float = 5.0,
        max_queue: int = 256,
    ):
        self.ws_url = ws_url
        self.on_gap_cb = on_gap
        self.on_status_cb = on_status
        self.insecure_tls = insecure_tls

        self.ping_interval_s = max(0, int(ping_interval_s))
        self.ping_timeout_s = max(1, int(ping_timeout_s))
        self.reconnect_backoff_s = max(0.0, float(reconnect_backoff_s))
        self.reconnect_backoff_max_s = max(self.reconnect_backoff_s, float(reconnect_backoff_max_s))
        self.open_timeout_s = max(1.0, float(open_timeout_s))
        self.recv_poll_timeout_s = max(0.01, float(recv_poll_timeout_s))
        self.max_queue = max(1, int(max_queue))

        self._subs: Dict[Tuple[str, str], List[Subscription]] = {}
        self._sub_ids = itertools.count(1)
        self._live: Dict[Tuple[str, str], asyncio.Event] = {}
        self._opens = 0
        self._tasks: Set[asyncio.Task] = set()
        self._ws = None
        self._stop = False
        self._fatal: Optional[BaseException] = None
        self._log = logging.getLogger("book_events")
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    # ------------------------------------------------------------------
    # BookEventSource
    # ------------------------------------------------------------------

    async def subscribe(self, resource: BookResource, callback: Callable[[BookEvent], None]) -> Subscription:
        sub = Subscription(resource=resource, callback=callback, sub_id=next(self._sub_ids))
        key = resource.key()
        first = key not in self._subs
        self._subs.setdefault(key, []).append(sub)
        live = self._live.setdefault(key, asyncio.Event())
        try:
            if first and self._ws is not None:
                await self._send_subscribe(resource)
            # Set by the server ack on the current connection.
            await live.wait()
        except BaseException:
            self.unsubscribe(sub)
            raise
        return sub

    def unsubscribe(self, subscription: Subscription) -> None:
        key = subscription.resource.key()
        subs = self._subs.get(key)
        if not subs:
            return
        remaining = [s for s in subs if s.sub_id != subscription.sub_id]
        if remaining:
            self._subs[key] = remaining
        else:
            del self._subs[key]
            self._live.pop(key, None)

    def subscriber_count(self) -> int:
        return sum(len(v) for v in self._subs.values())

    # ------------------------------------------------------------------
    # Websocket plumbing
    # ------------------------------------------------------------------

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _mark_all_pending(self) -> None:
        for live in self._live.values():
            live.clear()

    def _emit_status(self, typ: str, details: dict) -> None:
        try:
            if self.on_status_cb:
                self.on_status_cb(typ, details)
        except Exception:
            self._log.exception("Status callback error (type=%s)", typ)

    async def _send_subscribe(self, resource: BookResource) -> None:
        ws = self._ws
        if ws is None:
            return
        msg = {"op": "subscribe", "outbound": resource.outbound, "inbound": resource.inbound}
        try:
            await ws.send(json.dumps(msg))
        except Exception as exc:
            self._emit_status("ws_subscribe_error", {"error": str(exc), **msg})

    async def _ping_loop(self) -> None:
        if self.ping_interval_s <= 0 or self._ws is None:
            return
        while not self._stop:
            await asyncio.sleep(self.ping_interval_s)
            if self._stop or self._ws is None:
                return
            try:
                payload = os.urandom(4)
                pong_waiter = await self._ws.ping(payload)
                await asyncio.wait_for(pong_waiter, timeout=self.ping_timeout_s)
            except Exception as exc:
                self._emit_status("ws_ping_timeout", {"error": str(exc)})
                with contextlib.suppress(Exception):
                    await self._ws.close()
                return

    def _handle_control(self, payload: dict) -> None:
        if payload.get("op") != "subscribed":
            return
        key = (str(payload.get("outbound", "")).lower(), str(payload.get("inbound", "")).lower())
        live = self._live.get(key)
        if live is not None:
            live.set()

    def _dispatch(self, payload: dict) -> None:
        key = (str(payload.get("outbound", "")).lower(), str(payload.get("inbound", "")).lower())
        subs = self._subs.get(key)
        if not subs:
            return

        event = decode_event(payload)
        for sub in list(subs):
            sub.callback(event)

    async def _read_loop(self) -> None:
        assert self._ws is not None
        while not self._stop:
            try:
                msg = await asyncio.wait_for(self._ws.recv(), timeout=self.recv_poll_timeout_s)
            except asyncio.TimeoutError:
                continue
            except ConnectionClosed as exc:
                self._emit_status("ws_close", {"code": getattr(exc, "code", None), "msg": str(exc)})
                return
            except Exception as exc:
                self._emit_status("ws_error", {"error": str(exc)})
                return

            if msg is None:
                return

            try:
                payload = json.loads(msg)
            except Exception:
                self._log.exception("Failed to parse WS message")
                continue
            if not isinstance(payload, dict):
                continue
            if "name" not in payload:
                self._handle_control(payload)
                continue

            try:
                self._dispatch(payload)
            except FATAL_ERRORS as exc:
                self._fatal = exc
                self._stop = True
                self._emit_status("ws_fatal", {"error": str(exc), "name": payload.get("name")})
                return
            except Exception:
                self._log.exception("Callback error (event=%s)", payload.get("name"))

    def _ssl_context(self) -> Optional[ssl.SSLContext]:
        if not self.insecure_tls:
            return None
        ctx = ssl.create_default_context()
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
        return ctx

    async def run_async(self) -> None:
        """Connect, keep reconnecting until close(); raise the fatal error that stopped the stream, if any."""
        self._loop = asyncio.get_running_loop()
        self._stop = False
        self._fatal = None
        self._opens = 0
        attempt = 0

        while not self._stop:
            attempt += 1
            ssl_ctx = self._ssl_context()
            try:
                connect_kwargs = {
                    "ping_interval": None,
                    "ping_timeout": None,
                    "open_timeout": self.open_timeout_s,
                    "close_timeout": 5,
                    "max_queue": self.max_queue,
                }
                if ssl_ctx is not None:
                    connect_kwargs["ssl"] = ssl_ctx
                async with ws_connect(self.ws_url, **connect_kwargs) as ws:
                    self._ws = ws
                    attempt = 1
                    self._opens += 1
                    self._mark_all_pending()
                    if self._opens > 1:
                        # Whatever was emitted while we were away is lost.
                        details = {"opens": self._opens}
                        self._emit_status("ws_gap", details)
                        if self.on_gap_cb:
                            self.on_gap_cb(details)
                    for subs in list(self._subs.values()):
                        await self._send_subscribe(subs[0].resource)
                    self._emit_status("ws_connect", {"subscriptions": len(self._subs)})

                    ping_task = asyncio.create_task(self._ping_loop())
                    try:
                        await self._read_loop()
                    finally:
                        ping_task.cancel()
                        with contextlib.suppress(BaseException):
                            await ping_task
            except Exception as exc:
                self._emit_status("ws_run_exception", {"error": str(exc)})
                self._log.exception("WebSocket run exception")
            finally:
                self._ws = None
                self._mark_all_pending()

            if self._stop:
                break

            # Exponential backoff with jitter.
            base = self.reconnect_backoff_s
            cap = self.reconnect_backoff_max_s
            if base <= 0.0 or cap <= 0.0:
                backoff = 0.0
            else:
                backoff = min(cap, base * (2 ** max(0, attempt - 1)))
                backoff = backoff * (0.7 + 0.6 * random.random())
            self._emit_status("ws_reconnect_wait", {"sleep_s": float(backoff), "attempt": attempt})
            started = time.monotonic()
            while not self._stop and time.monotonic() - started < backoff:
                await asyncio.sleep(min(0.5, backoff))

        if self._fatal is not None:
            raise self._fatal

    def run(self) -> None:
        """Run the websocket loop with auto-reconnect."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None:
            raise RuntimeError("BookEventStream.run() cannot be called from an active event loop.")
        asyncio.run(self.run_async())

    def close(self) -> None:
        self._stop = True
        ws = self._ws
        if ws is None:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            loop = self._loop
        else:
            self._spawn(ws.close())
            return
        if loop and loop.is_running():
            asyncio.run_coroutine_threadsafe(ws.close(), loop)
