from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Optional

import requests

from ob_core.market import BookResource
from ob_core.sources import OfferListReader, OfferPage
from ob_feed import settings


log = logging.getLogger(__name__)

_OFFER_KEYS = ("id", "prev", "next", "maker", "gives", "wants", "gasreq", "gasprice")


def _call_with_retry(fn: Callable[[], Any]) -> Any:
    attempts = max(1, int(settings.READER_RETRY_MAX))
    backoff_s = max(0.0, float(settings.READER_RETRY_BACKOFF_S))
    backoff_max_s = max(backoff_s, float(settings.READER_RETRY_BACKOFF_MAX_S))
    delay = backoff_s
    last_exc = None
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except Exception as exc:
            last_exc = exc
            if attempt >= attempts:
                break
            log.warning("Reader request failed (attempt %d/%d): %s", attempt, attempts, exc)
            if delay > 0:
                time.sleep(delay)
                delay = min(backoff_max_s, delay * 2)
    raise last_exc


def _validate_page_payload(payload: dict) -> OfferPage:
    if not isinstance(payload, dict):
        raise ValueError("offer-list payload must be a dict")
    if "next_id" not in payload or "offers" not in payload:
        raise ValueError("offer-list payload missing required keys")
    offers = payload.get("offers")
    if not isinstance(offers, list):
        raise ValueError("offer-list offers must be a list")
    for row in offers:
        if not isinstance(row, dict):
            raise ValueError("offer rows must be dicts")
        missing = [k for k in _OFFER_KEYS if k not in row]
        if missing:
            raise ValueError(f"offer row missing keys: {missing}")
    try:
        next_id = int(payload.get("next_id"))
    except Exception as exc:
        raise ValueError("offer-list next_id must be int-like") from exc
    return OfferPage(next_id=next_id, offers=offers)


class HttpOfferListReader(OfferListReader):
    """Reads offer lists from a JSON reader service.

    Endpoints (GET):
      /block-number                                   -> {"block_number": int}
      /config?outbound&inbound&block                  -> {"offer_gasbase": int}
      /offer-list?outbound&inbound&from_id&max&block  -> {"next_id": int, "offers": [...]}

    requests is blocking, so every call runs in a worker thread.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = (base_url or settings.READER_BASE_URL).rstrip("/")
        self.timeout_s = settings.READER_TIMEOUT_S if timeout_s is None else float(timeout_s)
        self.session = session or requests.Session()

    def _get_json(self, path: str, params: Optional[dict] = None) -> Any:
        url = f"{self.base_url}{path}"
        resp = self.session.get(url, params=params, timeout=self.timeout_s)
        resp.raise_for_status()
        return resp.json()

    def _request(self, path: str, params: Optional[dict], parse: Callable[[Any], Any]) -> Any:
        try:
            payload = _call_with_retry(lambda: self._get_json(path, params))
        except Exception as exc:
            raise RuntimeError(f"Reader request {path} failed: {exc}") from exc
        try:
            return parse(payload)
        except Exception as exc:
            raise RuntimeError(f"Invalid {path} payload: {exc}") from exc

    def block_number(self) -> int:
        return self._request("/block-number", None, lambda p: int(p["block_number"]))

    def config(self, resource: BookResource, block: int) -> int:
        params = {"outbound": resource.outbound, "inbound": resource.inbound, "block": block}
        return self._request("/config", params, lambda p: int(p["offer_gasbase"]))

    def offer_list(self, resource: BookResource, start_id: int, page_size: int, block: int) -> OfferPage:
        params = {
            "outbound": resource.outbound,
            "inbound": resource.inbound,
            "from_id": start_id,
            "max": page_size,
            "block": block,
        }
        return self._request("/offer-list", params, _validate_page_payload)

    async def get_reference_point(self) -> int:
        return await asyncio.to_thread(self.block_number)

    async def get_config(self, resource: BookResource, reference_point: int) -> int:
        return await asyncio.to_thread(self.config, resource, reference_point)

    async def read_page(
        self,
        resource: BookResource,
        start_id: int,
        page_size: int,
        reference_point: int,
    ) -> OfferPage:
        return await asyncio.to_thread(self.offer_list, resource, start_id, page_size, reference_point)

    def close(self) -> None:
        self.session.close()
