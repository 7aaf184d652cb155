from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from .market import Market
from .offer import Offer, make_offer
from .sources import OfferListReader


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookOptions:
    """How much of each offer list to cache and how to page it in.

    chunk_size defaults to max_offers (one read when the list is long enough).
    """

    max_offers: int = 50
    chunk_size: Optional[int] = None

    def __post_init__(self) -> None:
        if int(self.max_offers) <= 0:
            raise ValueError(f"max_offers must be positive (got {self.max_offers!r})")
        if self.chunk_size is not None and int(self.chunk_size) <= 0:
            raise ValueError(f"chunk_size must be positive (got {self.chunk_size!r})")

    @property
    def page_size(self) -> int:
        return int(self.chunk_size) if self.chunk_size is not None else int(self.max_offers)


async def fetch_offer_list_prefix(
    reader: OfferListReader,
    market: Market,
    ba: str,
    reference_point: int,
    options: BookOptions,
    offer_gasbase: int,
) -> List[Offer]:
    """Read the first `options.max_offers` offers of one side as of `reference_point`.

    Stops early when the remote list ends. Hitting the budget mid-list yields a
    prefix, not an error.
    """
    resource = market.resource(ba)
    left = int(options.max_offers)
    next_id = 0
    result: List[Offer] = []

    while True:
        page_size = min(options.page_size, left)
        page = await reader.read_page(resource, next_id, page_size, reference_point)
        rows = list(page.offers)[:left]
        if not rows and page.next_id != 0:
            raise RuntimeError(
                f"reader returned an empty page with next_id={page.next_id} (start_id={next_id})"
            )

        for raw in rows:
            result.append(make_offer(market, ba, raw, offer_gasbase))
        left -= len(rows)
        next_id = int(page.next_id)

        if left <= 0 or next_id == 0:
            break

    log.debug(
        "Read %d %s offers of %s at block %d (truncated=%s)",
        len(result),
        ba,
        market.name,
        reference_point,
        next_id != 0,
    )
    return result
