from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Dict, List, Optional

from .market import ASKS, BIDS, Market
from .offer import Offer
from .semibook import ChangeCallback, Semibook
from .snapshot import BookOptions
from .sources import BookEventSource, OfferListReader


log = logging.getLogger(__name__)


class OrderBook:
    """Both semibooks of a market (asks and bids), connected together."""

    def __init__(self, market: Market, asks: Semibook, bids: Semibook) -> None:
        self.market = market
        self.asks = asks
        self.bids = bids

    @classmethod
    async def connect(
        cls,
        market: Market,
        reader: OfferListReader,
        events: BookEventSource,
        options: Optional[BookOptions] = None,
        on_change: Optional[ChangeCallback] = None,
    ) -> "OrderBook":
        options = options or BookOptions()
        results = await asyncio.gather(
            Semibook.connect(market, ASKS, options, reader, events, on_change),
            Semibook.connect(market, BIDS, options, reader, events, on_change),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            for r in results:
                if isinstance(r, Semibook):
                    r.disconnect()
            raise failures[0]

        asks, bids = results
        log.info("OrderBook %s connected: %d asks, %d bids", market.name, len(asks), len(bids))
        return cls(market, asks, bids)

    def best_ask(self) -> Optional[Offer]:
        return self.asks.best_offer()

    def best_bid(self) -> Optional[Offer]:
        return self.bids.best_offer()

    def spread(self) -> Optional[Decimal]:
        ask = self.best_ask()
        bid = self.best_bid()
        if ask is None or bid is None:
            return None
        return ask.price - bid.price

    def snapshot(self) -> Dict[str, List[Offer]]:
        return {ASKS: self.asks.to_list(), BIDS: self.bids.to_list()}

    def disconnect(self) -> None:
        self.asks.disconnect()
        self.bids.disconnect()
