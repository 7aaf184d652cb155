from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Tuple


BIDS = "bids"
ASKS = "asks"
SIDES = (ASKS, BIDS)


def check_side(ba: str) -> str:
    if ba not in SIDES:
        raise ValueError(f"ba must be 'bids' or 'asks' (got {ba!r})")
    return ba


@dataclass(frozen=True)
class Token:
    symbol: str
    address: str
    decimals: int = 18

    def from_units(self, raw) -> Decimal:
        return Decimal(int(raw)).scaleb(-int(self.decimals))


@dataclass(frozen=True)
class BookResource:
    """Identifies one remote offer list (outbound -> inbound)."""

    outbound: str
    inbound: str

    def key(self) -> Tuple[str, str]:
        return self.outbound.lower(), self.inbound.lower()


@dataclass(frozen=True)
class Market:
    """A base/quote pair. Asks sell base for quote, bids sell quote for base.

    Prices are quote per base, volumes are in base.
    """

    base: Token
    quote: Token

    @property
    def name(self) -> str:
        return f"{self.base.symbol}-{self.quote.symbol}"

    def outbound_inbound(self, ba: str) -> Tuple[Token, Token]:
        if check_side(ba) == ASKS:
            return self.base, self.quote
        return self.quote, self.base

    def resource(self, ba: str) -> BookResource:
        outbound, inbound = self.outbound_inbound(ba)
        return BookResource(outbound=outbound.address, inbound=inbound.address)

    def base_quote_volumes(self, ba: str, gives: Decimal, wants: Decimal) -> Tuple[Decimal, Decimal]:
        if check_side(ba) == ASKS:
            return gives, wants
        return wants, gives

    def price(self, ba: str, gives: Decimal, wants: Decimal) -> Decimal:
        base_volume, quote_volume = self.base_quote_volumes(ba, gives, wants)
        return quote_volume / base_volume
