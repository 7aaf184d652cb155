from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping

from .market import Market


class OfferIntegrityError(ValueError):
    """Raised when the remote side hands us an offer that cannot exist (zero volume)."""


@dataclass
class Offer:
    """One entry of a remote offer list.

    `prev`/`next` are ids of the neighbours in remote order, 0 meaning none.
    Only the link fields are mutated once the offer sits in an OfferList.
    """

    id: int
    prev: int
    next: int
    maker: str
    gives: Decimal
    wants: Decimal
    volume: Decimal
    price: Decimal
    gasreq: int
    gasprice: int
    offer_gasbase: int


def make_offer(market: Market, ba: str, raw: Mapping[str, Any], offer_gasbase: int) -> Offer:
    """Build an Offer from raw integer token units as read from the remote list."""
    outbound, inbound = market.outbound_inbound(ba)
    gives = outbound.from_units(raw["gives"])
    wants = inbound.from_units(raw["wants"])

    volume, _ = market.base_quote_volumes(ba, gives, wants)
    if volume == 0:
        raise OfferIntegrityError(f"offer {raw.get('id')!r} has zero base volume (not allowed)")

    return Offer(
        id=int(raw["id"]),
        prev=int(raw.get("prev", 0)),
        next=int(raw.get("next", 0)),
        maker=str(raw.get("maker", "")),
        gives=gives,
        wants=wants,
        volume=volume,
        price=market.price(ba, gives, wants),
        gasreq=int(raw.get("gasreq", 0)),
        gasprice=int(raw.get("gasprice", 0)),
        offer_gasbase=int(offer_gasbase),
    )
