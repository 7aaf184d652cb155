from __future__ import annotations

from decimal import Decimal

import pytest

from ob_core.market import ASKS, BIDS, Market, Token
from ob_core.offer import OfferIntegrityError, make_offer
from fakes import MARKET, raw_offer


def test_ask_volume_is_gives_and_price_is_wants_over_gives():
    offer = make_offer(MARKET, ASKS, raw_offer(1, gives=4, wants=10), offer_gasbase=7)
    assert offer.volume == Decimal(4)
    assert offer.price == Decimal("2.5")
    assert offer.offer_gasbase == 7


def test_bid_volume_is_wants_and_price_is_gives_over_wants():
    offer = make_offer(MARKET, BIDS, raw_offer(1, gives=10, wants=4), offer_gasbase=0)
    assert offer.volume == Decimal(4)
    assert offer.price == Decimal("2.5")


def test_units_are_scaled_by_token_decimals():
    market = Market(
        base=Token("WETH", "0xB", decimals=18),
        quote=Token("USDC", "0xQ", decimals=6),
    )
    raw = raw_offer(3, gives=2 * 10**18, wants=3000 * 10**6)
    offer = make_offer(market, ASKS, raw, offer_gasbase=0)
    assert offer.gives == Decimal(2)
    assert offer.wants == Decimal(3000)
    assert offer.price == Decimal(1500)


@pytest.mark.parametrize("ba,gives,wants", [(ASKS, 0, 10), (BIDS, 10, 0)])
def test_zero_base_volume_is_rejected(ba, gives, wants):
    with pytest.raises(OfferIntegrityError):
        make_offer(MARKET, ba, raw_offer(1, gives=gives, wants=wants), offer_gasbase=0)


def test_unknown_side_rejected():
    with pytest.raises(ValueError):
        MARKET.resource("sells")


def test_resource_swaps_tokens_per_side():
    assert MARKET.resource(ASKS).outbound == "0xBASE"
    assert MARKET.resource(BIDS).outbound == "0xQUOTE"
