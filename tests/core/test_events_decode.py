from __future__ import annotations

import pytest

from ob_core.events import (
    EventDecodeError,
    OfferFail,
    OfferRetract,
    OfferSuccess,
    OfferWrite,
    SetGasbase,
    UnknownEventError,
    decode_event,
)


def test_decode_offer_write():
    ev = decode_event(
        {
            "name": "OfferWrite",
            "block_number": "12",
            "args": {"id": 5, "prev": 0, "maker": "0xM", "gives": "10", "wants": 20, "gasprice": 1, "gasreq": 2},
        }
    )
    assert isinstance(ev, OfferWrite)
    assert ev.block_number == 12
    assert (ev.id, ev.prev, ev.gives, ev.wants) == (5, 0, 10, 20)
    assert ev.name == "OfferWrite"


def test_decode_removals_and_config():
    success = decode_event(
        {"name": "OfferSuccess", "block_number": 3, "args": {"id": 1, "taker": "0xT", "takerWants": 4, "takerGives": 8}}
    )
    fail = decode_event(
        {
            "name": "OfferFail",
            "block_number": 3,
            "args": {"id": 2, "taker": "0xT", "takerWants": 4, "takerGives": 8, "mgvData": "mgv/makerRevert"},
        }
    )
    retract = decode_event({"name": "OfferRetract", "block_number": 4, "args": {"id": 9}})
    gas = decode_event({"name": "SetGasbase", "block_number": 5, "args": {"offer_gasbase": 2000}})

    assert isinstance(success, OfferSuccess) and success.taker_gives == 8
    assert isinstance(fail, OfferFail) and fail.mgv_data == "mgv/makerRevert"
    assert isinstance(retract, OfferRetract) and retract.id == 9
    assert isinstance(gas, SetGasbase) and gas.offer_gasbase == 2000


def test_unknown_event_name_is_fatal():
    with pytest.raises(UnknownEventError):
        decode_event({"name": "OfferTeleport", "block_number": 1, "args": {}})


def test_missing_fields_raise_decode_error():
    with pytest.raises(EventDecodeError):
        decode_event({"name": "OfferRetract", "block_number": 1, "args": {}})
    with pytest.raises(EventDecodeError):
        decode_event({"name": "OfferRetract", "args": {"id": 1}})


@pytest.mark.parametrize(
    "payload",
    [
        {"name": "OfferRetract", "block_number": 101, "args": {"offerId": 1}},
        {"name": "OfferRetract", "block_number": 101, "args": {"id": "one"}},
        {"name": "OfferRetract", "block_number": None, "args": {"id": 1}},
        {"name": "OfferRetract", "block_number": 101, "args": [1]},
        ["OfferRetract", 101],
    ],
)
def test_malformed_known_event_is_a_decode_error(payload):
    with pytest.raises(EventDecodeError):
        decode_event(payload)


def test_unknown_event_is_a_decode_error():
    assert issubclass(UnknownEventError, EventDecodeError)
    assert issubclass(EventDecodeError, ValueError)
