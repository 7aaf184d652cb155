"""Decoded offer-list events.

One frozen dataclass per remote event kind. `decode_event` turns the wire form

    {"name": "OfferWrite", "block_number": 123, "args": {...}}

into one of them. Any payload that cannot be decoded raises `EventDecodeError`;
an unknown name is the `UnknownEventError` case of it. Both are fatal: a
dropped mutation would leave the cache silently wrong.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Union


class EventDecodeError(ValueError):
    """Event payload that cannot be turned into a BookEvent."""


class UnknownEventError(EventDecodeError):
    """Event name not part of the offer-list protocol we speak."""


@dataclass(frozen=True)
class OfferWrite:
    block_number: int
    id: int
    prev: int
    maker: str
    gives: int
    wants: int
    gasprice: int
    gasreq: int

    name = "OfferWrite"


@dataclass(frozen=True)
class OfferSuccess:
    block_number: int
    id: int
    taker: str
    taker_wants: int
    taker_gives: int

    name = "OfferSuccess"


@dataclass(frozen=True)
class OfferFail:
    block_number: int
    id: int
    taker: str
    taker_wants: int
    taker_gives: int
    mgv_data: str

    name = "OfferFail"


@dataclass(frozen=True)
class OfferRetract:
    block_number: int
    id: int

    name = "OfferRetract"


@dataclass(frozen=True)
class SetGasbase:
    block_number: int
    offer_gasbase: int

    name = "SetGasbase"


BookEvent = Union[OfferWrite, OfferSuccess, OfferFail, OfferRetract, SetGasbase]


def _int(args: Mapping[str, Any], key: str) -> int:
    if key not in args:
        raise EventDecodeError(f"event args missing {key!r}")
    try:
        return int(args[key])
    except (TypeError, ValueError) as exc:
        raise EventDecodeError(f"event arg {key!r} is not an integer: {args[key]!r}") from exc


def _str(args: Mapping[str, Any], key: str) -> str:
    if key not in args:
        raise EventDecodeError(f"event args missing {key!r}")
    return str(args[key])


def _offer_write(bn: int, a: Mapping[str, Any]) -> OfferWrite:
    return OfferWrite(
        block_number=bn,
        id=_int(a, "id"),
        prev=_int(a, "prev"),
        maker=_str(a, "maker"),
        gives=_int(a, "gives"),
        wants=_int(a, "wants"),
        gasprice=_int(a, "gasprice"),
        gasreq=_int(a, "gasreq"),
    )


def _offer_success(bn: int, a: Mapping[str, Any]) -> OfferSuccess:
    return OfferSuccess(
        block_number=bn,
        id=_int(a, "id"),
        taker=_str(a, "taker"),
        taker_wants=_int(a, "takerWants"),
        taker_gives=_int(a, "takerGives"),
    )


def _offer_fail(bn: int, a: Mapping[str, Any]) -> OfferFail:
    return OfferFail(
        block_number=bn,
        id=_int(a, "id"),
        taker=_str(a, "taker"),
        taker_wants=_int(a, "takerWants"),
        taker_gives=_int(a, "takerGives"),
        mgv_data=_str(a, "mgvData"),
    )


def _offer_retract(bn: int, a: Mapping[str, Any]) -> OfferRetract:
    return OfferRetract(block_number=bn, id=_int(a, "id"))


def _set_gasbase(bn: int, a: Mapping[str, Any]) -> SetGasbase:
    return SetGasbase(block_number=bn, offer_gasbase=_int(a, "offer_gasbase"))


_DECODERS: Dict[str, Callable[[int, Mapping[str, Any]], BookEvent]] = {
    "OfferWrite": _offer_write,
    "OfferSuccess": _offer_success,
    "OfferFail": _offer_fail,
    "OfferRetract": _offer_retract,
    "SetGasbase": _set_gasbase,
}


def decode_event(payload: Mapping[str, Any]) -> BookEvent:
    if not isinstance(payload, Mapping):
        raise EventDecodeError("event payload must be a mapping")
    name = payload.get("name")
    decoder = _DECODERS.get(name)
    if decoder is None:
        raise UnknownEventError(f"Unknown event {name!r}")
    args = payload.get("args") or {}
    if not isinstance(args, Mapping):
        raise EventDecodeError(f"{name} args must be a mapping")
    return decoder(_int(payload, "block_number"), args)
