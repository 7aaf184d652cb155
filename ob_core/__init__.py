"""Offer-list prefix cache: data model, linked store and snapshot/event reconciliation."""

from .book import OrderBook
from .events import BookEvent, EventDecodeError, UnknownEventError, decode_event
from .market import ASKS, BIDS, BookResource, Market, Token
from .offer import Offer, OfferIntegrityError, make_offer
from .offer_list import OfferList
from .semibook import BookChange, Semibook, SemibookPhase
from .snapshot import BookOptions, fetch_offer_list_prefix
from .sources import BookEventSource, OfferListReader, OfferPage, Subscription

__all__ = [
    "ASKS",
    "BIDS",
    "BookChange",
    "BookEvent",
    "BookEventSource",
    "BookOptions",
    "BookResource",
    "Market",
    "Offer",
    "OfferIntegrityError",
    "OfferList",
    "OfferListReader",
    "OfferPage",
    "OrderBook",
    "Semibook",
    "SemibookPhase",
    "Subscription",
    "Token",
    "EventDecodeError",
    "UnknownEventError",
    "decode_event",
    "fetch_offer_list_prefix",
    "make_offer",
]
