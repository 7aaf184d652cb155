from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Callable, Iterator, List, Optional

from .events import (
    BookEvent,
    OfferFail,
    OfferRetract,
    OfferSuccess,
    OfferWrite,
    SetGasbase,
    UnknownEventError,
)
from .market import Market, check_side
from .offer import Offer, make_offer
from .offer_list import OfferList
from .snapshot import BookOptions, fetch_offer_list_prefix
from .sources import BookEventSource, OfferListReader, Subscription


# Only Semibook.connect holds this; it stands in for a private constructor.
_CONNECT_TOKEN = object()


class SemibookPhase(str, Enum):
    ARMING = "arming"
    LOADING = "loading"
    ACTIVE = "active"
    DISCONNECTED = "disconnected"


@dataclass
class BookChange:
    """Notification handed to the consumer for every applied insert/removal."""

    kind: str  # event name, e.g. "OfferWrite" | "OfferSuccess" | "OfferFail" | "OfferRetract"
    ba: str
    offer: Offer
    taker: Optional[str] = None
    taker_wants: Optional[Decimal] = None
    taker_gives: Optional[Decimal] = None
    mgv_data: Optional[str] = None


ChangeCallback = Callable[[BookChange], None]


class Semibook:
    """Cached prefix of one side of a market, kept in sync with the remote offer list.

    Obtain instances with `await Semibook.connect(...)` only. Activation:
      - subscribe to events first and buffer them (ARMING)
      - pin a reference block R and read the list prefix as of R (LOADING)
      - drain the buffer once, dropping events at or before R (ACTIVE)
      - from then on apply each event as it arrives
    All mutations happen inside synchronous callbacks, so readers never see a
    half-applied event.
    """

    def __init__(
        self,
        market: Market,
        ba: str,
        options: BookOptions,
        reader: OfferListReader,
        events: BookEventSource,
        on_change: Optional[ChangeCallback] = None,
        *,
        _token: object = None,
    ) -> None:
        if _token is not _CONNECT_TOKEN:
            raise RuntimeError(
                "Semibook must be created with `await Semibook.connect(...)`"
            )
        self.market = market
        self.ba = check_side(ba)
        self.options = options
        self.reader = reader
        self.events = events
        self.on_change = on_change

        self.phase: SemibookPhase = SemibookPhase.ARMING
        self.reference_point: Optional[int] = None
        self.offer_gasbase: int = 0
        self.buffer: List[BookEvent] = []
        self.skipped_writes: int = 0

        self._offers = OfferList()
        self._subscription: Optional[Subscription] = None
        self._activated = False
        self._log = logging.getLogger(f"{__name__}.{market.name}.{ba}")

    @classmethod
    async def connect(
        cls,
        market: Market,
        ba: str,
        options: BookOptions,
        reader: OfferListReader,
        events: BookEventSource,
        on_change: Optional[ChangeCallback] = None,
    ) -> "Semibook":
        semibook = cls(market, ba, options, reader, events, on_change, _token=_CONNECT_TOKEN)
        await semibook._activate()
        return semibook

    async def _activate(self) -> None:
        if self._activated:
            raise RuntimeError("Semibook already activated")
        self._activated = True

        resource = self.market.resource(self.ba)
        try:
            self._subscription = await self.events.subscribe(resource, self._handle_event)
            self.reference_point = int(await self.reader.get_reference_point())
            self.offer_gasbase = int(await self.reader.get_config(resource, self.reference_point))

            self.phase = SemibookPhase.LOADING
            offers = await fetch_offer_list_prefix(
                self.reader,
                self.market,
                self.ba,
                self.reference_point,
                self.options,
                self.offer_gasbase,
            )
            self._offers.load(offers)
            self.phase = SemibookPhase.ACTIVE
            self._drain_buffer()
        except BaseException:
            self.disconnect()
            raise

        self._log.info(
            "Semibook active: %d offers at block %d (gasbase=%d)",
            len(self._offers),
            self.reference_point,
            self.offer_gasbase,
        )

    def _drain_buffer(self) -> None:
        buffered, self.buffer = self.buffer, []
        if buffered:
            self._log.debug("Replaying %d buffered events", len(buffered))
        for event in buffered:
            self._apply_event(event)

    def disconnect(self) -> None:
        """Stop listening to events. The cache keeps its last consistent state."""
        if self._subscription is not None:
            self.events.unsubscribe(self._subscription)
            self._subscription = None
        self.buffer.clear()
        self.phase = SemibookPhase.DISCONNECTED

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    def _handle_event(self, event: BookEvent) -> None:
        if self.phase in (SemibookPhase.ARMING, SemibookPhase.LOADING):
            self.buffer.append(event)
            return
        if self.phase is SemibookPhase.DISCONNECTED:
            return
        self._apply_event(event)

    def _apply_event(self, event: BookEvent) -> None:
        # Already reflected in the snapshot read at reference_point.
        if event.block_number <= self.reference_point:
            return

        if isinstance(event, OfferWrite):
            self._apply_offer_write(event)
        elif isinstance(event, (OfferSuccess, OfferFail)):
            removed = self._offers.remove(event.id)
            if removed is not None:
                outbound, inbound = self.market.outbound_inbound(self.ba)
                self._notify(
                    BookChange(
                        kind=event.name,
                        ba=self.ba,
                        offer=removed,
                        taker=event.taker,
                        taker_wants=outbound.from_units(event.taker_wants),
                        taker_gives=inbound.from_units(event.taker_gives),
                        mgv_data=getattr(event, "mgv_data", None),
                    )
                )
        elif isinstance(event, OfferRetract):
            removed = self._offers.remove(event.id)
            if removed is not None:
                self._notify(BookChange(kind=event.name, ba=self.ba, offer=removed))
        elif isinstance(event, SetGasbase):
            self.offer_gasbase = int(event.offer_gasbase)
        else:
            raise UnknownEventError(f"Unknown event {event!r}")

    def _apply_offer_write(self, event: OfferWrite) -> None:
        # The offer may have been outside the cache and now move into it, so
        # the removal result is irrelevant here.
        self._offers.remove(event.id)

        # Link from the prev's successor in the cache, not the remote next.
        next_id = self._offers.next_id(event.prev)
        if next_id is None:
            self.skipped_writes += 1
            self._log.debug("OfferWrite id=%d prev=%d outside cached prefix, skipped", event.id, event.prev)
            return

        offer = make_offer(
            self.market,
            self.ba,
            {
                "id": event.id,
                "prev": event.prev,
                "next": next_id,
                "maker": event.maker,
                "gives": event.gives,
                "wants": event.wants,
                "gasreq": event.gasreq,
                "gasprice": event.gasprice,
            },
            self.offer_gasbase,
        )
        self._offers.insert(offer)
        self._notify(BookChange(kind=event.name, ba=self.ba, offer=dataclasses.replace(offer)))

    def _notify(self, change: BookChange) -> None:
        if self.on_change is None:
            return
        try:
            self.on_change(change)
        except Exception:
            self._log.exception("Change callback error (kind=%s id=%d)", change.kind, change.offer.id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _require_loaded(self) -> None:
        if self.phase is SemibookPhase.ARMING or self.phase is SemibookPhase.LOADING:
            raise RuntimeError(f"Semibook is not ready (phase={self.phase.value})")

    @property
    def best(self) -> int:
        self._require_loaded()
        return self._offers.best

    def to_list(self) -> List[Offer]:
        """Cached offers from best to the end of the prefix."""
        self._require_loaded()
        return self._offers.to_list()

    def __iter__(self) -> Iterator[Offer]:
        self._require_loaded()
        return iter(self._offers)

    def __len__(self) -> int:
        return len(self._offers)

    def __contains__(self, offer_id: int) -> bool:
        return offer_id in self._offers

    def get(self, offer_id: int) -> Optional[Offer]:
        self._require_loaded()
        return self._offers.get(offer_id)

    def best_offer(self) -> Optional[Offer]:
        self._require_loaded()
        return self._offers.get(self._offers.best)

    def check_invariants(self) -> List[str]:
        return self._offers.check_invariants()
