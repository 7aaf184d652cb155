from __future__ import annotations

from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Optional

from .offer import Offer


class OfferList:
    """In-memory prefix of a remote offer list, linked by offer id.

    `best` is the id of the first offer (0 when empty). Ids absent from the
    mapping are unknown: either removed remotely or beyond the cached prefix.

    Invariants after every mutation:
      - best != 0  =>  offers[best].prev == 0
      - offers[x].next == y != 0 and y cached  =>  offers[y].prev == x
      - offers[x].prev == y != 0 and y cached  =>  offers[y].next == x
    """

    def __init__(self) -> None:
        self.offers: Dict[int, Offer] = {}
        self.best: int = 0
        self._mutating = False

    def __len__(self) -> int:
        return len(self.offers)

    def __contains__(self, offer_id: int) -> bool:
        return offer_id in self.offers

    def get(self, offer_id: int) -> Optional[Offer]:
        return self.offers.get(offer_id)

    @contextmanager
    def _mutation(self):
        self._mutating = True
        try:
            yield
        finally:
            self._mutating = False

    def load(self, offers: Iterable[Offer]) -> None:
        """Populate from an ordered snapshot; the first offer becomes best."""
        with self._mutation():
            self.offers.clear()
            self.best = 0
            for offer in offers:
                if not self.offers:
                    self.best = offer.id
                self.offers[offer.id] = offer

    def next_id(self, prev_id: int) -> Optional[int]:
        """Id following `prev_id` according to the cache.

        0 stands for "before best". Returns None when `prev_id` is outside the
        cached prefix. The returned id itself need not be cached.
        """
        if prev_id == 0:
            return self.best
        prev_offer = self.offers.get(prev_id)
        if prev_offer is None:
            return None
        return prev_offer.next

    def insert(self, offer: Offer) -> None:
        """Link `offer` in. Expects offer.prev to be 0 or cached and offer.id to be absent."""
        with self._mutation():
            self.offers[offer.id] = offer
            if offer.prev == 0:
                self.best = offer.id
            else:
                self.offers[offer.prev].next = offer.id

            next_offer = self.offers.get(offer.next) if offer.next != 0 else None
            if next_offer is not None:
                next_offer.prev = offer.id

    def remove(self, offer_id: int) -> Optional[Offer]:
        """Detach `offer_id` and relink its neighbours. Returns None if it was not cached."""
        offer = self.offers.get(offer_id)
        if offer is None:
            return None

        with self._mutation():
            # prev == 0 means the offer is best; a missing prev means we are past the prefix
            if offer.prev == 0:
                self.best = offer.next
            else:
                prev_offer = self.offers.get(offer.prev)
                if prev_offer is not None:
                    prev_offer.next = offer.next

            # also covers next == 0 and next beyond the cached prefix
            next_offer = self.offers.get(offer.next)
            if next_offer is not None:
                next_offer.prev = offer.prev

            del self.offers[offer_id]
        return offer

    def __iter__(self) -> Iterator[Offer]:
        if self._mutating:
            raise RuntimeError("OfferList cannot be iterated during a mutation")
        current = self.offers.get(self.best) if self.best != 0 else None
        while current is not None:
            yield current
            current = self.offers.get(current.next) if current.next != 0 else None

    def to_list(self) -> List[Offer]:
        return list(self)

    def ids(self) -> List[int]:
        return [offer.id for offer in self]

    def check_invariants(self) -> List[str]:
        problems: List[str] = []
        # best may point past the prefix once every cached offer is gone
        if self.best != 0:
            head = self.offers.get(self.best)
            if head is not None and head.prev != 0:
                problems.append(f"best={self.best} has prev={head.prev}")
        elif self.offers:
            problems.append("best=0 but the list is not empty")

        for offer_id, offer in self.offers.items():
            nxt = self.offers.get(offer.next) if offer.next != 0 else None
            if nxt is not None and nxt.prev != offer_id:
                problems.append(f"{offer_id}.next={offer.next} but {offer.next}.prev={nxt.prev}")
            prv = self.offers.get(offer.prev) if offer.prev != 0 else None
            if prv is not None and prv.next != offer_id:
                problems.append(f"{offer_id}.prev={offer.prev} but {offer.prev}.next={prv.next}")
        return problems
