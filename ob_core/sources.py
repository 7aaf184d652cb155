from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping

from .events import BookEvent
from .market import BookResource


@dataclass(frozen=True)
class OfferPage:
    """One page of a paginated offer-list read. next_id == 0 means end of list."""

    next_id: int
    offers: List[Mapping[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class Subscription:
    resource: BookResource
    callback: Callable[[BookEvent], None]
    sub_id: int = 0


class OfferListReader(ABC):
    """Remote offer-list reads, all anchored at a reference point (block number)."""

    @abstractmethod
    async def get_reference_point(self) -> int:
        """Return the current block number."""

    @abstractmethod
    async def get_config(self, resource: BookResource, reference_point: int) -> int:
        """Return the offer_gasbase configured for `resource`."""

    @abstractmethod
    async def read_page(
        self,
        resource: BookResource,
        start_id: int,
        page_size: int,
        reference_point: int,
    ) -> OfferPage:
        """Return up to `page_size` consecutive raw offers starting at `start_id` (0 = best).

        Raw offers carry integer token units under keys
        id, prev, next, maker, gives, wants, gasreq, gasprice.
        """


class BookEventSource(ABC):
    """Live offer-list events, delivered one at a time in emission order."""

    @abstractmethod
    async def subscribe(self, resource: BookResource, callback: Callable[[BookEvent], None]) -> Subscription:
        """Register `callback` for `resource` and return once the remote side is delivering.

        Every event emitted after this coroutine returns reaches the callback.
        """

    @abstractmethod
    def unsubscribe(self, subscription: Subscription) -> None:
        raise NotImplementedError
