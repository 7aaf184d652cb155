from __future__ import annotations

import asyncio

import pytest

from ob_core.market import ASKS
from ob_core.snapshot import BookOptions, fetch_offer_list_prefix
from ob_core.sources import OfferPage
from fakes import MARKET, FakeReader, linked_raws


def _fetch(reader, options, block=100):
    return asyncio.run(fetch_offer_list_prefix(reader, MARKET, ASKS, block, options, offer_gasbase=5))


def test_reads_whole_list_when_budget_allows():
    reader = FakeReader({ASKS: linked_raws([1, 2, 3])})
    offers = _fetch(reader, BookOptions(max_offers=10))
    assert [o.id for o in offers] == [1, 2, 3]
    assert all(o.offer_gasbase == 5 for o in offers)
    assert len(reader.page_calls) == 1


def test_budget_smaller_than_list_yields_prefix():
    reader = FakeReader({ASKS: linked_raws([1, 2, 3, 4, 5])})
    offers = _fetch(reader, BookOptions(max_offers=3))
    assert [o.id for o in offers] == [1, 2, 3]


def test_pages_follow_cursor_and_are_anchored_at_reference_point():
    reader = FakeReader({ASKS: linked_raws([1, 2, 3, 4, 5])})
    offers = _fetch(reader, BookOptions(max_offers=5, chunk_size=2), block=77)

    assert [o.id for o in offers] == [1, 2, 3, 4, 5]
    assert [(start, size) for _, start, size, _ in reader.page_calls] == [(0, 2), (3, 2), (5, 1)]
    assert {block for *_, block in reader.page_calls} == {77}


def test_last_page_is_capped_at_remaining_budget():
    reader = FakeReader({ASKS: linked_raws(list(range(1, 11)))})
    offers = _fetch(reader, BookOptions(max_offers=5, chunk_size=3))
    assert [o.id for o in offers] == [1, 2, 3, 4, 5]
    assert [size for _, _, size, _ in reader.page_calls] == [3, 2]


def test_empty_remote_list():
    reader = FakeReader({})
    assert _fetch(reader, BookOptions(max_offers=5)) == []


def test_oversized_page_is_truncated_to_budget():
    class GreedyReader(FakeReader):
        async def read_page(self, resource, start_id, page_size, reference_point):
            page = await super().read_page(resource, start_id, 100, reference_point)
            return page

    reader = GreedyReader({ASKS: linked_raws([1, 2, 3, 4])})
    offers = _fetch(reader, BookOptions(max_offers=2))
    assert [o.id for o in offers] == [1, 2]


def test_empty_page_with_cursor_raises():
    class StuckReader(FakeReader):
        async def read_page(self, resource, start_id, page_size, reference_point):
            return OfferPage(next_id=9, offers=[])

    with pytest.raises(RuntimeError):
        _fetch(StuckReader({}), BookOptions(max_offers=5))


@pytest.mark.parametrize("kwargs", [{"max_offers": 0}, {"max_offers": 5, "chunk_size": 0}])
def test_invalid_options(kwargs):
    with pytest.raises(ValueError):
        BookOptions(**kwargs)
