import random
from collections import Counter
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from lingocards.application.card_selector import CardSelector, fisher_yates_shuffle
from lingocards.infrastructure.adapters.memory_store import InMemoryStudyRepository


@pytest.mark.asyncio
async def test_due_cards_exclude_future(now, due_cards, future_cards):
    store = InMemoryStudyRepository(due_cards + future_cards)
    selector = CardSelector(store)

    due = await selector.get_all_due_cards(now)

    assert {c.id for c in due} == {c.id for c in due_cards}


@pytest.mark.asyncio
async def test_due_boundary_is_inclusive(now, card_factory):
    store = InMemoryStudyRepository(
        [card_factory("exact", now), card_factory("later", now + timedelta(microseconds=1))]
    )
    due = await CardSelector(store).get_all_due_cards(now)
    assert [c.id for c in due] == ["exact"]


@pytest.mark.asyncio
async def test_due_cards_span_all_decks(now, card_factory):
    store = InMemoryStudyRepository(
        [
            card_factory("a", now - timedelta(days=1), deck_id="dutch"),
            card_factory("b", now - timedelta(days=2), deck_id="polish"),
        ]
    )
    due = await CardSelector(store).get_all_due_cards(now)
    assert {c.deck_id for c in due} == {"dutch", "polish"}


@pytest.mark.asyncio
async def test_drops_records_store_wrongly_reports_as_due(now, due_cards, future_cards):
    store = AsyncMock()
    store.get_all_due_cards.return_value = due_cards + future_cards

    due = await CardSelector(store).get_all_due_cards(now)

    assert len(due) == len(due_cards)
    store.get_all_due_cards.assert_awaited_once_with(now)


@pytest.mark.asyncio
async def test_select_truncates_after_shuffle(now, due_cards):
    selector = CardSelector(InMemoryStudyRepository(due_cards), rng=random.Random(7))

    selection = await selector.select_session_cards(now, max_cards=3)

    assert len(selection.cards) == 3
    assert selection.total_due == 5
    assert {c.id for c in selection.cards} <= {c.id for c in due_cards}


@pytest.mark.asyncio
async def test_select_with_cap_larger_than_pool(now, due_cards):
    selector = CardSelector(InMemoryStudyRepository(due_cards), rng=random.Random(7))

    selection = await selector.select_session_cards(now, max_cards=50)

    assert len(selection.cards) == 5
    assert selection.total_due == 5


@pytest.mark.asyncio
async def test_seeded_selection_is_reproducible(now, due_cards):
    first = await CardSelector(
        InMemoryStudyRepository(due_cards), rng=random.Random(42)
    ).select_session_cards(now)
    second = await CardSelector(
        InMemoryStudyRepository(due_cards), rng=random.Random(42)
    ).select_session_cards(now)

    assert [c.id for c in first.cards] == [c.id for c in second.cards]


def test_shuffle_does_not_mutate_input(due_cards):
    original = [c.id for c in due_cards]
    CardSelector(InMemoryStudyRepository(), rng=random.Random(1)).shuffle(due_cards)
    assert [c.id for c in due_cards] == original


def test_shuffle_is_a_permutation():
    items = list(range(20))
    shuffled = fisher_yates_shuffle(list(items), random.Random(3))
    assert sorted(shuffled) == items


def test_shuffle_is_unbiased():
    rng = random.Random(1234)
    trials = 6000
    counts: Counter[tuple[str, int]] = Counter()

    for _ in range(trials):
        for position, item in enumerate(fisher_yates_shuffle(["a", "b", "c"], rng)):
            counts[(item, position)] += 1

    expected = trials / 3
    for item in "abc":
        for position in range(3):
            assert abs(counts[(item, position)] - expected) < expected * 0.15


def test_every_permutation_appears():
    rng = random.Random(99)
    seen = Counter(tuple(fisher_yates_shuffle([1, 2, 3], rng)) for _ in range(6000))

    assert len(seen) == 6
    for count in seen.values():
        assert 800 < count < 1200


@pytest.mark.asyncio
async def test_single_card_sessions_pick_each_due_card_equally(now, due_cards):
    selector = CardSelector(InMemoryStudyRepository(due_cards), rng=random.Random(2024))
    trials = 5000
    picks: Counter[str] = Counter()

    for _ in range(trials):
        selection = await selector.select_session_cards(now, max_cards=1)
        picks[selection.cards[0].id] += 1

    expected = trials / len(due_cards)
    assert set(picks) == {c.id for c in due_cards}
    for count in picks.values():
        assert abs(count - expected) < expected * 0.15
