from datetime import datetime, timedelta

from lingocards.application.statistics import compute_deck_stats, compute_study_statistics
from lingocards.domain.models import ReviewLog


def review(card_id: str, when: datetime, rating: int) -> ReviewLog:
    return ReviewLog(
        id=f"rev_{card_id}_{when:%d%H%M}", card_id=card_id, rating=rating, reviewed_at=when
    )


def test_card_status_buckets(now, card_factory):
    cards = [
        card_factory("n1", now - timedelta(hours=1)),
        card_factory("n2", now + timedelta(days=1)),
        card_factory("l1", now - timedelta(days=1), interval=6, repetitions=2),
        card_factory("m1", now + timedelta(days=10), interval=30, repetitions=5),
        card_factory("m2", now + timedelta(days=3), interval=21, repetitions=4),
    ]

    stats = compute_study_statistics(cards, [], now)

    assert stats.total_cards == 5
    assert (stats.new_cards, stats.learning_cards, stats.mature_cards) == (2, 1, 2)
    assert stats.due_now == 2
    assert stats.estimated_minutes_remaining == 1
    assert stats.total_reviews == 0
    assert stats.recent_accuracy == 0
    assert (stats.current_streak, stats.longest_streak) == (0, 0)


def test_review_aggregates(now):
    logs = [
        review("c", datetime(2026, 10, 12, 9, 0), 2),
        review("b", datetime(2026, 10, 15, 9, 0), 4),
        review("a", datetime(2026, 10, 16, 9, 0), 5),
        review("a", datetime(2026, 10, 16, 9, 5), 0),
    ]

    stats = compute_study_statistics([], logs, now)

    assert stats.total_reviews == 4
    assert stats.reviewed_today == 1
    assert stats.reviewed_in_window == 3
    assert stats.recent_accuracy == 50
    assert stats.current_streak == 2
    assert stats.longest_streak == 2


def test_accuracy_uses_last_hundred_reviews(now):
    start = now - timedelta(days=1)
    logs = [review(f"f{i}", start + timedelta(minutes=i), 1) for i in range(50)]
    logs += [review(f"p{i}", start + timedelta(minutes=50 + i), 3) for i in range(100)]

    assert compute_study_statistics([], logs, now).recent_accuracy == 100


def test_accuracy_rounds_half_up(now):
    logs = [
        review("a", now - timedelta(hours=3), 4),
        review("b", now - timedelta(hours=2), 5),
        review("c", now - timedelta(hours=1), 0),
    ]
    assert compute_study_statistics([], logs, now).recent_accuracy == 67


def test_estimate_rounds_up(now, card_factory):
    cards = [card_factory(f"d{i}", now - timedelta(minutes=i + 1)) for i in range(7)]

    assert compute_study_statistics(cards, [], now).estimated_minutes_remaining == 2
    assert (
        compute_study_statistics(cards[:2], [], now, seconds_per_card=30)
        .estimated_minutes_remaining
        == 1
    )


def test_total_decks_counts_distinct_deck_ids(now, card_factory):
    cards = [
        card_factory("d1", now, deck_id="dutch"),
        card_factory("d2", now, deck_id="dutch"),
        card_factory("p1", now, deck_id="polish"),
    ]

    assert compute_study_statistics(cards, [], now).total_decks == 2
    assert compute_study_statistics([], [], now).total_decks == 0


def test_deck_stats(now, card_factory):
    cards = [
        card_factory("new", now - timedelta(hours=1)),
        card_factory("young", now + timedelta(days=1), interval=1, repetitions=1),
        card_factory("learning", now, interval=6, repetitions=2),
        card_factory("known", now + timedelta(days=30), interval=30, repetitions=5),
    ]

    stats = compute_deck_stats("dutch", cards, now)

    assert stats.deck_id == "dutch"
    assert stats.total_cards == 4
    assert stats.due_cards == 2
    assert stats.new_cards == 1
    assert stats.learning_cards == 2


def test_empty_deck_stats(now):
    stats = compute_deck_stats("empty", [], now)
    assert (stats.total_cards, stats.due_cards, stats.new_cards, stats.learning_cards) == (
        0,
        0,
        0,
        0,
    )
