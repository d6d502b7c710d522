"""
Study statistics derived from cards and recent review logs.

This is a pure computation module with no I/O.
"""

import math
from dataclasses import dataclass
from datetime import datetime

from lingocards.domain.constants import (
    DECK_LEARNING_REPETITIONS,
    MATURE_INTERVAL_DAYS,
    PASSING_RATING,
    RECENT_ACCURACY_WINDOW,
    SECONDS_PER_CARD,
)
from lingocards.domain.models import Card, ReviewLog

from .daily_goal import calculate_streaks, unique_cards_by_day
from .utils.dates import round_half_up


@dataclass(frozen=True)
class StudyStatistics:
    total_cards: int
    total_decks: int
    total_reviews: int  # Reviews inside the fetched window

    # Cards by status
    new_cards: int  # Never passed a review
    learning_cards: int  # repetitions > 0, interval < 21 days
    mature_cards: int  # interval >= 21 days

    current_streak: int
    longest_streak: int

    reviewed_today: int  # Unique cards
    due_now: int
    reviewed_in_window: int  # Unique cards

    recent_accuracy: int  # Percent of the last 100 reviews rated >= 3
    estimated_minutes_remaining: int


def compute_study_statistics(
    cards: list[Card],
    review_logs: list[ReviewLog],
    now: datetime,
    seconds_per_card: int = SECONDS_PER_CARD,
) -> StudyStatistics:
    """
    Aggregate card and review counts.

    Args:
        cards: Every card in every deck.
        review_logs: Logs for the statistics window, oldest first.
        now: Evaluation time.
        seconds_per_card: Assumed review time used for the estimate.
    """
    due_now = sum(1 for card in cards if card.is_due(now))
    streaks = calculate_streaks(review_logs, now)

    today = now.date()
    reviewed_today = len(unique_cards_by_day(review_logs, now.tzinfo).get(today, set()))

    recent = review_logs[-RECENT_ACCURACY_WINDOW:]
    passed = sum(1 for log in recent if log.rating >= PASSING_RATING)
    accuracy = round_half_up(passed / len(recent) * 100) if recent else 0

    return StudyStatistics(
        total_cards=len(cards),
        total_decks=len({card.deck_id for card in cards}),
        total_reviews=len(review_logs),
        new_cards=sum(1 for card in cards if card.repetitions == 0),
        learning_cards=sum(
            1
            for card in cards
            if card.repetitions > 0 and card.interval < MATURE_INTERVAL_DAYS
        ),
        mature_cards=sum(1 for card in cards if card.interval >= MATURE_INTERVAL_DAYS),
        current_streak=streaks.current_streak,
        longest_streak=streaks.longest_streak,
        reviewed_today=reviewed_today,
        due_now=due_now,
        reviewed_in_window=len({log.card_id for log in review_logs}),
        recent_accuracy=accuracy,
        estimated_minutes_remaining=math.ceil(due_now * seconds_per_card / 60),
    )


@dataclass(frozen=True)
class DeckStats:
    """Card counts for one deck."""

    deck_id: str
    total_cards: int
    due_cards: int
    new_cards: int
    learning_cards: int  # 0 < repetitions < 3


def compute_deck_stats(deck_id: str, cards: list[Card], now: datetime) -> DeckStats:
    return DeckStats(
        deck_id=deck_id,
        total_cards=len(cards),
        due_cards=sum(1 for card in cards if card.is_due(now)),
        new_cards=sum(1 for card in cards if card.repetitions == 0),
        learning_cards=sum(
            1 for card in cards if 0 < card.repetitions < DECK_LEARNING_REPETITIONS
        ),
    )
