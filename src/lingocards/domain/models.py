"""
Domain models for cards, reviews and scheduling state.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum

from .constants import DEFAULT_EASE_FACTOR
from .errors import InvalidRatingError


class Rating(IntEnum):
    """Canonical SM-2 ratings emitted by the four-button surface."""

    AGAIN = 0
    HARD = 2
    GOOD = 4
    EASY = 5


# Button vocabularies layered over the same 0-5 domain.
FOUR_BUTTON: dict[str, int] = {
    "again": Rating.AGAIN,
    "hard": Rating.HARD,
    "good": Rating.GOOD,
    "easy": Rating.EASY,
}

TWO_BUTTON: dict[str, int] = {
    "dont_know": Rating.AGAIN,
    "know": Rating.GOOD,
}

VOCABULARIES: dict[str, dict[str, int]] = {
    "four": FOUR_BUTTON,
    "two": TWO_BUTTON,
}


def rating_from_button(button: str, vocabulary: dict[str, int] = FOUR_BUTTON) -> int:
    """Map a rating button name to its integer SM-2 rating."""
    key = button.strip().lower().replace("-", "_").replace("'", "")
    if key not in vocabulary:
        raise InvalidRatingError(
            f"Unknown rating button '{button}'. Expected one of: {', '.join(vocabulary)}"
        )
    return int(vocabulary[key])


@dataclass(frozen=True)
class CardScheduling:
    """
    The part of a card the SM-2 scheduler reads.

    Attributes:
        ease_factor: Interval growth multiplier, never below 1.3.
        interval: Days until the next review (0 for never-reviewed cards).
        repetitions: Consecutive passing reviews since the last failure.
    """

    ease_factor: float = DEFAULT_EASE_FACTOR
    interval: int = 0
    repetitions: int = 0


@dataclass(frozen=True)
class SchedulingResult:
    """Output of one SM-2 step, persisted back onto the card."""

    ease_factor: float
    interval: int
    repetitions: int
    next_review_date: datetime

    @property
    def scheduling(self) -> CardScheduling:
        return CardScheduling(self.ease_factor, self.interval, self.repetitions)


@dataclass(frozen=True)
class IntervalPreview:
    """Resulting interval (days) for each of the four canonical ratings."""

    again: int
    hard: int
    good: int
    easy: int


@dataclass
class Card:
    """
    A flashcard with its SM-2 scheduling fields.

    A card is due when next_review_date <= now.
    """

    id: str
    deck_id: str
    front: str
    back: str
    next_review_date: datetime
    example: str | None = None
    ease_factor: float = DEFAULT_EASE_FACTOR
    interval: int = 0
    repetitions: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def scheduling(self) -> CardScheduling:
        return CardScheduling(self.ease_factor, self.interval, self.repetitions)

    def is_due(self, now: datetime) -> bool:
        due = self.next_review_date
        if (due.tzinfo is None) != (now.tzinfo is None):
            # Naive values are local wall-clock time.
            if now.tzinfo is None:
                due = due.astimezone().replace(tzinfo=None)
            else:
                due = due.astimezone(now.tzinfo)
        return due <= now

    def apply(self, result: SchedulingResult, updated_at: datetime | None = None) -> None:
        """Copy a scheduling result onto this card."""
        self.ease_factor = result.ease_factor
        self.interval = result.interval
        self.repetitions = result.repetitions
        self.next_review_date = result.next_review_date
        if updated_at is not None:
            self.updated_at = updated_at


@dataclass(frozen=True)
class ReviewLog:
    """
    One rating event. Append-only; never mutated.

    Attributes:
        id: Unique log id.
        card_id: The card that was reviewed.
        rating: SM-2 rating (0-5).
        reviewed_at: When the rating happened.
    """

    id: str
    card_id: str
    rating: int
    reviewed_at: datetime


@dataclass
class StudyData:
    """Everything a store holds, for export and import."""

    cards: list[Card] = field(default_factory=list)
    review_logs: list[ReviewLog] = field(default_factory=list)


def new_card(
    card_id: str,
    deck_id: str,
    front: str,
    back: str,
    now: datetime,
    example: str | None = None,
) -> Card:
    """Create a never-reviewed card that is due immediately."""
    return Card(
        id=card_id,
        deck_id=deck_id,
        front=front,
        back=back,
        example=example,
        next_review_date=now,
        created_at=now,
        updated_at=now,
    )
