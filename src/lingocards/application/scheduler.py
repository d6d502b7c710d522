"""
SM-2 (SuperMemo 2) scheduler.

Computes the next ease factor, interval and repetition count after a review.
This is a pure computation module with no I/O; the caller supplies "now".

Algorithm:
- EF' = EF + (0.1 - (5-q) * (0.08 + (5-q) * 0.02)), floored at 1.3
- q < 3: repetitions reset to 0, interval = 1 day
- q >= 3: first repetition 1 day, second 6 days, then round(interval * EF')

Intervals are rounded half away from zero, so 7.5 becomes 8.
"""

from datetime import datetime

from lingocards.domain.constants import (
    FIRST_INTERVAL,
    MAX_RATING,
    MIN_EASE_FACTOR,
    MIN_RATING,
    PASSING_RATING,
    SECOND_INTERVAL,
)
from lingocards.domain.errors import InvalidRatingError, InvalidSchedulingInputError
from lingocards.domain.models import CardScheduling, IntervalPreview, Rating, SchedulingResult

from .utils.dates import add_days, round_half_up


def validate_rating(rating: int) -> int:
    """Reject anything that is not an integer rating in 0..5."""
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidRatingError(f"Rating must be an integer, got {rating!r}")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise InvalidRatingError(f"Rating must be between 0 and 5, got {rating}")
    return rating


def validate_scheduling(current: CardScheduling) -> None:
    if current.ease_factor < MIN_EASE_FACTOR:
        raise InvalidSchedulingInputError(
            f"Ease factor {current.ease_factor} is below the {MIN_EASE_FACTOR} floor"
        )
    if current.interval < 0:
        raise InvalidSchedulingInputError(f"Interval must be >= 0, got {current.interval}")
    if current.repetitions < 0:
        raise InvalidSchedulingInputError(
            f"Repetitions must be >= 0, got {current.repetitions}"
        )


def next_ease_factor(ease_factor: float, rating: int) -> float:
    miss = 5 - rating
    new_ease = ease_factor + (0.1 - miss * (0.08 + miss * 0.02))
    return max(MIN_EASE_FACTOR, new_ease)


def schedule_next(current: CardScheduling, rating: int, now: datetime) -> SchedulingResult:
    """
    Apply one SM-2 step.

    Args:
        current: The card's scheduling state before the review.
        rating: SM-2 rating, 0-5.
        now: Review time; the next review date is now plus the new interval in
            calendar days.

    Raises:
        InvalidRatingError: Rating outside 0..5.
        InvalidSchedulingInputError: Current state violates the card invariants.
    """
    validate_rating(rating)
    validate_scheduling(current)

    new_ease = next_ease_factor(current.ease_factor, rating)

    if rating < PASSING_RATING:
        # Ease is still lowered on failure.
        new_repetitions = 0
        new_interval = FIRST_INTERVAL
    else:
        new_repetitions = current.repetitions + 1
        if new_repetitions == 1:
            new_interval = FIRST_INTERVAL
        elif new_repetitions == 2:
            new_interval = SECOND_INTERVAL
        else:
            new_interval = round_half_up(current.interval * new_ease)

    return SchedulingResult(
        ease_factor=new_ease,
        interval=new_interval,
        repetitions=new_repetitions,
        next_review_date=add_days(now, new_interval),
    )


def preview_intervals(current: CardScheduling, now: datetime) -> IntervalPreview:
    """Interval each of the four canonical ratings would produce. Read-only."""
    return IntervalPreview(
        again=schedule_next(current, Rating.AGAIN, now).interval,
        hard=schedule_next(current, Rating.HARD, now).interval,
        good=schedule_next(current, Rating.GOOD, now).interval,
        easy=schedule_next(current, Rating.EASY, now).interval,
    )


def format_interval(days: int) -> str:
    """Human-readable interval, e.g. '6 days', '2 months', '1 year'."""
    if days < 1:
        return "< 1 day"
    if days == 1:
        return "1 day"
    if days < 30:
        return f"{days} days"
    if days < 365:
        months = round_half_up(days / 30)
        return "1 month" if months == 1 else f"{months} months"
    years = round_half_up(days / 365)
    return "1 year" if years == 1 else f"{years} years"
