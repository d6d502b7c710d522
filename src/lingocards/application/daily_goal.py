"""
Daily goal and streak tracking.

Read-only aggregation over review logs. The only persisted input is the goal
scalar itself, which is validated at the settings boundary before it gets here.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo

from lingocards.domain.constants import (
    MAX_DAILY_GOAL,
    MIN_DAILY_GOAL,
    PROGRESS_DAYS_BACK,
    PROGRESS_DAYS_FORWARD,
)
from lingocards.domain.errors import InvalidGoalError
from lingocards.domain.models import Card, ReviewLog

from .utils.dates import local_date


@dataclass(frozen=True)
class DailyGoalProgress:
    goal: int
    today_reviewed: int
    remaining: int
    goal_met: bool


@dataclass(frozen=True)
class StreakSummary:
    current_streak: int
    longest_streak: int


@dataclass(frozen=True)
class DayProgress:
    """One day in the progress strip shown around today."""

    day: date
    reviewed: int  # Unique cards reviewed that day
    goal: int
    goal_met: bool
    is_today: bool
    is_future: bool
    due_cards: int | None = None  # Only set for future days


def validate_goal(goal: int) -> int:
    if isinstance(goal, bool) or not isinstance(goal, int):
        raise InvalidGoalError(f"Daily goal must be an integer, got {goal!r}")
    if not MIN_DAILY_GOAL <= goal <= MAX_DAILY_GOAL:
        raise InvalidGoalError(
            f"Daily goal must be between {MIN_DAILY_GOAL} and {MAX_DAILY_GOAL}, got {goal}"
        )
    return goal


def unique_cards_by_day(
    review_logs: Iterable[ReviewLog], tz: tzinfo | None = None
) -> dict[date, set[str]]:
    """Group card ids by the local calendar day they were reviewed on."""
    by_day: dict[date, set[str]] = {}
    for log in review_logs:
        by_day.setdefault(local_date(log.reviewed_at, tz), set()).add(log.card_id)
    return by_day


def get_today_progress(
    review_logs: Iterable[ReviewLog], goal: int, now: datetime
) -> DailyGoalProgress:
    """
    Progress towards today's goal.

    A card reviewed several times today counts once.
    """
    today = now.date()
    reviewed = len(unique_cards_by_day(review_logs, now.tzinfo).get(today, set()))
    return DailyGoalProgress(
        goal=goal,
        today_reviewed=reviewed,
        remaining=max(0, goal - reviewed),
        goal_met=reviewed >= goal,
    )


def calculate_streaks(review_logs: Iterable[ReviewLog], now: datetime) -> StreakSummary:
    """
    Current and longest runs of consecutive active days.

    The current streak counts today only if today already has a review;
    otherwise the backward walk starts at yesterday, so a streak stays alive
    until the end of the day.
    """
    active_days = set(unique_cards_by_day(review_logs, now.tzinfo))
    if not active_days:
        return StreakSummary(current_streak=0, longest_streak=0)

    check = now.date()
    if check not in active_days:
        check -= timedelta(days=1)

    current = 0
    while check in active_days:
        current += 1
        check -= timedelta(days=1)

    ordered = sorted(active_days)
    longest = 1
    run = 1
    for prev, curr in zip(ordered, ordered[1:]):
        if (curr - prev).days == 1:
            run += 1
        else:
            run = 1
        longest = max(longest, run)

    return StreakSummary(current_streak=current, longest_streak=longest)


def get_daily_progress_window(
    review_logs: Iterable[ReviewLog],
    cards: Iterable[Card],
    goal: int,
    now: datetime,
    days_back: int = PROGRESS_DAYS_BACK,
    days_forward: int = PROGRESS_DAYS_FORWARD,
) -> list[DayProgress]:
    """
    Per-day progress from days_back before today to days_forward after.

    Past days and today report unique cards reviewed; future days also report
    how many cards fall due on that day.
    """
    tz = now.tzinfo
    today = now.date()
    by_day = unique_cards_by_day(review_logs, tz)

    due_by_day: dict[date, int] = {}
    for card in cards:
        due_day = local_date(card.next_review_date, tz)
        due_by_day[due_day] = due_by_day.get(due_day, 0) + 1

    days: list[DayProgress] = []
    for offset in range(-days_back, days_forward + 1):
        day = today + timedelta(days=offset)
        reviewed = len(by_day.get(day, set()))
        is_future = day > today
        days.append(
            DayProgress(
                day=day,
                reviewed=reviewed,
                goal=goal,
                goal_met=reviewed >= goal,
                is_today=day == today,
                is_future=is_future,
                due_cards=due_by_day.get(day, 0) if is_future else None,
            )
        )
    return days
