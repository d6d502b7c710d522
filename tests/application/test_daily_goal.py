from datetime import date, datetime, timedelta

import pytest

from lingocards.application.daily_goal import (
    calculate_streaks,
    get_daily_progress_window,
    get_today_progress,
    unique_cards_by_day,
    validate_goal,
)
from lingocards.domain.errors import InvalidGoalError
from lingocards.domain.models import ReviewLog


def log(card_id: str, reviewed_at: datetime, rating: int = 4) -> ReviewLog:
    return ReviewLog(
        id=f"rev_{card_id}_{reviewed_at:%d%H}",
        card_id=card_id,
        rating=rating,
        reviewed_at=reviewed_at,
    )


def on(day: int, hour: int = 12) -> datetime:
    return datetime(2026, 10, day, hour, 0)


class TestTodayProgress:
    def test_counts_distinct_cards(self, now):
        logs = [
            log("a", on(16, 8)),
            log("a", on(16, 9), rating=0),
            log("a", on(16, 10)),
            log("b", on(16, 11)),
        ]
        progress = get_today_progress(logs, 20, now)

        assert progress.today_reviewed == 2
        assert progress.remaining == 18
        assert not progress.goal_met

    def test_ignores_other_days(self, now):
        logs = [log("a", on(15, 23)), log("b", on(16, 0)), log("c", on(17, 0))]
        assert get_today_progress(logs, 5, now).today_reviewed == 1

    def test_goal_met_and_remaining_floor(self, now):
        logs = [log(f"c{i}", on(16, 9)) for i in range(7)]
        progress = get_today_progress(logs, 5, now)

        assert progress.goal_met
        assert progress.remaining == 0

    def test_no_reviews(self, now):
        progress = get_today_progress([], 20, now)
        assert (progress.today_reviewed, progress.remaining, progress.goal_met) == (0, 20, False)


class TestStreaks:
    def test_gap_breaks_current_but_not_longest(self, now):
        logs = [log("a", on(12)), log("b", on(13)), log("c", on(14)), log("d", on(16))]

        summary = calculate_streaks(logs, now)

        assert summary.current_streak == 1
        assert summary.longest_streak == 3

    def test_today_not_yet_studied_keeps_streak(self, now):
        logs = [log("a", on(13)), log("a", on(14)), log("a", on(15))]

        summary = calculate_streaks(logs, now)

        assert summary.current_streak == 3
        assert summary.longest_streak == 3

    def test_yesterday_missed_ends_streak(self, now):
        logs = [log("a", on(13)), log("a", on(14))]
        assert calculate_streaks(logs, now).current_streak == 0

    def test_multiple_reviews_per_day_count_once(self, now):
        logs = [log("a", on(16, h)) for h in range(8, 12)]
        summary = calculate_streaks(logs, now)
        assert (summary.current_streak, summary.longest_streak) == (1, 1)

    def test_empty_history(self, now):
        summary = calculate_streaks([], now)
        assert (summary.current_streak, summary.longest_streak) == (0, 0)

    def test_longest_spans_month_boundary(self):
        start = datetime(2026, 9, 28, 9, 0)
        logs = [log("a", start + timedelta(days=i)) for i in range(6)]

        summary = calculate_streaks(logs, datetime(2026, 10, 20, 9, 0))

        assert summary.longest_streak == 6
        assert summary.current_streak == 0

    def test_unordered_input(self, now):
        logs = [log("a", on(16)), log("a", on(14)), log("a", on(15))]
        assert calculate_streaks(logs, now).current_streak == 3


class TestProgressWindow:
    def test_window_shape(self, now):
        days = get_daily_progress_window([], [], 20, now)

        assert [d.day for d in days] == [date(2026, 10, d) for d in range(14, 19)]
        assert [d.is_today for d in days] == [False, False, True, False, False]
        assert [d.is_future for d in days] == [False, False, False, True, True]

    def test_reviews_and_due_counts(self, now, card_factory):
        logs = [log(f"c{i}", on(14)) for i in range(5)]
        logs += [log("x", on(16)), log("x", on(16, 13))]
        cards = [
            card_factory("t1", on(17, 9)),
            card_factory("t2", on(17, 18)),
            card_factory("t3", on(18, 9)),
            card_factory("past", on(10)),
        ]

        days = {d.day: d for d in get_daily_progress_window(logs, cards, 5, now)}

        assert days[date(2026, 10, 14)].reviewed == 5
        assert days[date(2026, 10, 14)].goal_met
        assert days[date(2026, 10, 15)].reviewed == 0
        assert days[date(2026, 10, 16)].reviewed == 1
        assert days[date(2026, 10, 16)].due_cards is None
        assert days[date(2026, 10, 17)].due_cards == 2
        assert days[date(2026, 10, 18)].due_cards == 1

    def test_custom_range(self, now):
        days = get_daily_progress_window([], [], 20, now, days_back=6, days_forward=0)
        assert len(days) == 7
        assert days[-1].is_today


def test_unique_cards_by_day(now):
    grouped = unique_cards_by_day([log("a", on(15)), log("a", on(15, 18)), log("b", on(16))])
    assert grouped == {date(2026, 10, 15): {"a"}, date(2026, 10, 16): {"b"}}


class TestValidateGoal:
    @pytest.mark.parametrize("goal", [5, 20, 100])
    def test_accepts_bounds(self, goal):
        assert validate_goal(goal) == goal

    @pytest.mark.parametrize("goal", [0, 4, 101, -1])
    def test_rejects_out_of_range(self, goal):
        with pytest.raises(InvalidGoalError):
            validate_goal(goal)

    @pytest.mark.parametrize("goal", [10.0, "10", True, None])
    def test_rejects_non_integers(self, goal):
        with pytest.raises(InvalidGoalError):
            validate_goal(goal)
