"""
Study Service: Application layer orchestrator.

The surface the CLI and HTTP server talk to: sessions, card management,
decks, interval previews, daily goal progress, streaks and statistics, plus
whole-store export and import. Goal and streak figures read review history
through StudyRepository.get_review_logs_by_date_range.
"""

import logging
import random
from collections.abc import Callable
from dataclasses import replace
from datetime import date, datetime, timedelta

from lingocards.domain.constants import PROGRESS_DAYS_BACK
from lingocards.domain.models import Card, IntervalPreview, ReviewLog, StudyData, new_card
from lingocards.domain.ports import StudyRepository

from .card_selector import CardSelector
from .config import AppConfig
from .daily_goal import (
    DailyGoalProgress,
    DayProgress,
    StreakSummary,
    calculate_streaks,
    get_daily_progress_window,
    get_today_progress,
    validate_goal,
)
from .id_service import generate_card_id
from .scheduler import preview_intervals
from .statistics import DeckStats, StudyStatistics, compute_deck_stats, compute_study_statistics
from .study_session import NoCardsDue, StepResult, StudySession, StudySessionService
from .utils.dates import day_bounds, start_of_day

logger = logging.getLogger(__name__)

# Streaks need the whole history.
HISTORY_START = date(1970, 1, 1)


class StudyService:
    """
    Application service wiring the selector, session state machine and
    goal tracker to one store.
    """

    def __init__(
        self,
        store: StudyRepository,
        config: AppConfig,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Args:
            store: The repository (port) for cards and review logs.
            config: Resolved configuration; supplies the daily goal.
            rng: Optional shuffle source; seeded from config.shuffle_seed if omitted.
            clock: Optional time source; defaults to datetime.now.
        """
        self._store = store
        self._config = config
        self._clock = clock or datetime.now
        if rng is None and config.shuffle_seed is not None:
            rng = random.Random(config.shuffle_seed)
        self.selector = CardSelector(store, rng=rng)
        self.sessions = StudySessionService(store, self.selector, clock=self._clock)

    # ----- Sessions -----

    async def start_session(
        self, max_cards: int | None = None, unlimited: bool = False
    ) -> StudySession | NoCardsDue:
        return await self.sessions.start_session(max_cards=max_cards, unlimited=unlimited)

    async def start_goal_session(self) -> StudySession | NoCardsDue:
        """
        Start a session capped at the cards still needed for today's goal.

        Once the goal is met the session is unlimited.
        """
        progress = await self.get_daily_goal_progress()
        if progress.goal_met:
            logger.info("Daily goal already met; starting unlimited session")
            return await self.sessions.start_session(unlimited=True)
        return await self.sessions.start_session(max_cards=progress.remaining)

    async def continue_anyway(
        self, session: StudySession | None = None
    ) -> StudySession | NoCardsDue:
        """Study the rest of the due pool after a goal-limited session."""
        return await self.sessions.restart(session, unlimited=True)

    def flip(self, session: StudySession) -> bool:
        return self.sessions.flip(session)

    async def rate(self, session: StudySession, rating: int) -> StepResult:
        return await self.sessions.rate(session, rating)

    def skip(self, session: StudySession) -> StepResult:
        return self.sessions.skip(session)

    # ----- Cards -----

    async def add_card(
        self, front: str, back: str, deck_id: str = "default", example: str | None = None
    ) -> Card:
        card = new_card(generate_card_id(), deck_id, front, back, self._clock(), example=example)
        await self._store.add_card(card)
        logger.info(f"Added card {card.id} to deck {deck_id}")
        return card

    async def get_due_cards(self) -> list[Card]:
        return await self.selector.get_all_due_cards(self._clock())

    async def preview_intervals(self, card_id: str) -> IntervalPreview:
        card = await self._store.get_card(card_id)
        return preview_intervals(card.scheduling, self._clock())

    async def update_card(
        self,
        card_id: str,
        front: str | None = None,
        back: str | None = None,
        example: str | None = None,
        deck_id: str | None = None,
    ) -> Card:
        """
        Edit a card's content. Fields left as None keep their value; an empty
        example clears it. Scheduling is untouched.
        """
        card = await self._store.get_card(card_id)
        if front is not None:
            card.front = front
        if back is not None:
            card.back = back
        if example is not None:
            card.example = example or None
        if deck_id is not None:
            card.deck_id = deck_id
        card.updated_at = self._clock()
        await self._store.update_card(card)
        logger.info(f"Updated card {card_id}")
        return card

    async def delete_card(self, card_id: str) -> None:
        await self._store.delete_card(card_id)
        logger.info(f"Deleted card {card_id}")

    async def get_card_history(self, card_id: str) -> list[ReviewLog]:
        # Raises CardNotFoundError for unknown ids instead of an empty history.
        await self._store.get_card(card_id)
        return await self._store.get_review_logs(card_id)

    # ----- Decks -----

    async def get_decks(self) -> list[DeckStats]:
        now = self._clock()
        decks = []
        for deck_id in await self._store.get_deck_ids():
            cards = await self._store.get_cards(deck_id)
            decks.append(compute_deck_stats(deck_id, cards, now))
        return decks

    # ----- Data management -----

    async def export_data(self) -> StudyData:
        data = await self._store.export_data()
        logger.info(f"Exported {len(data.cards)} cards and {len(data.review_logs)} review logs")
        return data

    async def import_data(self, data: StudyData) -> None:
        await self._store.import_data(data)

    async def clear_all_data(self) -> None:
        await self._store.clear_all_data()
        logger.warning("Cleared all cards and review logs")

    # ----- Goal, streaks, statistics -----

    async def get_daily_goal_progress(self, goal: int | None = None) -> DailyGoalProgress:
        goal = validate_goal(goal) if goal is not None else self._config.daily_goal
        now = self._clock()
        start, end = day_bounds(now.date(), now.tzinfo)
        logs = await self._store.get_review_logs_by_date_range(start, end)
        return get_today_progress(logs, goal, now)

    async def get_streaks(self) -> StreakSummary:
        now = self._clock()
        logs = await self._history(now)
        return calculate_streaks(logs, now)

    async def get_statistics(self) -> StudyStatistics:
        now = self._clock()
        today = now.date()
        start = start_of_day(today - timedelta(days=self._config.stats_window_days), now.tzinfo)
        _, end = day_bounds(today, now.tzinfo)

        cards = await self._store.get_all_cards()
        window_logs = await self._store.get_review_logs_by_date_range(start, end)
        stats = compute_study_statistics(
            cards, window_logs, now, seconds_per_card=self._config.seconds_per_card
        )

        # Streaks from the window alone would be truncated.
        streaks = calculate_streaks(await self._history(now), now)
        return replace(
            stats,
            current_streak=streaks.current_streak,
            longest_streak=streaks.longest_streak,
        )

    async def get_daily_progress_window(self) -> list[DayProgress]:
        now = self._clock()
        today = now.date()
        start = start_of_day(today - timedelta(days=PROGRESS_DAYS_BACK), now.tzinfo)
        _, end = day_bounds(today, now.tzinfo)

        logs = await self._store.get_review_logs_by_date_range(start, end)
        cards = await self._store.get_all_cards()
        return get_daily_progress_window(logs, cards, self._config.daily_goal, now)

    async def _history(self, now: datetime) -> list[ReviewLog]:
        _, end = day_bounds(now.date(), now.tzinfo)
        return await self._store.get_review_logs_by_date_range(
            start_of_day(HISTORY_START, now.tzinfo), end
        )
