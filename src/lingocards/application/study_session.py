"""
Study session state machine.

A session freezes a shuffled snapshot of due cards at start and walks a cursor
over it. Rating a card runs the SM-2 scheduler and persists the result; the
cursor only advances once both the card update and the review log append have
succeeded.

States:
    ACTIVE        -> cards remain at or after the cursor
    COMPLETE      -> cursor has passed the last card
    NO_CARDS_DUE  -> nothing was due at start (returned as a NoCardsDue signal)

Loading is the pending ``await start_session(...)``; there is no session
object until selection finishes.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from lingocards.domain.errors import ReviewPersistenceError, SessionStateError, StorageError
from lingocards.domain.models import Card, SchedulingResult
from lingocards.domain.ports import StudyRepository

from .card_selector import CardSelector
from .id_service import generate_session_id
from .scheduler import schedule_next
from .utils.dates import round_half_up

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    ACTIVE = "active"
    COMPLETE = "complete"
    NO_CARDS_DUE = "no_cards_due"


@dataclass(frozen=True)
class NoCardsDue:
    """Returned instead of a session when the due pool is empty. Not an error."""

    checked_at: datetime
    message: str = "All caught up! No cards due for review."

    @property
    def state(self) -> SessionState:
        return SessionState.NO_CARDS_DUE


@dataclass(frozen=True)
class SessionProgress:
    current: int
    total: int
    reviewed: int
    remaining: int
    percentage: int


@dataclass(frozen=True)
class StepResult:
    """Outcome of a rate or skip call."""

    progress: SessionProgress
    is_complete: bool


@dataclass
class StudySession:
    """
    One sitting over a frozen card sequence.

    Invariants: 0 <= current_index <= len(cards) and
    reviewed_count <= current_index.
    """

    cards: tuple[Card, ...]
    started_at: datetime
    total_due: int
    id: str = field(default_factory=generate_session_id)
    current_index: int = 0
    reviewed_count: int = 0
    is_flipped: bool = False

    @property
    def state(self) -> SessionState:
        if self.current_index >= len(self.cards):
            return SessionState.COMPLETE
        return SessionState.ACTIVE

    @property
    def is_complete(self) -> bool:
        return self.state is SessionState.COMPLETE

    @property
    def current_card(self) -> Card | None:
        if self.is_complete:
            return None
        return self.cards[self.current_index]

    @property
    def has_more_due(self) -> bool:
        """True when the due pool was larger than this goal-limited session."""
        return self.total_due > len(self.cards)

    @property
    def progress(self) -> SessionProgress:
        current = self.current_index + 1
        total = len(self.cards)
        return SessionProgress(
            current=current,
            total=total,
            reviewed=self.reviewed_count,
            remaining=total - self.current_index - 1,
            percentage=round_half_up(current / total * 100),
        )

    def step_result(self) -> StepResult:
        return StepResult(progress=self.progress, is_complete=self.is_complete)

    def _advance(self, reviewed: bool) -> None:
        self.current_index += 1
        if reviewed:
            self.reviewed_count += 1
        self.is_flipped = False


class StudySessionService:
    """
    Drives study sessions against a StudyRepository.

    Follows Dependency Inversion: depends on the StudyRepository port and an
    injectable clock, not on a concrete store or the wall clock.
    """

    def __init__(
        self,
        store: StudyRepository,
        selector: CardSelector | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._store = store
        self._selector = selector or CardSelector(store)
        self._clock = clock or datetime.now

    async def start_session(
        self,
        max_cards: int | None = None,
        unlimited: bool = False,
        now: datetime | None = None,
    ) -> StudySession | NoCardsDue:
        """
        Select, shuffle and freeze the due cards for a new session.

        Args:
            max_cards: Goal-limited cap applied after shuffling.
            unlimited: Ignore max_cards and take the whole due pool.
            now: Evaluation time; defaults to the injected clock.

        Returns:
            An ACTIVE StudySession, or NoCardsDue when nothing is due.
        """
        now = now or self._clock()
        cap = None if unlimited else max_cards
        if cap is not None and cap < 1:
            raise ValueError(f"max_cards must be at least 1, got {cap}")

        selection = await self._selector.select_session_cards(now, max_cards=cap)
        if not selection.cards:
            logger.info("No cards due for review")
            return NoCardsDue(checked_at=now)

        session = StudySession(
            cards=tuple(selection.cards),
            started_at=now,
            total_due=selection.total_due,
        )
        logger.info(
            f"Started session {session.id} with {len(session.cards)} cards "
            f"({selection.total_due} due)"
        )
        return session

    async def restart(
        self,
        session: StudySession | None = None,
        max_cards: int | None = None,
        unlimited: bool = False,
        now: datetime | None = None,
    ) -> StudySession | NoCardsDue:
        """
        Discard a session and start over.

        "Continue anyway" after a goal-limited session is restart(unlimited=True).
        """
        if session is not None:
            logger.debug(
                f"Discarding session {session.id} at {session.current_index}/{len(session.cards)}"
            )
        return await self.start_session(max_cards=max_cards, unlimited=unlimited, now=now)

    def flip(self, session: StudySession) -> bool:
        """Toggle the answer side of the current card. Returns the new flag."""
        self._require_active(session, "flip")
        session.is_flipped = not session.is_flipped
        return session.is_flipped

    async def rate(
        self, session: StudySession, rating: int, now: datetime | None = None
    ) -> StepResult:
        """
        Schedule the current card, persist it, log the review and advance.

        Raises:
            InvalidRatingError: Rating outside 0..5; session unchanged.
            ReviewPersistenceError: The store failed; session unchanged, retry is safe.
            SessionStateError: Session is already complete.
        """
        self._require_active(session, "rate")
        now = now or self._clock()
        card = session.cards[session.current_index]

        result = schedule_next(card.scheduling, rating, now)

        try:
            await self._store.update_card_scheduling(card.id, result, updated_at=now)
        except StorageError as e:
            logger.error(f"Failed to update card {card.id}: {e}")
            raise ReviewPersistenceError(card.id, e) from e

        try:
            await self._store.append_review_log(card.id, int(rating), now)
        except StorageError as e:
            logger.error(f"Failed to log review for card {card.id}: {e}")
            await self._restore_scheduling(card)
            raise ReviewPersistenceError(card.id, e) from e

        logger.debug(
            f"Rated card {card.id} {rating}: interval={result.interval} "
            f"ease={result.ease_factor:.2f} reps={result.repetitions}"
        )
        session._advance(reviewed=True)
        if session.is_complete:
            logger.info(f"Session {session.id} complete: {session.reviewed_count} reviewed")
        return session.step_result()

    def skip(self, session: StudySession) -> StepResult:
        """Move past the current card without scheduling or logging it."""
        self._require_active(session, "skip")
        session._advance(reviewed=False)
        return session.step_result()

    async def _restore_scheduling(self, card: Card) -> None:
        """Put back the scheduling the card had before this rating."""
        previous = SchedulingResult(
            ease_factor=card.ease_factor,
            interval=card.interval,
            repetitions=card.repetitions,
            next_review_date=card.next_review_date,
        )
        try:
            await self._store.update_card_scheduling(
                card.id, previous, updated_at=card.updated_at
            )
        except StorageError as e:
            logger.error(f"Could not restore scheduling for card {card.id}: {e}")

    @staticmethod
    def _require_active(session: StudySession, action: str) -> None:
        if session.state is not SessionState.ACTIVE:
            raise SessionStateError(f"Cannot {action}: session is {session.state.value}")
