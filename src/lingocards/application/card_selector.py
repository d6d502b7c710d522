"""
Due-card selection for study sessions.

Pulls every due card across all decks from the store and shuffles it so
repeated study of the same due set never presents cards in a stable order.
"""

import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import TypeVar

from lingocards.domain.models import Card
from lingocards.domain.ports import StudyRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class SessionSelection:
    """Cards picked for one session."""

    cards: list[Card]  # Shuffled, possibly truncated to max_cards
    total_due: int  # Size of the full due pool before truncation


def fisher_yates_shuffle(items: list[T], rng: random.Random) -> list[T]:
    """Uniform in-place shuffle. Returns the same list for chaining."""
    for i in range(len(items) - 1, 0, -1):
        j = rng.randint(0, i)
        items[i], items[j] = items[j], items[i]
    return items


class CardSelector:
    """
    Selects and orders due cards.

    Pass a seeded random.Random for reproducible order; otherwise a
    system-seeded generator is used.
    """

    def __init__(self, store: StudyRepository, rng: random.Random | None = None):
        self._store = store
        self._rng = rng or random.Random()

    async def get_all_due_cards(self, now: datetime) -> list[Card]:
        """
        Every card with next_review_date <= now, in store order.

        Records the store returns with a future review date are dropped.
        """
        cards = await self._store.get_all_due_cards(now)
        due = [card for card in cards if card.is_due(now)]
        if len(due) != len(cards):
            logger.warning(
                f"Store returned {len(cards) - len(due)} cards that are not yet due; ignoring them"
            )
        return due

    def shuffle(self, cards: list[Card]) -> list[Card]:
        """Shuffled copy of cards."""
        return fisher_yates_shuffle(list(cards), self._rng)

    async def select_session_cards(
        self, now: datetime, max_cards: int | None = None
    ) -> SessionSelection:
        """
        Shuffle the due pool, then keep the first max_cards entries.

        Truncating after the shuffle keeps the sampled subset uniformly random.
        """
        due = await self.get_all_due_cards(now)
        shuffled = self.shuffle(due)
        if max_cards is not None:
            shuffled = shuffled[:max_cards]

        logger.debug(f"Selected {len(shuffled)} of {len(due)} due cards")
        return SessionSelection(cards=shuffled, total_due=len(due))
