"""
In-memory study repository.

Implements StudyRepository with plain dicts. Used by tests and by the
"memory" backend for throwaway sessions.
"""

import copy
import logging
from datetime import datetime

from lingocards.application.id_service import generate_review_log_id
from lingocards.domain.errors import CardNotFoundError, StorageError
from lingocards.domain.models import Card, ReviewLog, SchedulingResult, StudyData
from lingocards.domain.ports import StudyRepository

logger = logging.getLogger(__name__)


class InMemoryStudyRepository(StudyRepository):
    """
    Keeps cards and review logs in process memory.

    Returned cards are copies, so callers cannot mutate stored state behind
    the repository's back.
    """

    def __init__(self, cards: list[Card] | None = None):
        self._cards: dict[str, Card] = {}
        self._logs: list[ReviewLog] = []
        for card in cards or []:
            self._cards[card.id] = copy.copy(card)

    def _require(self, card_id: str) -> Card:
        card = self._cards.get(card_id)
        if card is None:
            raise CardNotFoundError(card_id)
        return card

    async def get_all_due_cards(self, now: datetime) -> list[Card]:
        return [copy.copy(c) for c in self._cards.values() if c.is_due(now)]

    async def update_card_scheduling(
        self, card_id: str, result: SchedulingResult, updated_at: datetime | None = None
    ) -> None:
        self._require(card_id).apply(result, updated_at=updated_at)

    async def append_review_log(
        self, card_id: str, rating: int, reviewed_at: datetime
    ) -> ReviewLog:
        self._require(card_id)
        log = ReviewLog(
            id=generate_review_log_id(),
            card_id=card_id,
            rating=int(rating),
            reviewed_at=reviewed_at,
        )
        self._logs.append(log)
        return log

    async def get_review_logs_by_date_range(
        self, start: datetime, end: datetime
    ) -> list[ReviewLog]:
        logs = [log for log in self._logs if start <= log.reviewed_at < end]
        return sorted(logs, key=lambda log: log.reviewed_at)

    async def get_review_logs(self, card_id: str) -> list[ReviewLog]:
        logs = [log for log in self._logs if log.card_id == card_id]
        return sorted(logs, key=lambda log: log.reviewed_at)

    async def add_card(self, card: Card) -> Card:
        if card.id in self._cards:
            raise StorageError(f"Card already exists: {card.id}")
        self._cards[card.id] = copy.copy(card)
        logger.debug(f"Added card {card.id} to deck {card.deck_id}")
        return copy.copy(card)

    async def get_card(self, card_id: str) -> Card:
        return copy.copy(self._require(card_id))

    async def update_card(self, card: Card) -> None:
        stored = self._require(card.id)
        stored.deck_id = card.deck_id
        stored.front = card.front
        stored.back = card.back
        stored.example = card.example
        stored.updated_at = card.updated_at

    async def delete_card(self, card_id: str) -> None:
        self._require(card_id)
        del self._cards[card_id]
        self._logs = [log for log in self._logs if log.card_id != card_id]

    async def get_all_cards(self) -> list[Card]:
        return [copy.copy(c) for c in self._cards.values()]

    async def get_cards(self, deck_id: str) -> list[Card]:
        return [copy.copy(c) for c in self._cards.values() if c.deck_id == deck_id]

    async def get_deck_ids(self) -> list[str]:
        return sorted({c.deck_id for c in self._cards.values()})

    async def clear_all_data(self) -> None:
        self._cards.clear()
        self._logs.clear()

    async def export_data(self) -> StudyData:
        return StudyData(
            cards=[copy.copy(c) for c in self._cards.values()],
            review_logs=sorted(self._logs, key=lambda log: log.reviewed_at),
        )

    async def import_data(self, data: StudyData) -> None:
        known = {card.id for card in data.cards}
        orphans = [log.id for log in data.review_logs if log.card_id not in known]
        if orphans:
            raise StorageError(f"Review logs reference unknown cards: {', '.join(orphans)}")
        self._cards = {card.id: copy.copy(card) for card in data.cards}
        self._logs = list(data.review_logs)
