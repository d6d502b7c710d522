"""
Ports (interfaces) for card and review-log storage.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from .models import Card, ReviewLog, SchedulingResult, StudyData


class StudyRepository(ABC):
    """
    Port for reading cards and persisting review outcomes.

    Implementations:
        - InMemoryStudyRepository: dict-backed, for tests and throwaway sessions.
        - SqliteStudyRepository: aiosqlite-backed local database.

    Decks are the distinct deck_id values of the stored cards.

    All methods raise StorageError (or its subclass CardNotFoundError) on failure.
    """

    @abstractmethod
    async def get_all_due_cards(self, now: datetime) -> list[Card]:
        """
        Fetch every card, across all decks, with next_review_date <= now.

        Returns:
            Card snapshots in store order (unshuffled).
        """
        pass

    @abstractmethod
    async def update_card_scheduling(
        self, card_id: str, result: SchedulingResult, updated_at: datetime | None = None
    ) -> None:
        """
        Persist a scheduling result onto the card.

        Args:
            updated_at: New modification time; None keeps the stored one.

        Raises:
            CardNotFoundError: If no such card exists.
        """
        pass

    @abstractmethod
    async def append_review_log(
        self, card_id: str, rating: int, reviewed_at: datetime
    ) -> ReviewLog:
        """
        Append an immutable review log entry.

        Returns:
            The stored ReviewLog with its generated id.
        """
        pass

    @abstractmethod
    async def get_review_logs_by_date_range(
        self, start: datetime, end: datetime
    ) -> list[ReviewLog]:
        """
        Fetch review logs with start <= reviewed_at < end.

        Returns:
            List of ReviewLog objects, sorted by reviewed_at ascending.
        """
        pass

    @abstractmethod
    async def get_review_logs(self, card_id: str) -> list[ReviewLog]:
        """Review history of one card, oldest first."""
        pass

    @abstractmethod
    async def add_card(self, card: Card) -> Card:
        """Store a new card."""
        pass

    @abstractmethod
    async def get_card(self, card_id: str) -> Card:
        """
        Fetch a single card.

        Raises:
            CardNotFoundError: If no such card exists.
        """
        pass

    @abstractmethod
    async def update_card(self, card: Card) -> None:
        """
        Overwrite a card's content fields (deck_id, front, back, example, updated_at).

        Scheduling fields are left alone; use update_card_scheduling for those.

        Raises:
            CardNotFoundError: If no such card exists.
        """
        pass

    @abstractmethod
    async def delete_card(self, card_id: str) -> None:
        """
        Remove a card together with its review logs.

        Raises:
            CardNotFoundError: If no such card exists.
        """
        pass

    @abstractmethod
    async def get_all_cards(self) -> list[Card]:
        """Fetch every card in every deck."""
        pass

    @abstractmethod
    async def get_cards(self, deck_id: str) -> list[Card]:
        """Fetch the cards of one deck."""
        pass

    @abstractmethod
    async def get_deck_ids(self) -> list[str]:
        """Distinct deck ids, sorted."""
        pass

    @abstractmethod
    async def clear_all_data(self) -> None:
        """Delete every card and review log."""
        pass

    @abstractmethod
    async def export_data(self) -> StudyData:
        pass

    @abstractmethod
    async def import_data(self, data: StudyData) -> None:
        """Replace the whole store with data."""
        pass
