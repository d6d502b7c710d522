"""
Error hierarchy for LingoCards.

Programmer errors (bad ratings, corrupt scheduling input) derive from ValueError
so they fail fast. Storage failures are recoverable and are translated into
retry prompts at the CLI / server boundary.
"""


class LingoCardsError(Exception):
    """Base class for all LingoCards errors."""


class InvalidRatingError(LingoCardsError, ValueError):
    """Rating outside the 0-5 SM-2 domain, or an unknown rating button."""


class InvalidSchedulingInputError(LingoCardsError, ValueError):
    """Scheduling state violates the card invariants (negative counts, ease below floor)."""


class InvalidGoalError(LingoCardsError, ValueError):
    """Daily goal outside the configured bounds."""


class InvalidBackupError(LingoCardsError, ValueError):
    """An export file could not be parsed."""


class SessionStateError(LingoCardsError):
    """Operation not allowed in the session's current state."""


class StorageError(LingoCardsError):
    """The storage collaborator failed to read or write."""


class CardNotFoundError(StorageError):
    """No card with the requested id exists in the store."""

    def __init__(self, card_id: str):
        super().__init__(f"Card not found: {card_id}")
        self.card_id = card_id


class ReviewPersistenceError(LingoCardsError):
    """
    A rating could not be persisted.

    The session is left exactly as it was before the rate call, so the same
    rating can be retried.
    """

    def __init__(self, card_id: str, cause: Exception):
        super().__init__(f"Failed to save review for card {card_id}: {cause}")
        self.card_id = card_id
        self.cause = cause
