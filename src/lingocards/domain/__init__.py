# Domain Package
from .errors import (
    CardNotFoundError,
    InvalidBackupError,
    InvalidGoalError,
    InvalidRatingError,
    InvalidSchedulingInputError,
    LingoCardsError,
    ReviewPersistenceError,
    SessionStateError,
    StorageError,
)
from .models import (
    FOUR_BUTTON,
    TWO_BUTTON,
    Card,
    CardScheduling,
    IntervalPreview,
    Rating,
    ReviewLog,
    SchedulingResult,
    StudyData,
    new_card,
    rating_from_button,
)
from .ports import StudyRepository

__all__ = [
    "Card",
    "CardScheduling",
    "IntervalPreview",
    "Rating",
    "ReviewLog",
    "SchedulingResult",
    "StudyData",
    "FOUR_BUTTON",
    "TWO_BUTTON",
    "new_card",
    "rating_from_button",
    "StudyRepository",
    "LingoCardsError",
    "InvalidRatingError",
    "InvalidSchedulingInputError",
    "InvalidGoalError",
    "SessionStateError",
    "StorageError",
    "CardNotFoundError",
    "InvalidBackupError",
    "ReviewPersistenceError",
]
