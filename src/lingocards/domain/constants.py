"""Centralized constants for LingoCards.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

# ---------- SM-2 ----------
DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
PASSING_RATING = 3
MIN_RATING = 0
MAX_RATING = 5
FIRST_INTERVAL = 1
SECOND_INTERVAL = 6

# ---------- Daily Goal ----------
DEFAULT_DAILY_GOAL = 20
MIN_DAILY_GOAL = 5
MAX_DAILY_GOAL = 100

# ---------- Statistics ----------
MATURE_INTERVAL_DAYS = 21
RECENT_ACCURACY_WINDOW = 100
# Deck overviews count a card as learning for its first few passing reviews.
DECK_LEARNING_REPETITIONS = 3
SECONDS_PER_CARD = 10
STATS_WINDOW_DAYS = 7

# ---------- Daily Progress Window ----------
PROGRESS_DAYS_BACK = 2
PROGRESS_DAYS_FORWARD = 2
