import logging
import os
from datetime import datetime, timedelta

import pytest

from lingocards.domain.models import Card


def make_card(
    card_id: str,
    next_review_date: datetime,
    ease_factor: float = 2.5,
    interval: int = 0,
    repetitions: int = 0,
    deck_id: str = "default",
) -> Card:
    return Card(
        id=card_id,
        deck_id=deck_id,
        front=f"front {card_id}",
        back=f"back {card_id}",
        next_review_date=next_review_date,
        ease_factor=ease_factor,
        interval=interval,
        repetitions=repetitions,
        created_at=next_review_date,
        updated_at=next_review_date,
    )


@pytest.fixture
def now():
    """A fixed Friday evening."""
    return datetime(2026, 10, 16, 20, 0, 0)


@pytest.fixture
def due_cards(now):
    return [make_card(f"c{i}", now - timedelta(hours=i + 1)) for i in range(5)]


@pytest.fixture
def future_cards(now):
    return [make_card(f"f{i}", now + timedelta(days=i + 1)) for i in range(3)]


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Isolate config files and default database location
    monkeypatch.setenv("HOME", str(home))
    for var in list(os.environ):
        if var.startswith("LINGOCARDS_"):
            monkeypatch.delenv(var)
    return home


@pytest.fixture
def card_factory():
    return make_card


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop handlers that CLI runs attach to the package logger."""
    yield
    logger = logging.getLogger("lingocards")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
