"""
SQLite Study Repository: Infrastructure adapter for a local database file.

Implements StudyRepository with aiosqlite. Timestamps are stored as naive
local-time ISO-8601 strings with microseconds so that string order matches
time order; aware datetimes are converted to local time on the way in.

Queries that take a reference time (due cards, log ranges) return values in
that time's frame: an aware `now` yields aware datetimes in `now.tzinfo`.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, tzinfo
from pathlib import Path

import aiosqlite

from lingocards.application.id_service import generate_review_log_id
from lingocards.domain.errors import CardNotFoundError, StorageError
from lingocards.domain.models import Card, ReviewLog, SchedulingResult, StudyData
from lingocards.domain.ports import StudyRepository

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA foreign_keys=ON;

CREATE TABLE IF NOT EXISTS cards (
    id               TEXT PRIMARY KEY,
    deck_id          TEXT NOT NULL,
    front            TEXT NOT NULL,
    back             TEXT NOT NULL,
    example          TEXT,
    ease_factor      REAL NOT NULL DEFAULT 2.5,
    interval         INTEGER NOT NULL DEFAULT 0,
    repetitions      INTEGER NOT NULL DEFAULT 0,
    next_review_date TEXT NOT NULL,
    created_at       TEXT,
    updated_at       TEXT
);
CREATE INDEX IF NOT EXISTS idx_cards_next_review ON cards(next_review_date);
CREATE INDEX IF NOT EXISTS idx_cards_deck ON cards(deck_id);

CREATE TABLE IF NOT EXISTS review_logs (
    id          TEXT PRIMARY KEY,
    card_id     TEXT NOT NULL REFERENCES cards(id) ON DELETE CASCADE,
    rating      INTEGER NOT NULL CHECK (rating BETWEEN 0 AND 5),
    reviewed_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_review_logs_time ON review_logs(reviewed_at);
CREATE INDEX IF NOT EXISTS idx_review_logs_card ON review_logs(card_id);
"""

CARD_COLUMNS = (
    "id, deck_id, front, back, example, ease_factor, interval, repetitions, "
    "next_review_date, created_at, updated_at"
)


def _to_db(moment: datetime | None) -> str | None:
    if moment is None:
        return None
    if moment.tzinfo is not None:
        moment = moment.astimezone().replace(tzinfo=None)
    return moment.isoformat(timespec="microseconds")


def _from_db(value: str | None, tz: tzinfo | None = None) -> datetime | None:
    if value is None:
        return None
    moment = datetime.fromisoformat(value)
    if tz is not None:
        # Stored values are naive local time.
        moment = moment.astimezone(tz)
    return moment


def _row_to_card(row: aiosqlite.Row, tz: tzinfo | None = None) -> Card:
    return Card(
        id=row["id"],
        deck_id=row["deck_id"],
        front=row["front"],
        back=row["back"],
        example=row["example"],
        ease_factor=row["ease_factor"],
        interval=row["interval"],
        repetitions=row["repetitions"],
        next_review_date=_from_db(row["next_review_date"], tz),
        created_at=_from_db(row["created_at"], tz),
        updated_at=_from_db(row["updated_at"], tz),
    )


def _row_to_log(row: aiosqlite.Row, tz: tzinfo | None = None) -> ReviewLog:
    return ReviewLog(
        id=row["id"],
        card_id=row["card_id"],
        rating=row["rating"],
        reviewed_at=_from_db(row["reviewed_at"], tz),
    )


def _card_params(card: Card) -> tuple:
    return (
        card.id,
        card.deck_id,
        card.front,
        card.back,
        card.example,
        card.ease_factor,
        card.interval,
        card.repetitions,
        _to_db(card.next_review_date),
        _to_db(card.created_at),
        _to_db(card.updated_at),
    )


INSERT_CARD_SQL = (
    f"INSERT INTO cards ({CARD_COLUMNS}) "  # noqa: S608
    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)"
)
INSERT_LOG_SQL = "INSERT INTO review_logs (id, card_id, rating, reviewed_at) VALUES (?, ?, ?, ?)"


class SqliteStudyRepository(StudyRepository):
    """
    Stores cards and review logs in a SQLite database file.

    A connection is opened per operation; the schema is created on first use.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._initialized = False

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        try:
            if not self._initialized:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiosqlite.connect(self.db_path) as db:
                db.row_factory = aiosqlite.Row
                if not self._initialized:
                    await db.executescript(SCHEMA_SQL)
                    await db.commit()
                    self._initialized = True
                    logger.debug(f"Initialized schema at {self.db_path}")
                await db.execute("PRAGMA foreign_keys=ON")
                yield db
        except (aiosqlite.Error, OSError) as e:
            logger.error(f"SQLite operation failed on {self.db_path}: {e}")
            raise StorageError(str(e)) from e

    async def get_all_due_cards(self, now: datetime) -> list[Card]:
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT {CARD_COLUMNS} FROM cards WHERE next_review_date <= ?",  # noqa: S608
                (_to_db(now),),
            )
            rows = await cursor.fetchall()
        return [_row_to_card(r, now.tzinfo) for r in rows]

    async def update_card_scheduling(
        self, card_id: str, result: SchedulingResult, updated_at: datetime | None = None
    ) -> None:
        async with self._connect() as db:
            cursor = await db.execute(
                """UPDATE cards
                   SET ease_factor = ?, interval = ?, repetitions = ?,
                       next_review_date = ?, updated_at = COALESCE(?, updated_at)
                   WHERE id = ?""",
                (
                    result.ease_factor,
                    result.interval,
                    result.repetitions,
                    _to_db(result.next_review_date),
                    _to_db(updated_at),
                    card_id,
                ),
            )
            await db.commit()
            updated = cursor.rowcount
        if updated == 0:
            raise CardNotFoundError(card_id)

    async def append_review_log(
        self, card_id: str, rating: int, reviewed_at: datetime
    ) -> ReviewLog:
        log = ReviewLog(
            id=generate_review_log_id(),
            card_id=card_id,
            rating=int(rating),
            reviewed_at=reviewed_at,
        )
        async with self._connect() as db:
            cursor = await db.execute("SELECT 1 FROM cards WHERE id = ?", (card_id,))
            if await cursor.fetchone() is None:
                raise CardNotFoundError(card_id)
            await db.execute(
                INSERT_LOG_SQL, (log.id, log.card_id, log.rating, _to_db(log.reviewed_at))
            )
            await db.commit()
        return log

    async def get_review_logs_by_date_range(
        self, start: datetime, end: datetime
    ) -> list[ReviewLog]:
        async with self._connect() as db:
            cursor = await db.execute(
                """SELECT id, card_id, rating, reviewed_at FROM review_logs
                   WHERE reviewed_at >= ? AND reviewed_at < ?
                   ORDER BY reviewed_at ASC""",
                (_to_db(start), _to_db(end)),
            )
            rows = await cursor.fetchall()
        return [_row_to_log(r, start.tzinfo) for r in rows]

    async def get_review_logs(self, card_id: str) -> list[ReviewLog]:
        async with self._connect() as db:
            cursor = await db.execute(
                """SELECT id, card_id, rating, reviewed_at FROM review_logs
                   WHERE card_id = ?
                   ORDER BY reviewed_at ASC""",
                (card_id,),
            )
            rows = await cursor.fetchall()
        return [_row_to_log(r) for r in rows]

    async def add_card(self, card: Card) -> Card:
        async with self._connect() as db:
            try:
                await db.execute(INSERT_CARD_SQL, _card_params(card))
            except aiosqlite.IntegrityError as e:
                raise StorageError(f"Card already exists: {card.id}") from e
            await db.commit()
        return card

    async def get_card(self, card_id: str) -> Card:
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT {CARD_COLUMNS} FROM cards WHERE id = ?",  # noqa: S608
                (card_id,),
            )
            row = await cursor.fetchone()
        if row is None:
            raise CardNotFoundError(card_id)
        return _row_to_card(row)

    async def update_card(self, card: Card) -> None:
        async with self._connect() as db:
            cursor = await db.execute(
                """UPDATE cards
                   SET deck_id = ?, front = ?, back = ?, example = ?, updated_at = ?
                   WHERE id = ?""",
                (
                    card.deck_id,
                    card.front,
                    card.back,
                    card.example,
                    _to_db(card.updated_at),
                    card.id,
                ),
            )
            await db.commit()
            updated = cursor.rowcount
        if updated == 0:
            raise CardNotFoundError(card.id)

    async def delete_card(self, card_id: str) -> None:
        async with self._connect() as db:
            await db.execute("DELETE FROM review_logs WHERE card_id = ?", (card_id,))
            cursor = await db.execute("DELETE FROM cards WHERE id = ?", (card_id,))
            deleted = cursor.rowcount
            if deleted == 0:
                await db.rollback()
            else:
                await db.commit()
        if deleted == 0:
            raise CardNotFoundError(card_id)
        logger.info(f"Deleted card {card_id}")

    async def get_all_cards(self) -> list[Card]:
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT {CARD_COLUMNS} FROM cards ORDER BY created_at ASC"  # noqa: S608
            )
            rows = await cursor.fetchall()
        return [_row_to_card(r) for r in rows]

    async def get_cards(self, deck_id: str) -> list[Card]:
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT {CARD_COLUMNS} FROM cards WHERE deck_id = ? "  # noqa: S608
                "ORDER BY created_at ASC",
                (deck_id,),
            )
            rows = await cursor.fetchall()
        return [_row_to_card(r) for r in rows]

    async def get_deck_ids(self) -> list[str]:
        async with self._connect() as db:
            cursor = await db.execute("SELECT DISTINCT deck_id FROM cards ORDER BY deck_id")
            rows = await cursor.fetchall()
        return [r["deck_id"] for r in rows]

    async def clear_all_data(self) -> None:
        async with self._connect() as db:
            await db.execute("DELETE FROM review_logs")
            await db.execute("DELETE FROM cards")
            await db.commit()
        logger.info(f"Cleared all data in {self.db_path}")

    async def export_data(self) -> StudyData:
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT {CARD_COLUMNS} FROM cards ORDER BY created_at ASC"  # noqa: S608
            )
            card_rows = await cursor.fetchall()
            cursor = await db.execute(
                "SELECT id, card_id, rating, reviewed_at FROM review_logs ORDER BY reviewed_at ASC"
            )
            log_rows = await cursor.fetchall()
        return StudyData(
            cards=[_row_to_card(r) for r in card_rows],
            review_logs=[_row_to_log(r) for r in log_rows],
        )

    async def import_data(self, data: StudyData) -> None:
        async with self._connect() as db:
            try:
                await db.execute("DELETE FROM review_logs")
                await db.execute("DELETE FROM cards")
                await db.executemany(INSERT_CARD_SQL, [_card_params(c) for c in data.cards])
                await db.executemany(
                    INSERT_LOG_SQL,
                    [
                        (log.id, log.card_id, log.rating, _to_db(log.reviewed_at))
                        for log in data.review_logs
                    ],
                )
            except aiosqlite.IntegrityError as e:
                await db.rollback()
                raise StorageError(f"Import rejected: {e}") from e
            await db.commit()
        logger.info(
            f"Imported {len(data.cards)} cards and {len(data.review_logs)} review logs "
            f"into {self.db_path}"
        )
