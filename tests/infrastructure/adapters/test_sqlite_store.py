from datetime import datetime, timedelta, timezone

import pytest

from lingocards.application.config import AppConfig
from lingocards.application.study_service import StudyService
from lingocards.application.study_session import StudySessionService
from lingocards.domain.errors import StorageError
from lingocards.domain.models import new_card
from lingocards.infrastructure.adapters.sqlite_store import SqliteStudyRepository, _from_db, _to_db

NOW = datetime(2026, 10, 16, 20, 0)


@pytest.mark.asyncio
async def test_data_survives_new_repository(tmp_path):
    db_path = tmp_path / "cards.db"
    await SqliteStudyRepository(db_path).add_card(new_card("c1", "dutch", "boom", "tree", NOW))
    await SqliteStudyRepository(db_path).append_review_log("c1", 4, NOW)

    reopened = SqliteStudyRepository(db_path)
    card = await reopened.get_card("c1")
    logs = await reopened.get_review_logs_by_date_range(NOW, NOW + timedelta(seconds=1))

    assert card.front == "boom"
    assert [log.rating for log in logs] == [4]


@pytest.mark.asyncio
async def test_creates_parent_directory(tmp_path):
    db_path = tmp_path / "nested" / "dir" / "cards.db"

    await SqliteStudyRepository(db_path).get_all_cards()

    assert db_path.exists()


@pytest.mark.asyncio
async def test_unusable_path_is_storage_error(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")

    with pytest.raises(StorageError):
        await SqliteStudyRepository(blocker / "cards.db").get_all_cards()


@pytest.mark.asyncio
async def test_rating_outside_domain_rejected_by_schema(tmp_path):
    repo = SqliteStudyRepository(tmp_path / "cards.db")
    await repo.add_card(new_card("c1", "dutch", "boom", "tree", NOW))

    with pytest.raises(StorageError):
        await repo.append_review_log("c1", 9, NOW)


def test_timestamps_sort_as_strings():
    early = _to_db(datetime(2026, 10, 16, 9, 0))
    late = _to_db(datetime(2026, 10, 16, 9, 0, 0, 1))

    assert early == "2026-10-16T09:00:00.000000"
    assert early < late
    assert _from_db(early) == datetime(2026, 10, 16, 9, 0)


def test_aware_timestamps_stored_as_local_time():
    aware = datetime(2026, 10, 16, 18, 0, tzinfo=timezone.utc)

    stored = _from_db(_to_db(aware))

    assert stored.tzinfo is None
    assert stored == aware.astimezone().replace(tzinfo=None)
    assert _to_db(None) is None


def test_stored_time_read_back_in_requested_zone():
    aware = datetime(2026, 10, 16, 18, 0, tzinfo=timezone.utc)

    restored = _from_db(_to_db(aware), timezone.utc)

    assert restored == aware
    assert restored.tzinfo == timezone.utc


@pytest.mark.asyncio
async def test_session_with_utc_clock(tmp_path):
    utc_now = datetime(2026, 10, 16, 20, tzinfo=timezone.utc)
    local_due = (utc_now - timedelta(hours=1)).astimezone().replace(tzinfo=None)
    repo = SqliteStudyRepository(tmp_path / "cards.db")
    await repo.add_card(new_card("c1", "dutch", "boom", "tree", local_due))
    service = StudySessionService(repo, clock=lambda: utc_now)

    session = await service.start_session()
    await service.rate(session, 4)

    assert [c.id for c in session.cards] == ["c1"]
    assert session.is_complete
    card = await repo.get_card("c1")
    assert card.next_review_date == (utc_now + timedelta(days=1)).astimezone().replace(tzinfo=None)
    assert card.updated_at == utc_now.astimezone().replace(tzinfo=None)
    logs = await repo.get_review_logs_by_date_range(utc_now, utc_now + timedelta(seconds=1))
    assert [log.reviewed_at for log in logs] == [utc_now]


@pytest.mark.asyncio
async def test_goal_and_stats_with_utc_clock(tmp_path, mock_home):
    utc_now = datetime(2026, 10, 16, 12, tzinfo=timezone.utc)
    repo = SqliteStudyRepository(tmp_path / "cards.db")
    for i in range(2):
        await repo.add_card(new_card(f"c{i}", "dutch", f"w{i}", f"t{i}", utc_now))
    await repo.append_review_log("c0", 4, utc_now - timedelta(hours=1))
    service = StudyService(repo, AppConfig(backend="memory"), clock=lambda: utc_now)

    progress = await service.get_daily_goal_progress()
    stats = await service.get_statistics()

    assert progress.today_reviewed == 1
    assert stats.due_now == 2
    assert stats.reviewed_today == 1
    assert stats.current_streak == 1
