"""
Study Repository Factory
Centralizes the logic for selecting the storage adapter.
"""

from lingocards.application.config import AppConfig
from lingocards.domain.ports import StudyRepository
from lingocards.infrastructure.adapters.memory_store import InMemoryStudyRepository
from lingocards.infrastructure.adapters.sqlite_store import SqliteStudyRepository


def get_study_repository(config: AppConfig) -> StudyRepository:
    """
    Returns the StudyRepository implementation selected by config.backend.
    """
    if config.backend == "memory":
        return InMemoryStudyRepository()

    return SqliteStudyRepository(db_path=config.db_path)
