# Storage Adapters Package
from .memory_store import InMemoryStudyRepository
from .sqlite_store import SqliteStudyRepository

__all__ = ["InMemoryStudyRepository", "SqliteStudyRepository"]
