from proofpass.repository.base import DuplicateEntryError, Repository
from proofpass.repository.memory import InMemoryRepository
from proofpass.repository.sql import SqlRepository


def build_repository(settings) -> Repository:
    """Pick the storage backend named by ``settings.STORAGE_BACKEND``."""
    backend = settings.STORAGE_BACKEND.lower()
    if backend == "memory":
        return InMemoryRepository()
    if backend == "sql":
        from proofpass.db import create_db_and_tables, make_engine

        engine = make_engine(settings.DATABASE_URL)
        create_db_and_tables(engine)
        return SqlRepository(engine)
    raise ValueError(f"Unknown STORAGE_BACKEND {settings.STORAGE_BACKEND!r}")


__all__ = [
    "Repository",
    "DuplicateEntryError",
    "InMemoryRepository",
    "SqlRepository",
    "build_repository",
]
