"""Persistence layer built on SQLAlchemy.

Public API:
    # Database initialization and session management
    - init_database(database_url: str) -> None
    - get_session() -> ContextManager[Session]
    - close_database() -> None
    - get_engine() -> Engine

    # Repository classes
    - FileRepository: stored document metadata
    - AdmissionRepository: candidates, academic records, scores
    - TranscriptRepository: transcript students and semester results
    - MappingRepository: admission <-> transcript field mappings
    - MatchRepository: fuzzy matcher output
    - ComparisonRepository: per-field results and summaries

    # Exceptions
    - PersistenceError and its subclasses

Example usage:
    >>> from gradecheck.persistence import init_database, get_session, AdmissionRepository
    >>> init_database("sqlite:///./data/gradecheck.db")
    >>> with get_session() as session:
    ...     AdmissionRepository(session).count_candidates(1)
"""

from .database import close_database, get_engine, get_session, init_database
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
)
from .repositories import (
    AdmissionRepository,
    ComparisonRepository,
    FileRepository,
    MappingRepository,
    MatchRepository,
    TranscriptRepository,
)

__all__ = [
    # Database functions
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    # Repositories
    "FileRepository",
    "AdmissionRepository",
    "TranscriptRepository",
    "MappingRepository",
    "MatchRepository",
    "ComparisonRepository",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
]
