"""Admission <-> transcript field mappings."""

from .exceptions import MappingEntryNotFoundError, MappingError
from .service import MappingService

__all__ = [
    "MappingService",
    "MappingError",
    "MappingEntryNotFoundError",
]
