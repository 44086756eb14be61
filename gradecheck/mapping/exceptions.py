"""Field mapping exceptions."""

from typing import Optional


class MappingError(Exception):
    """Raised when a mapping entry cannot be created or changed.

    Attributes:
        message: Human-readable detail
        side: "admission" or "transcript" when a column is already mapped
    """

    def __init__(self, message: str, side: Optional[str] = None) -> None:
        self.message = message
        self.side = side
        super().__init__(message)


class MappingEntryNotFoundError(MappingError):
    """Raised when an entry id does not exist."""

    pass
