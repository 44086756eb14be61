"""Ordered registry of transcript normalizers."""

from typing import Iterable, List, Optional

from gradecheck.config.models import TranscriptDialect
from gradecheck.logging import get_logger

from .base import BaseTranscriptNormalizer, XmlContent
from .bordeaux import BordeauxTranscriptNormalizer

logger = get_logger(__name__, component="normalizer")

# Registration order of the shipped dialects
DEFAULT_NORMALIZERS = (BordeauxTranscriptNormalizer,)


class NormalizerRegistry:
    """Holds normalizers in registration order.

    The first registered normalizer that recognises a document handles it;
    later ones are never consulted.
    """

    def __init__(self) -> None:
        self._normalizers: List[BaseTranscriptNormalizer] = []

    def register(self, normalizer: BaseTranscriptNormalizer) -> None:
        """Append a normalizer after those already registered."""
        self._normalizers.append(normalizer)
        logger.debug(
            "Registered transcript normalizer",
            extra={"event": "normalizer.registry.registered", "dialect": normalizer.dialect.value},
        )

    def plugins(self) -> List[BaseTranscriptNormalizer]:
        return list(self._normalizers)

    def dialects(self) -> List[TranscriptDialect]:
        return [normalizer.dialect for normalizer in self._normalizers]

    def find_suitable(self, content: XmlContent) -> Optional[BaseTranscriptNormalizer]:
        """Return the first normalizer that recognises the document, or None."""
        for normalizer in self._normalizers:
            if normalizer.can_normalize(content):
                return normalizer
        return None

    def __len__(self) -> int:
        return len(self._normalizers)


def build_default_registry(
    enabled_dialects: Optional[Iterable[str]] = None,
) -> NormalizerRegistry:
    """Create a registry holding the shipped normalizers.

    Args:
        enabled_dialects: Dialects to register; None registers all of them.
            Order follows the built-in order, not this argument.

    Returns:
        Populated NormalizerRegistry
    """
    enabled = None
    if enabled_dialects is not None:
        enabled = {TranscriptDialect(dialect) for dialect in enabled_dialects}

    registry = NormalizerRegistry()
    for normalizer_class in DEFAULT_NORMALIZERS:
        if enabled is None or normalizer_class.DIALECT in enabled:
            registry.register(normalizer_class())
    return registry
