"""Concurrent lookup, disambiguation and enrichment of candidates."""

from place_extractor.resolution.cache import EnrichmentCache
from place_extractor.resolution.orchestrator import (
    ResolutionOrchestrator,
    SelectionError,
    derive_row_fields,
)

__all__ = [
    "EnrichmentCache",
    "ResolutionOrchestrator",
    "SelectionError",
    "derive_row_fields",
]
