"""Domain layer: catalog and search value objects.

No infrastructure dependencies live here.
"""

from launcher_search.domain.catalog import (
    CatalogChangeEvent,
    CatalogEntry,
    CatalogSnapshot,
    ChangeKind,
    FieldTag,
    ItemKind,
)
from launcher_search.domain.search import NO_FILTERS, FieldMatch, MatchResult, OrderedResults, SearchFilters


__all__ = [
    "NO_FILTERS",
    "CatalogChangeEvent",
    "CatalogEntry",
    "CatalogSnapshot",
    "ChangeKind",
    "FieldMatch",
    "FieldTag",
    "ItemKind",
    "MatchResult",
    "OrderedResults",
    "SearchFilters",
]
