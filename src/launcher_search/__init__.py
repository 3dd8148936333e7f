"""Typeahead search engine for a launcher catalog of extensions, commands and categories."""

from launcher_search.config import SearchSettings, get_settings
from launcher_search.domain import (
    NO_FILTERS,
    CatalogChangeEvent,
    CatalogEntry,
    CatalogSnapshot,
    ChangeKind,
    ItemKind,
    OrderedResults,
    SearchFilters,
)
from launcher_search.service_layer import SearchService


__version__ = "0.1.0"

__all__ = [
    "NO_FILTERS",
    "CatalogChangeEvent",
    "CatalogEntry",
    "CatalogSnapshot",
    "ChangeKind",
    "ItemKind",
    "OrderedResults",
    "SearchFilters",
    "SearchService",
    "SearchSettings",
    "get_settings",
]
