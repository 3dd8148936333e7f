"""Domain models for search requests and results.

Following the same split as the catalog models:
- Request-side value objects (filters) are frozen pydantic models, validated
  once per query.
- Result-side records are slotted frozen dataclasses because one is built per
  scored item on the hot path.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from launcher_search.domain.catalog import FieldTag, ItemKind, as_utc


class SearchFilters(BaseModel):
    """Conjunction of structural predicates over indexed items.

    Each populated attribute is one predicate; predicates are AND-composed.
    Set-valued predicates (kinds, categories, keywords) accept an item that
    matches any member of the set. ``None`` disables a predicate.
    """

    model_config = ConfigDict(frozen=True)

    kinds: frozenset[ItemKind] | None = None
    categories: frozenset[str] | None = None
    keywords: frozenset[str] | None = None
    enabled: bool | None = None
    favorite: bool | None = None
    updated_after: datetime | None = None
    updated_before: datetime | None = None

    @field_validator("updated_after", "updated_before")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    @model_validator(mode="after")
    def _check_range(self) -> SearchFilters:
        after, before = self.updated_after, self.updated_before
        if after is not None and before is not None and after > before:
            raise ValueError("updated_after must not be later than updated_before")
        return self

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in type(self).model_fields)


NO_FILTERS = SearchFilters()


@dataclass(frozen=True, slots=True)
class FieldMatch:
    """Score and matched character ranges for one field of one item.

    ``ranges`` index into ``text``, the stripped NFC value that was matched, so
    several alias or keyword fields of one item stay distinguishable.
    """

    tag: FieldTag
    score: float
    ranges: tuple[tuple[int, int], ...]
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.tag.value,
            "text": self.text,
            "score": self.score,
            "ranges": [list(span) for span in self.ranges],
        }


@dataclass(frozen=True, slots=True)
class MatchResult:
    """Ranked result for a single item. Transient, never persisted."""

    item_id: str
    total_score: float
    field_scores: tuple[FieldMatch, ...] = ()
    tie_break_length: int = 0

    def sort_key(self) -> tuple[float, int, str]:
        return (-self.total_score, self.tie_break_length, self.item_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "total_score": self.total_score,
            "matched_ranges_per_field": [match.to_dict() for match in self.field_scores],
        }


@dataclass(frozen=True, slots=True)
class OrderedResults:
    """Committed result list for one query generation.

    ``kind_counts`` and ``category_counts`` describe the whole matched set, so
    they stay accurate when ``results`` is truncated.
    """

    query: str
    generation: int
    index_version: int
    results: tuple[MatchResult, ...] = field(default_factory=tuple)
    kind_counts: dict[str, int] = field(default_factory=dict)
    category_counts: dict[str, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self):
        return iter(self.results)

    @property
    def item_ids(self) -> list[str]:
        return [result.item_id for result in self.results]

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "generation": self.generation,
            "index_version": self.index_version,
            "results": [result.to_dict() for result in self.results],
            "kind_counts": dict(self.kind_counts),
            "category_counts": dict(self.category_counts),
        }
