"""Multi-factor ranking of indexed items.

``total = sum(field_score * field_weight) + usage + recency + favorite``

- usage: ``log1p(usage_count) * usage_weight`` (diminishing returns)
- recency: ``recency_weight * 0.5 ** (age / half_life)``; 0 when never used
- favorite: fixed additive boost for pinned items

Final order is descending total score, then the shorter text of the field
that contributed most, then the item id.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
import math

from launcher_search.config import RankingWeights
from launcher_search.domain.search import FieldMatch, MatchResult
from launcher_search.search.fuzzy import FuzzyMatcher, PreparedPattern, prepare_pattern
from launcher_search.search.index import IndexedItem


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RankingEngine:
    """Combines per-field fuzzy scores with extrinsic signals."""

    def __init__(
        self,
        weights: RankingWeights | None = None,
        matcher: FuzzyMatcher | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.weights = weights or RankingWeights()
        self.matcher = matcher or FuzzyMatcher()
        self.clock = clock

    def usage_boost(self, item: IndexedItem) -> float:
        return math.log1p(item.usage_count) * self.weights.usage_weight

    def recency_boost(self, item: IndexedItem, now: datetime) -> float:
        if item.last_used_at is None:
            return 0.0
        age_hours = (now - item.last_used_at).total_seconds() / 3600.0
        # Clock skew: a timestamp from the future counts as "just used"
        age_hours = max(age_hours, 0.0)
        return self.weights.recency_weight * 0.5 ** (age_hours / self.weights.recency_half_life_hours)

    def favorite_boost(self, item: IndexedItem) -> float:
        return self.weights.favorite_boost if item.favorite else 0.0

    def extrinsic_boost(self, item: IndexedItem, now: datetime | None = None) -> float:
        now = now or self.clock()
        return self.usage_boost(item) + self.recency_boost(item, now) + self.favorite_boost(item)

    def rank(
        self,
        item: IndexedItem,
        pattern: PreparedPattern | str,
        matcher: FuzzyMatcher | None = None,
        *,
        now: datetime | None = None,
    ) -> MatchResult | None:
        """Score ``item`` against ``pattern``; ``None`` when no field matches."""
        matcher = matcher or self.matcher
        if isinstance(pattern, str):
            pattern = prepare_pattern(pattern)
        if not pattern:
            return self.rank_unfiltered(item, now=now)

        field_scores: list[FieldMatch] = []
        text_score = 0.0
        best_contribution = -math.inf
        tie_break_length = 0
        for search_field in item.fields:
            result = matcher.match_prepared(pattern, search_field.text)
            if result is None:
                continue
            contribution = result.score * self.weights.weight_for(search_field.tag)
            text_score += contribution
            if contribution > best_contribution:
                best_contribution = contribution
                tie_break_length = len(search_field.text)
            field_scores.append(FieldMatch(search_field.tag, result.score, result.ranges, search_field.text))

        if not field_scores:
            return None
        return MatchResult(
            item_id=item.id,
            total_score=text_score + self.extrinsic_boost(item, now),
            field_scores=tuple(field_scores),
            tie_break_length=tie_break_length,
        )

    def rank_unfiltered(self, item: IndexedItem, *, now: datetime | None = None) -> MatchResult:
        """Score ``item`` for the empty query: extrinsic signals only."""
        return MatchResult(
            item_id=item.id,
            total_score=self.extrinsic_boost(item, now),
            tie_break_length=len(item.name),
        )

    @staticmethod
    def order(results: list[MatchResult]) -> list[MatchResult]:
        """Sort ``results`` in place into final ranking order."""
        results.sort(key=MatchResult.sort_key)
        return results
