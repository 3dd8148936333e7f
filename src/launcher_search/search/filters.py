"""Structural filtering of the candidate set before scoring.

Indexed predicates (kind, category, keyword, pattern letters) are resolved
through the auxiliary maps and intersected smallest-first, so ineligible items
are never touched. Flag and date predicates are evaluated only on the
narrowed set.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable

from launcher_search.domain.search import SearchFilters
from launcher_search.search.index import IndexCorruptError, IndexedItem, IndexView
from launcher_search.search.normalizer import normalize


def _union(postings: Iterable[frozenset[str]]) -> frozenset[str]:
    result: frozenset[str] = frozenset()
    for posting in postings:
        result = result | posting
    return result


class FilterEngine:
    """Produces the id set eligible for scoring."""

    def filter(
        self,
        view: IndexView,
        filters: SearchFilters,
        *,
        letters: Iterable[str] = (),
        out: list[str] | None = None,
    ) -> list[str]:
        """Resolve ``filters`` against ``view``.

        Args:
            view: Index snapshot to read.
            filters: Conjunction of predicates; empty means the whole index.
            letters: Characters every candidate must contain (query pruning).
            out: Scratch list to fill; cleared first. A new list when omitted.

        Returns:
            ``out`` holding the eligible ids.

        Raises:
            IndexCorruptError: when an auxiliary map yields an id that the
                primary map does not contain.
        """
        if out is None:
            out = []
        else:
            out.clear()

        indexed: list[frozenset[str]] = []
        if filters.kinds is not None:
            indexed.append(_union(view.ids_for_kind(kind) for kind in filters.kinds))
        if filters.categories is not None:
            indexed.append(_union(view.ids_for_category(category) for category in filters.categories))
        if filters.keywords is not None:
            indexed.append(_union(view.ids_for_keyword(keyword) for keyword in filters.keywords))
        letter_ids = view.ids_with_letters(letters)
        if letter_ids is not None:
            indexed.append(letter_ids)

        candidates: Collection[str]
        if not indexed:
            candidates = view.items.keys()
        else:
            indexed.sort(key=len)
            narrowed = indexed[0]
            for posting in indexed[1:]:
                if not narrowed:
                    break
                narrowed = narrowed & posting
            candidates = narrowed

        items = view.items
        check_flags = self._has_item_predicates(filters)
        from_aux = bool(indexed)
        for item_id in candidates:
            item = items.get(item_id)
            if item is None:
                if from_aux:
                    raise IndexCorruptError("auxiliary", None, item_id)
                continue
            if check_flags and not self.accepts(item, filters):
                continue
            out.append(item_id)
        return out

    @staticmethod
    def _has_item_predicates(filters: SearchFilters) -> bool:
        return (
            filters.enabled is not None
            or filters.favorite is not None
            or filters.updated_after is not None
            or filters.updated_before is not None
        )

    @staticmethod
    def accepts(item: IndexedItem, filters: SearchFilters) -> bool:
        """Evaluate every predicate of ``filters`` directly against ``item``."""
        if filters.kinds is not None and item.kind not in filters.kinds:
            return False
        if filters.categories is not None:
            wanted = {normalize(category).strip() for category in filters.categories}
            if item.category not in wanted:
                return False
        if filters.keywords is not None:
            wanted = {normalize(keyword).strip() for keyword in filters.keywords}
            if not item.keywords & wanted:
                return False
        if filters.enabled is not None and item.enabled != filters.enabled:
            return False
        if filters.favorite is not None and item.favorite != filters.favorite:
            return False
        if filters.updated_after is not None or filters.updated_before is not None:
            if item.updated_at is None:
                return False
            if filters.updated_after is not None and item.updated_at < filters.updated_after:
                return False
            if filters.updated_before is not None and item.updated_at > filters.updated_before:
                return False
        return True
