"""Copy-on-write search index over the catalog.

The index keeps one :class:`IndexedItem` per catalog entry plus denormalized
auxiliary maps used to prune candidates before scoring:

- ``by_keyword``: normalized keyword -> ids
- ``by_category``: normalized category -> ids
- ``by_kind``: item kind -> ids
- ``by_letter``: character -> ids whose fields contain it

Readers take an :class:`IndexView` with :meth:`SearchIndex.snapshot` and never
lock. Writers are serialized; each mutation copies the affected maps, replaces
the affected entries and publishes a new view with a higher version, so views
taken earlier keep observing the old state until dropped.

Cost: the auxiliary postings touched by a mutation are updated in O(f) for an
item with f field keys, but every ``upsert``/``remove`` also makes a shallow
copy of the primary map and the four auxiliary maps, which is O(n) pointer
copies. Catalog mutations are rare next to queries, which never lock.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from datetime import datetime
import logging
import threading
from types import MappingProxyType

from launcher_search.domain.catalog import CatalogEntry, ItemKind
from launcher_search.search.normalizer import SearchField, build_fields, letters, normalize


logger = logging.getLogger(__name__)


class IndexCorruptError(RuntimeError):
    """Raised when an auxiliary map references an id missing from the primary map."""

    def __init__(self, map_name: str, key: object, item_id: str) -> None:
        super().__init__(f"{map_name}[{key!r}] references unknown item {item_id!r}")
        self.map_name = map_name
        self.key = key
        self.item_id = item_id


@dataclass(frozen=True, slots=True)
class IndexedItem:
    """Searchable record for one catalog entry. Replaced, never mutated."""

    id: str
    kind: ItemKind
    fields: tuple[SearchField, ...]
    keywords: frozenset[str]
    category: str | None
    letters: frozenset[str]
    enabled: bool = True
    favorite: bool = False
    usage_count: int = 0
    last_used_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_entry(cls, entry: CatalogEntry) -> IndexedItem:
        fields = build_fields(entry)
        item_letters: set[str] = set()
        for search_field in fields:
            item_letters.update(letters(search_field.normalized))
        return cls(
            id=entry.id,
            kind=entry.kind,
            fields=fields,
            keywords=frozenset(normalize(keyword).strip() for keyword in entry.keywords if keyword.strip()),
            category=normalize(entry.category).strip() if entry.category and entry.category.strip() else None,
            letters=frozenset(item_letters),
            enabled=entry.enabled,
            favorite=entry.favorite,
            usage_count=entry.usage_count,
            last_used_at=entry.last_used_at,
            updated_at=entry.updated_at,
        )

    @property
    def name(self) -> str:
        return self.fields[0].text if self.fields else ""


_EMPTY: frozenset[str] = frozenset()


@dataclass(frozen=True)
class IndexView:
    """Immutable, versioned read handle on the index."""

    version: int
    items: Mapping[str, IndexedItem]
    by_keyword: Mapping[str, frozenset[str]]
    by_category: Mapping[str, frozenset[str]]
    by_kind: Mapping[ItemKind, frozenset[str]]
    by_letter: Mapping[str, frozenset[str]]

    @classmethod
    def empty(cls) -> IndexView:
        return cls._freeze(0, {}, {}, {}, {}, {})

    @classmethod
    def _freeze(cls, version, items, by_keyword, by_category, by_kind, by_letter) -> IndexView:
        return cls(
            version=version,
            items=MappingProxyType(items),
            by_keyword=MappingProxyType(by_keyword),
            by_category=MappingProxyType(by_category),
            by_kind=MappingProxyType(by_kind),
            by_letter=MappingProxyType(by_letter),
        )

    def __len__(self) -> int:
        return len(self.items)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self.items

    def __iter__(self) -> Iterator[IndexedItem]:
        return iter(self.items.values())

    def get(self, item_id: str) -> IndexedItem | None:
        return self.items.get(item_id)

    def ids_for_keyword(self, keyword: str) -> frozenset[str]:
        return self.by_keyword.get(normalize(keyword).strip(), _EMPTY)

    def ids_for_category(self, category: str) -> frozenset[str]:
        return self.by_category.get(normalize(category).strip(), _EMPTY)

    def ids_for_kind(self, kind: ItemKind) -> frozenset[str]:
        return self.by_kind.get(kind, _EMPTY)

    def ids_with_letters(self, chars: Iterable[str]) -> frozenset[str] | None:
        """Ids whose fields contain every character in ``chars``.

        Returns ``None`` when ``chars`` is empty (no pruning possible).
        """
        result: frozenset[str] | None = None
        # Rarest letters first keeps the intersections small
        for posting in sorted((self.by_letter.get(ch, _EMPTY) for ch in set(chars)), key=len):
            result = posting if result is None else result & posting
            if not result:
                return _EMPTY
        return result

    def verify(self) -> None:
        """Raise :class:`IndexCorruptError` on the first dangling reference."""
        maps: tuple[tuple[str, Mapping[Hashable, frozenset[str]]], ...] = (
            ("by_keyword", self.by_keyword),
            ("by_category", self.by_category),
            ("by_kind", self.by_kind),
            ("by_letter", self.by_letter),
        )
        for map_name, mapping in maps:
            for key, ids in mapping.items():
                for item_id in ids:
                    if item_id not in self.items:
                        raise IndexCorruptError(map_name, key, item_id)


def _add(mapping: dict, key: Hashable, item_id: str) -> None:
    mapping[key] = mapping.get(key, _EMPTY) | {item_id}


def _discard(mapping: dict, key: Hashable, item_id: str) -> None:
    remaining = mapping.get(key, _EMPTY) - {item_id}
    if remaining:
        mapping[key] = remaining
    else:
        mapping.pop(key, None)


def _aux_keys(item: IndexedItem) -> tuple[set[str], set[str], set[ItemKind], frozenset[str]]:
    categories = {item.category} if item.category else set()
    return set(item.keywords), categories, {item.kind}, item.letters


class SearchIndex:
    """Owner of the current :class:`IndexView`; the only writer."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._view = IndexView.empty()

    @classmethod
    def build(cls, entries: Iterable[CatalogEntry]) -> SearchIndex:
        index = cls()
        index.rebuild(entries)
        return index

    @property
    def version(self) -> int:
        return self._view.version

    def __len__(self) -> int:
        return len(self._view)

    def snapshot(self) -> IndexView:
        """Return the current view; later mutations never affect it."""
        return self._view

    def rebuild(self, entries: Iterable[CatalogEntry]) -> IndexView:
        """Replace the whole index atomically.

        Duplicate ids are not an error: the last entry wins and a warning is
        logged.
        """
        items: dict[str, IndexedItem] = {}
        for entry in entries:
            if entry.id in items:
                logger.warning("Duplicate catalog id %r during build; last write wins", entry.id)
            items[entry.id] = IndexedItem.from_entry(entry)

        by_keyword: dict[str, set[str]] = {}
        by_category: dict[str, set[str]] = {}
        by_kind: dict[ItemKind, set[str]] = {}
        by_letter: dict[str, set[str]] = {}
        for item in items.values():
            keywords, categories, kinds, item_letters = _aux_keys(item)
            for keyword in keywords:
                by_keyword.setdefault(keyword, set()).add(item.id)
            for category in categories:
                by_category.setdefault(category, set()).add(item.id)
            for kind in kinds:
                by_kind.setdefault(kind, set()).add(item.id)
            for ch in item_letters:
                by_letter.setdefault(ch, set()).add(item.id)

        def frozen(mapping: dict) -> dict:
            return {key: frozenset(ids) for key, ids in mapping.items()}

        with self._lock:
            view = IndexView._freeze(
                self._view.version + 1,
                items,
                frozen(by_keyword),
                frozen(by_category),
                frozen(by_kind),
                frozen(by_letter),
            )
            self._view = view
        logger.info("Search index built with %d items (version %d)", len(items), view.version)
        return view

    def upsert(self, entry: CatalogEntry, *, expect_new: bool = False) -> IndexedItem:
        """Insert or replace the item for ``entry.id``.

        Auxiliary maps are updated by diffing the old and new key sets.
        With ``expect_new`` an existing id is reported as a duplicate.
        """
        new_item = IndexedItem.from_entry(entry)
        with self._lock:
            current = self._view
            old_item = current.items.get(entry.id)
            if old_item is not None and expect_new:
                logger.warning("Duplicate catalog id %r on install; last write wins", entry.id)

            items = dict(current.items)
            items[entry.id] = new_item
            maps = [dict(current.by_keyword), dict(current.by_category), dict(current.by_kind), dict(current.by_letter)]
            old_keys = _aux_keys(old_item) if old_item is not None else (set(), set(), set(), _EMPTY)
            new_keys = _aux_keys(new_item)
            for mapping, old, new in zip(maps, old_keys, new_keys, strict=True):
                for key in old - new:
                    _discard(mapping, key, entry.id)
                for key in new - old:
                    _add(mapping, key, entry.id)

            self._view = IndexView._freeze(current.version + 1, items, *maps)
        return new_item

    def remove(self, item_id: str) -> bool:
        """Remove ``item_id`` from the primary and every auxiliary map."""
        with self._lock:
            current = self._view
            old_item = current.items.get(item_id)
            if old_item is None:
                return False
            items = dict(current.items)
            del items[item_id]
            maps = [dict(current.by_keyword), dict(current.by_category), dict(current.by_kind), dict(current.by_letter)]
            for mapping, keys in zip(maps, _aux_keys(old_item), strict=True):
                for key in keys:
                    _discard(mapping, key, item_id)
            self._view = IndexView._freeze(current.version + 1, items, *maps)
        return True
