"""Normalization and field layout for searchable item text.

The same normalization (NFC, then case folding) is applied to indexed text and
to query text so both sides compare equal. Matching is character-level, so
fields are never split into words.
"""

from __future__ import annotations

from dataclasses import dataclass
import unicodedata

from launcher_search.domain.catalog import CatalogEntry, FieldTag


@dataclass(frozen=True, slots=True)
class SearchField:
    """One searchable field of an item.

    ``text`` keeps the original casing (NFC) because CamelCase detection reads
    it; ``normalized`` is the case-folded form used by auxiliary maps.
    """

    tag: FieldTag
    text: str
    normalized: str


def canonical(text: str) -> str:
    """Return ``text`` in Unicode NFC without changing its case."""
    return unicodedata.normalize("NFC", text)


def normalize(text: str) -> str:
    """Return the case-insensitive comparison form of ``text``."""
    return canonical(text).casefold()


def letters(text: str) -> frozenset[str]:
    """Return the set of non-whitespace characters of the normalized text."""
    return frozenset(ch for ch in normalize(text) if not ch.isspace())


def build_fields(entry: CatalogEntry) -> tuple[SearchField, ...]:
    """Lay out the searchable fields of a catalog entry in tag order.

    List-valued attributes (aliases, keywords) contribute one field per value.
    Blank values are skipped.
    """

    raw: list[tuple[FieldTag, str | None]] = [(FieldTag.NAME, entry.name)]
    raw.extend((FieldTag.ALIAS, alias) for alias in entry.aliases)
    raw.extend((FieldTag.KEYWORD, keyword) for keyword in entry.keywords)
    raw.append((FieldTag.CATEGORY, entry.category))
    raw.append((FieldTag.DESCRIPTION, entry.description))
    raw.append((FieldTag.AUTHOR, entry.author))

    fields: list[SearchField] = []
    for tag, value in raw:
        if not value or not value.strip():
            continue
        text = canonical(value.strip())
        fields.append(SearchField(tag=tag, text=text, normalized=text.casefold()))
    return tuple(fields)
