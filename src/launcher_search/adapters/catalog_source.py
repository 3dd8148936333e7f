"""Catalog registry adapters and the snapshot file schema.

The catalog registry is an external collaborator; the search engine only
pulls a :class:`CatalogSnapshot` from it. Snapshots persisted to disk use an
explicit, versioned JSON layout::

    {"schema_version": 1, "items": [{"id": ..., "kind": ..., ...}, ...]}
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
import logging
from pathlib import Path

import orjson
from pydantic import ValidationError

from launcher_search.domain.catalog import CatalogEntry, CatalogSnapshot


logger = logging.getLogger(__name__)

SNAPSHOT_SCHEMA_VERSION = 1


class CatalogFormatError(ValueError):
    """Raised when a snapshot payload cannot be decoded."""


class AbstractCatalogSource(ABC):
    """Abstract source of catalog snapshots."""

    @abstractmethod
    def snapshot(self) -> CatalogSnapshot:
        """Return the current catalog contents."""
        raise NotImplementedError


class InMemoryCatalogSource(AbstractCatalogSource):
    """Catalog held in memory, e.g. handed over by an embedding application."""

    def __init__(self, entries: Iterable[CatalogEntry] = ()):
        self._snapshot = CatalogSnapshot(items=tuple(entries))

    def snapshot(self) -> CatalogSnapshot:
        return self._snapshot

    def replace(self, entries: Iterable[CatalogEntry]) -> None:
        self._snapshot = CatalogSnapshot(items=tuple(entries))


class FileCatalogSource(AbstractCatalogSource):
    """Catalog read from a snapshot file on every call."""

    def __init__(self, path: Path):
        self.path = path

    def snapshot(self) -> CatalogSnapshot:
        return load_snapshot(self.path)


def encode_snapshot(snapshot: CatalogSnapshot) -> bytes:
    payload = {
        "schema_version": SNAPSHOT_SCHEMA_VERSION,
        "items": [entry.model_dump(mode="json") for entry in snapshot.items],
    }
    return orjson.dumps(payload, option=orjson.OPT_INDENT_2)


def decode_snapshot(data: bytes | str) -> CatalogSnapshot:
    """Decode a snapshot payload.

    Raises:
        CatalogFormatError: malformed JSON, unsupported schema version or
            invalid entries.
    """
    try:
        payload = orjson.loads(data)
    except orjson.JSONDecodeError as exc:
        raise CatalogFormatError(f"Snapshot is not valid JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise CatalogFormatError("Snapshot payload must be a JSON object")
    version = payload.get("schema_version")
    if version != SNAPSHOT_SCHEMA_VERSION:
        raise CatalogFormatError(f"Unsupported snapshot schema version: {version!r}")
    items = payload.get("items", [])
    if not isinstance(items, list):
        raise CatalogFormatError("Snapshot 'items' must be a list")

    try:
        entries = tuple(CatalogEntry.model_validate(item) for item in items)
    except ValidationError as exc:
        raise CatalogFormatError(f"Invalid catalog entry: {exc}") from exc
    return CatalogSnapshot(items=entries)


def load_snapshot(path: Path) -> CatalogSnapshot:
    """Read a snapshot file written by :func:`dump_snapshot`."""
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise CatalogFormatError(f"Cannot read snapshot {path}: {exc}") from exc
    snapshot = decode_snapshot(data)
    logger.info("Loaded catalog snapshot %s with %d items", path, len(snapshot.items))
    return snapshot


def dump_snapshot(snapshot: CatalogSnapshot, path: Path) -> None:
    """Write ``snapshot`` atomically (temp file + rename)."""
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_bytes(encode_snapshot(snapshot))
    tmp_path.replace(path)
