"""Domain models for the catalog the search engine indexes.

The catalog itself (install/update/remove lifecycle) belongs to an external
registry. These value objects describe what the registry hands to the search
engine: a full snapshot at startup and change events afterwards.
"""

from datetime import datetime, timezone
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def as_utc(value: datetime | None) -> datetime | None:
    """Read a timezone-less timestamp as UTC; aware values pass through."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ItemKind(StrEnum):
    """Kind tag of a searchable entity."""

    EXTENSION = "extension"
    COMMAND = "command"
    CATEGORY = "category"


class FieldTag(StrEnum):
    """Searchable attribute of an item.

    Declaration order is the order fields are laid out on an indexed item.
    """

    NAME = "name"
    ALIAS = "alias"
    KEYWORD = "keyword"
    CATEGORY = "category"
    DESCRIPTION = "description"
    AUTHOR = "author"


class CatalogEntry(BaseModel):
    """Value object for one extension, command or category in the catalog.

    Extrinsic signals (usage, recency, favorite) are fed by the usage-tracking
    collaborator and arrive through the same entry on every upsert.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    kind: ItemKind
    name: str
    description: str = ""
    keywords: tuple[str, ...] = ()
    aliases: tuple[str, ...] = ()
    category: str | None = None
    author: str | None = None
    enabled: bool = True
    favorite: bool = False
    usage_count: int = Field(default=0, ge=0)
    last_used_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("last_used_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class CatalogSnapshot(BaseModel):
    """Read-only, versioned view of the whole catalog."""

    model_config = ConfigDict(frozen=True)

    items: tuple[CatalogEntry, ...] = ()


class ChangeKind(StrEnum):
    INSTALLED = "installed"
    UPDATED = "updated"
    REMOVED = "removed"


class CatalogChangeEvent(BaseModel):
    """Push notification for a single catalog mutation."""

    model_config = ConfigDict(frozen=True)

    change: ChangeKind
    entry_id: str = Field(min_length=1)
    new_entry: CatalogEntry | None = None

    @model_validator(mode="after")
    def _check_entry(self) -> "CatalogChangeEvent":
        if self.change is ChangeKind.REMOVED:
            return self
        if self.new_entry is None:
            raise ValueError(f"{self.change.value} event for {self.entry_id!r} requires new_entry")
        if self.new_entry.id != self.entry_id:
            raise ValueError(f"new_entry id {self.new_entry.id!r} does not match entry_id {self.entry_id!r}")
        return self
