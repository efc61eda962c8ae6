"""Data models for image records and sync state.

ImageRecord field names describe their role (primary/secondary channel);
to_dict() emits the wire names the read API has always served
(url, url_trixie, tag, tag_trixie, ...).
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

__all__ = ["ImageRecord", "SyncState"]


@dataclass(frozen=True)
class ImageRecord:
    """One mirrored image version for one repository.

    Attributes:
        name: Repository identifier
        primary_url: Pull reference for the primary channel
        primary_tag: Tag used to build primary_url
        secondary_url: Pull reference for the secondary channel, "" when the
            channel has no published tag
        secondary_tag: Tag used to build secondary_url
        pinned: True when primary_tag is a pinned build tag
        stable: Stability flag used by the recommendation resolver
        created_at: Creation time
        modified_at: Last modification time
        release_notes: Free-form notes shown to API consumers
        id: Store-assigned key, None until persisted
    """

    name: str
    primary_url: str
    primary_tag: str
    secondary_url: str
    secondary_tag: str
    pinned: bool
    stable: bool
    created_at: datetime
    modified_at: datetime
    release_notes: str = ""
    id: int | None = None

    @property
    def dedup_key(self) -> tuple[str, str, str]:
        return (self.name, self.primary_tag, self.secondary_tag)

    @property
    def has_secondary(self) -> bool:
        return self.secondary_url != ""

    def with_id(self, record_id: int) -> "ImageRecord":
        return replace(self, id=record_id)

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the read API's wire field names."""
        return {
            "id": self.id,
            "name": self.name,
            "url": self.primary_url,
            "url_trixie": self.secondary_url,
            "tag": self.primary_tag,
            "tag_trixie": self.secondary_tag,
            "release_notes": self.release_notes,
            "stable": self.stable,
            "is_pinned_version": self.pinned,
            "created_date": self.created_at.isoformat(),
            "modified_date": self.modified_at.isoformat(),
        }


@dataclass(frozen=True)
class SyncState:
    """Time of the last sync cycle that passed the freshness gate."""

    time: datetime
    id: int | None = None
