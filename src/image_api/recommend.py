"""Recommendation resolver: one best image record per name.

Stable records beat unstable ones; between records of equal stability the
more recently modified one wins. Ties keep the earlier record.
"""

from collections.abc import Iterable

from image_api.models import ImageRecord

__all__ = ["is_preferred", "recommend", "recommend_secondary"]


def is_preferred(candidate: ImageRecord, best: ImageRecord) -> bool:
    """True when ``candidate`` should replace ``best``."""
    if candidate.stable != best.stable:
        return candidate.stable
    return candidate.modified_at > best.modified_at


def recommend(records: Iterable[ImageRecord]) -> list[ImageRecord]:
    """Pick the preferred record for each distinct name.

    Args:
        records: Records in any order, already filtered by the caller

    Returns:
        One record per name, names in order of first appearance
    """
    best: dict[str, ImageRecord] = {}
    for record in records:
        current = best.get(record.name)
        if current is None or is_preferred(record, current):
            best[record.name] = record
    return list(best.values())


def recommend_secondary(records: Iterable[ImageRecord]) -> list[ImageRecord]:
    """Like recommend(), restricted to records with a secondary channel URL."""
    return recommend(r for r in records if r.secondary_url != "")
