"""
Per‑event attendance statistics.

``position_statistics`` groups the attending players of an event by
their playing position; ``attendance_summary`` counts the response sets.
Both are computed on demand from an ``Event`` snapshot.
"""

from typing import Dict, NamedTuple

from ..schemas.event import Event
from .attendance_service import has_responded

NO_POSITION = "no position"


class PositionBucket(NamedTuple):
    count: int
    percent: int


def position_statistics(event: Event) -> Dict[str, PositionBucket]:
    """Attending players per position, largest bucket first.

    Players without a position are counted under ``NO_POSITION``.  Ties
    keep the order in which positions first appear.  An event nobody
    attends yields an empty mapping.
    """
    total = len(event.attending_players)
    if total == 0:
        return {}
    counts: Dict[str, int] = {}
    for player in event.attending_players:
        position = player.position or NO_POSITION
        counts[position] = counts.get(position, 0) + 1
    ordered = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return {
        position: PositionBucket(count, _percent(count, total))
        for position, count in ordered
    }


def attendance_summary(event: Event) -> Dict[str, int]:
    pending = sum(1 for p in event.invited_players if not has_responded(event, p.id))
    return {
        "invited": len(event.invited_players),
        "attending": len(event.attending_players),
        "declined": len(event.declined_players),
        "unsure": len(event.unsure_players),
        "guests": len(event.guest_players),
        "uninvited": len(event.uninvited_players),
        "pending": pending + len(event.guest_players),
    }


def _percent(count: int, total: int) -> int:
    # Half up, as shown in the event detail view (12.5 -> 13).
    return (count * 200 + total) // (2 * total)
