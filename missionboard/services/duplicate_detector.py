"""Duplicate mission detection."""

from collections.abc import Iterable
from datetime import UTC, datetime

from missionboard.domain.mission import Mission
from missionboard.domain.task import TaskKind


def _to_minute(moment: datetime) -> datetime:
    """Truncate to the minute; aware timestamps are compared as UTC instants."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(UTC)
    return moment.replace(second=0, microsecond=0)


def is_duplicate(
    *,
    home_id: str,
    conciergerie_name: str,
    tasks: Iterable[TaskKind],
    start_date_time: datetime,
    end_date_time: datetime,
    other: Mission,
) -> bool:
    """True when `other` matches the given posting on home, owner, task set and minute-level window."""
    return (
        other.home_id == home_id
        and other.conciergerie_name == conciergerie_name
        and set(other.tasks) == set(tasks)
        and _to_minute(other.start_date_time) == _to_minute(start_date_time)
        and _to_minute(other.end_date_time) == _to_minute(end_date_time)
    )


def mission_exists(candidate: Mission, missions: Iterable[Mission], exclude_id: str | None = None) -> bool:
    """Check whether an equivalent mission is already posted.

    Args:
        candidate: Mission being created or edited
        missions: Existing missions to compare against
        exclude_id: Mission ID to skip, typically the mission being edited

    Returns:
        True if another mission has the same home, conciergerie, task set and start/end minute
    """
    return any(
        is_duplicate(
            home_id=candidate.home_id,
            conciergerie_name=candidate.conciergerie_name,
            tasks=candidate.tasks,
            start_date_time=candidate.start_date_time,
            end_date_time=candidate.end_date_time,
            other=other,
        )
        for other in missions
        if exclude_id is None or other.id != exclude_id
    )
