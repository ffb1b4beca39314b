"""Points and quota calculator.

A mission's points are spread evenly over the calendar days it spans, capped at the
daily limit. A worker's load on a day is the sum of the shares of their active missions
covering that day; accepting a mission is refused if it would push any day over the limit.
"""

import logging
from collections.abc import Iterable, Iterator
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from missionboard.core.config import Constants, settings
from missionboard.domain.mission import Mission, MissionPoints, MissionStatus, QuotaDay
from missionboard.services import task_catalog


logger = logging.getLogger(__name__)


def local_day(moment: datetime) -> date:
    """Calendar day of a timestamp in the configured time zone.

    Naive timestamps are taken as already local.
    """
    if moment.tzinfo is None:
        return moment.date()
    return moment.astimezone(ZoneInfo(settings.timezone)).date()


def today() -> date:
    """Current calendar day in the configured time zone."""
    return datetime.now(ZoneInfo(settings.timezone)).date()


def _day_span(first: date, last: date) -> int:
    """Inclusive number of days between two dates, at least 1."""
    return max(abs((last - first).days) + 1, 1)


def total_points(mission: Mission) -> int:
    """Sum of task points of a mission."""
    return sum(task_catalog.points_of(kind) for kind in set(mission.tasks))


def mission_points(mission: Mission) -> MissionPoints:
    """Total points of a mission and its per-day share over its whole span."""
    total = total_points(mission)
    span_days = _day_span(local_day(mission.start_date_time), local_day(mission.end_date_time))
    per_day = min(total / span_days, settings.daily_points_limit)
    return MissionPoints(total=total, per_day=per_day)


def remaining_points_per_day(mission: Mission, *, current_day: date | None = None) -> float:
    """Per-day share of a mission counted from `current_day` to its last day.

    Returns 0 once the mission's last day is behind `current_day`.
    """
    current_day = current_day or today()
    first = max(local_day(mission.start_date_time), current_day)
    last = local_day(mission.end_date_time)
    if first > last:
        return 0.0
    return min(total_points(mission) / _day_span(first, last), settings.daily_points_limit)


def mission_days(mission: Mission) -> Iterator[date]:
    """Every calendar day covered by a mission, start and end included."""
    day = local_day(mission.start_date_time)
    last = local_day(mission.end_date_time)
    while day <= last:
        yield day
        day += timedelta(days=1)


def _covers(mission: Mission, day: date) -> bool:
    return local_day(mission.start_date_time) <= day <= local_day(mission.end_date_time)


def employee_load_for_day(
    employee_id: str,
    day: date,
    missions: Iterable[Mission],
    *,
    exclude_mission_id: str | None = None,
    current_day: date | None = None,
) -> float:
    """Points a worker carries on `day` across their non-completed missions.

    Today and future days use the remaining-span share, so a long mission's daily load
    shrinks as it progresses. On a past day that is a mission's last day, the mission's
    whole total is attributed to it; other past days use the share counted from that day.
    """
    current_day = current_day or today()
    load = 0.0
    for mission in missions:
        if mission.employee_id != employee_id:
            continue
        if mission.status == MissionStatus.COMPLETED:
            continue
        if exclude_mission_id is not None and mission.id == exclude_mission_id:
            continue
        if not _covers(mission, day):
            continue

        if day >= current_day:
            load += remaining_points_per_day(mission, current_day=day)
        elif day == local_day(mission.end_date_time):
            load += total_points(mission)
        else:
            load += remaining_points_per_day(mission, current_day=day)
    return load


def find_quota_violations(
    employee_id: str,
    candidate: Mission,
    missions: Iterable[Mission],
    *,
    current_day: date | None = None,
) -> list[QuotaDay]:
    """Days on which accepting `candidate` would push the worker over the daily limit.

    An empty list means the worker may accept.
    """
    snapshot = list(missions)
    limit = settings.daily_points_limit
    per_day = mission_points(candidate).per_day

    violations = []
    for day in mission_days(candidate):
        load = employee_load_for_day(
            employee_id,
            day,
            snapshot,
            exclude_mission_id=candidate.id,
            current_day=current_day,
        )
        if load + per_day > limit + Constants.POINTS_EPSILON:
            violations.append(QuotaDay(day=day, current_points=load, mission_points=per_day, limit=limit))

    if violations:
        logger.info(
            "Quota exceeded",
            extra={
                "employee_id": employee_id,
                "mission_id": candidate.id,
                "days": [violation.day.isoformat() for violation in violations],
            },
        )
    return violations
