"""Mission read side: lookups, worker visibility and late-mission alerts."""

import logging
from collections.abc import Iterable
from datetime import UTC, datetime

from pydantic import ValidationError

from missionboard.core import db_client
from missionboard.core.logging import span
from missionboard.domain.mission import Mission, MissionStatus
from missionboard.domain.notification import LateCompletionNotification
from missionboard.models.service_models import LateMissionReport
from missionboard.services import notification_service


logger = logging.getLogger(__name__)

COLLECTION = "missions"


def as_utc(moment: datetime) -> datetime:
    """Treat naive timestamps as UTC instants."""
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=UTC)


async def get_mission(mission_id: str) -> Mission:
    """Fetch a mission by ID, raising KeyError if not found."""
    record = await db_client.get_record(collection=COLLECTION, record_id=mission_id)
    return Mission.model_validate(record)


async def list_missions(
    *,
    conciergerie_name: str | None = None,
    employee_id: str | None = None,
    home_id: str | None = None,
) -> list[Mission]:
    """List missions, optionally narrowed by owner, assigned worker or home, ordered by start."""
    filters = []
    if conciergerie_name is not None:
        filters.append(f'conciergerie_name = "{db_client.sanitize_param(conciergerie_name)}"')
    if employee_id is not None:
        filters.append(f'employee_id = "{db_client.sanitize_param(employee_id)}"')
    if home_id is not None:
        filters.append(f'home_id = "{db_client.sanitize_param(home_id)}"')

    records = await db_client.list_all_records(
        collection=COLLECTION,
        filter_query=" && ".join(filters),
        sort="+start_date_time",
    )

    missions = []
    for record in records:
        try:
            missions.append(Mission.model_validate(record))
        except ValidationError as e:
            logger.error("Skipping unreadable mission", extra={"mission_id": record.get("id"), "error": str(e)})
    return missions


def is_visible_to(mission: Mission, employee_id: str) -> bool:
    """A worker sees their own missions and unassigned ones whose allow-list is empty or names them."""
    if mission.employee_id is not None:
        return mission.employee_id == employee_id
    return not mission.allowed_employees or employee_id in mission.allowed_employees


async def visible_missions_for_employee(
    employee_id: str,
    missions: Iterable[Mission] | None = None,
) -> list[Mission]:
    """Missions a worker can see."""
    if missions is None:
        missions = await list_missions()
    return [mission for mission in missions if is_visible_to(mission, employee_id)]


def is_late(mission: Mission, now: datetime) -> bool:
    """Assigned, not completed, and past its end."""
    return (
        mission.employee_id is not None
        and mission.status != MissionStatus.COMPLETED
        and as_utc(mission.end_date_time) < as_utc(now)
    )


async def get_late_missions(*, now: datetime | None = None, conciergerie_name: str | None = None) -> list[Mission]:
    now = now or datetime.now(UTC)
    missions = await list_missions(conciergerie_name=conciergerie_name)
    return [mission for mission in missions if is_late(mission, now)]


async def notify_late_missions(*, now: datetime | None = None) -> LateMissionReport:
    """Email each owning conciergerie once about every late mission."""
    # Imported here: these services build on mission_service
    from missionboard.services import conciergerie_service, employee_service, home_service  # noqa: PLC0415

    with span("mission_service.notify_late_missions"):
        report = LateMissionReport()
        for mission in await get_late_missions(now=now):
            report.late += 1
            if mission.late_notified or mission.employee_id is None:
                report.skipped += 1
                continue

            try:
                home = await home_service.get_home(mission.home_id)
                employee = await employee_service.get_employee(mission.employee_id)
                conciergerie = await conciergerie_service.get_conciergerie_by_name(mission.conciergerie_name)
            except KeyError as e:
                logger.warning("Late mission context missing", extra={"mission_id": mission.id, "error": str(e)})
                report.skipped += 1
                continue

            await notification_service.dispatch(
                LateCompletionNotification(mission=mission, home=home, employee=employee, conciergerie=conciergerie)
            )
            await db_client.update_record(collection=COLLECTION, record_id=mission.id, data={"late_notified": True})
            report.notified += 1

        if report.late:
            logger.info("Late mission check finished", extra=report.model_dump())
        return report
