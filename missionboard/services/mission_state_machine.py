"""Mission lifecycle transitions.

    unassigned --accept--> accepted --start--> started --complete--> completed (terminal)
    accepted/started --cancel--> unassigned
    unassigned/accepted --edit--> unassigned (an edit always releases the worker)
    any non-completed --delete--> removed

Every transition returns a `MissionResult`; business rejections never raise. Storage
failures while persisting become `storage_error` results. Notifications are sent after
the change is committed and never fail the transition.
"""

import logging
from collections.abc import Iterable
from datetime import UTC, date, datetime, timedelta
from typing import Any

from missionboard.core import db_client
from missionboard.core.config import settings
from missionboard.core.logging import log_with_context, span
from missionboard.domain.actor import Actor
from missionboard.domain.conciergerie import Conciergerie
from missionboard.domain.create_models import MissionCreate
from missionboard.domain.employee import Employee, EmployeeStatus
from missionboard.domain.home import Home
from missionboard.domain.mission import Mission, MissionErrorKind, MissionResult, MissionStatus
from missionboard.domain.notification import (
    MissionAcceptanceNotification,
    MissionRemovedNotification,
    MissionStatusNotification,
    MissionUpdatedNotification,
    Notification,
    RemovalKind,
)
from missionboard.domain.task import TaskKind
from missionboard.domain.update_models import MissionUpdate
from missionboard.interface.email_templates import TASK_LABELS, format_date_time
from missionboard.services import (
    conciergerie_service,
    duplicate_detector,
    employee_service,
    home_service,
    mission_service,
    notification_service,
    points_service,
    task_catalog,
)


logger = logging.getLogger(__name__)

COLLECTION = "missions"


def _reject(operation: str, kind: MissionErrorKind, message: str, **context: Any) -> MissionResult:
    log_with_context(logger, "info", "Transition rejected", operation=operation, reason=kind, **context)
    return MissionResult.fail(kind, message)


def _changed_meanwhile(operation: str, mission_id: str) -> MissionResult:
    return _reject(operation, MissionErrorKind.INVALID_TRANSITION, "Mission changed meanwhile", mission_id=mission_id)


def _storage_failure(operation: str, error: Exception, **context: Any) -> MissionResult:
    logger.error("Transition not persisted", extra={"operation": operation, "error": str(error), **context})
    return MissionResult.fail(MissionErrorKind.STORAGE_ERROR, f"Could not save the mission: {error}")


def validate_schedule(tasks: list[TaskKind], start: datetime, end: datetime) -> str | None:
    """Return why a task set and time window are invalid, or None if they are fine."""
    if not tasks:
        return "A mission needs at least one task"
    if len(set(tasks)) != len(tasks):
        return "A task can only appear once in a mission"
    if end <= start:
        return "End must be after start"
    if end - start < timedelta(hours=settings.min_mission_hours):
        return f"A mission must last at least {settings.min_mission_hours} hour(s)"
    return None


async def _load_mission(operation: str, mission_id: str) -> Mission | MissionResult:
    """Fetch a mission or the rejection explaining why it cannot be used."""
    try:
        mission = await mission_service.get_mission(mission_id)
    except KeyError:
        return _reject(operation, MissionErrorKind.NOT_FOUND, f"Mission {mission_id} not found", mission_id=mission_id)
    except RuntimeError as e:
        return _storage_failure(operation, e, mission_id=mission_id)

    if mission.is_completed:
        return _reject(
            operation,
            MissionErrorKind.INVALID_TRANSITION,
            "Completed missions can no longer change",
            mission_id=mission_id,
        )
    return mission


async def _load_context(mission: Mission, employee_id: str) -> tuple[Home, Employee, Conciergerie] | None:
    """Records a mission email needs; None if one has disappeared."""
    try:
        home = await home_service.get_home(mission.home_id)
        employee = await employee_service.get_employee(employee_id)
        conciergerie = await conciergerie_service.get_conciergerie_by_name(mission.conciergerie_name)
    except (KeyError, RuntimeError) as e:
        logger.warning("Notification context unavailable", extra={"mission_id": mission.id, "error": str(e)})
        return None
    return home, employee, conciergerie


async def _notify(notifications: Iterable[Notification]) -> None:
    for notification in notifications:
        await notification_service.dispatch(notification)


async def _notify_status(mission: Mission, status: MissionStatus) -> None:
    context = await _load_context(mission, mission.employee_id or "")
    if context is None:
        return
    home, employee, conciergerie = context
    notifications: list[Notification] = [
        MissionStatusNotification(
            mission=mission, home=home, employee=employee, conciergerie=conciergerie, status=status
        )
    ]
    if status == MissionStatus.ACCEPTED:
        notifications.append(
            MissionAcceptanceNotification(mission=mission, home=home, employee=employee, conciergerie=conciergerie)
        )
    await _notify(notifications)


async def _removal_notification(mission: Mission, removal: RemovalKind) -> MissionRemovedNotification | None:
    if mission.employee_id is None:
        return None
    context = await _load_context(mission, mission.employee_id)
    if context is None:
        return None
    home, employee, conciergerie = context
    return MissionRemovedNotification(
        mission=mission,
        home=home,
        employee=employee,
        conciergerie=conciergerie,
        removal=removal,
    )


def describe_changes(before: Mission, after: Mission, *, home_title: str | None = None) -> list[str]:
    """Human-readable list of what an edit changed, for the former worker's email."""

    def tasks_label(tasks: list[TaskKind]) -> str:
        return ", ".join(TASK_LABELS.get(kind, kind) for kind in sorted(tasks))

    changes = []
    if before.home_id != after.home_id:
        changes.append(f"Bien : {home_title or after.home_id}")
    if set(before.tasks) != set(after.tasks):
        changes.append(f"Prestations : {tasks_label(before.tasks)} → {tasks_label(after.tasks)}")
    if before.start_date_time != after.start_date_time:
        changes.append(
            f"Début : {format_date_time(before.start_date_time)} → {format_date_time(after.start_date_time)}"
        )
    if before.end_date_time != after.end_date_time:
        changes.append(f"Fin : {format_date_time(before.end_date_time)} → {format_date_time(after.end_date_time)}")
    if set(before.allowed_employees) != set(after.allowed_employees):
        changes.append("Employés autorisés")
    return changes


async def create_mission(actor: Actor, data: MissionCreate) -> MissionResult:
    """Post a new, unassigned mission for a home the conciergerie owns."""
    operation = "create_mission"
    with span("mission_state_machine.create_mission"):
        if not actor.is_conciergerie:
            return _reject(operation, MissionErrorKind.NOT_AUTHORIZED, "Only a conciergerie can create missions")

        start = mission_service.as_utc(data.start_date_time)
        end = mission_service.as_utc(data.end_date_time)
        problem = validate_schedule(data.tasks, start, end)
        if problem:
            return _reject(operation, MissionErrorKind.VALIDATION_ERROR, problem)

        try:
            home = await home_service.get_home(data.home_id)
            existing = await mission_service.list_missions(conciergerie_name=actor.identifier, home_id=data.home_id)
        except KeyError:
            return _reject(
                operation, MissionErrorKind.NOT_FOUND, f"Home {data.home_id} not found", home_id=data.home_id
            )
        except RuntimeError as e:
            return _storage_failure(operation, e)

        if home.conciergerie_name != actor.identifier:
            return _reject(operation, MissionErrorKind.NOT_OWNER, "This home belongs to another conciergerie")

        is_duplicate = any(
            duplicate_detector.is_duplicate(
                home_id=data.home_id,
                conciergerie_name=actor.identifier,
                tasks=data.tasks,
                start_date_time=start,
                end_date_time=end,
                other=other,
            )
            for other in existing
        )
        if is_duplicate:
            return _reject(operation, MissionErrorKind.DUPLICATE_MISSION, "An identical mission already exists")

        try:
            record = await db_client.create_record(
                collection=COLLECTION,
                data={
                    "home_id": data.home_id,
                    "tasks": [str(kind) for kind in data.tasks],
                    "start_date_time": start,
                    "end_date_time": end,
                    "conciergerie_name": actor.identifier,
                    "employee_id": None,
                    "status": None,
                    "allowed_employees": data.allowed_employees,
                    "hours": task_catalog.mission_hours(home, data.tasks),
                    "late_notified": False,
                    "modified_date": datetime.now(UTC),
                },
            )
        except RuntimeError as e:
            return _storage_failure(operation, e)

        mission = Mission.model_validate(record)
        logger.info("Mission created", extra={"mission_id": mission.id, "conciergerie_name": actor.identifier})
        return MissionResult.ok(mission)


async def accept_mission(actor: Actor, mission_id: str, *, current_day: date | None = None) -> MissionResult:
    """Assign an available mission to the calling worker, enforcing the daily points quota.

    The quota check reads every mission the worker holds and is separate from the assignment;
    only the assignment itself is atomic (it succeeds only while no worker holds the mission).
    """
    operation = "accept_mission"
    with span("mission_state_machine.accept_mission"):
        if not actor.is_employee:
            return _reject(operation, MissionErrorKind.NOT_AUTHORIZED, "Only a worker can accept missions")

        loaded = await _load_mission(operation, mission_id)
        if isinstance(loaded, MissionResult):
            return loaded
        mission = loaded

        if not mission.is_available:
            return _reject(
                operation,
                MissionErrorKind.INVALID_TRANSITION,
                "This mission is already taken",
                mission_id=mission_id,
            )

        try:
            employee = await employee_service.get_employee(actor.identifier)
        except KeyError:
            return _reject(operation, MissionErrorKind.NOT_AUTHORIZED, "Unknown worker", employee_id=actor.identifier)
        except RuntimeError as e:
            return _storage_failure(operation, e, mission_id=mission_id)

        if employee.status != EmployeeStatus.ACCEPTED:
            return _reject(
                operation,
                MissionErrorKind.NOT_AUTHORIZED,
                "Your account has not been approved yet",
                employee_id=employee.id,
            )
        if mission.allowed_employees and employee.id not in mission.allowed_employees:
            return _reject(
                operation,
                MissionErrorKind.NOT_AUTHORIZED,
                "This mission is reserved for other workers",
                mission_id=mission_id,
                employee_id=employee.id,
            )

        try:
            snapshot = await mission_service.list_missions(employee_id=employee.id)
        except RuntimeError as e:
            return _storage_failure(operation, e, mission_id=mission_id)

        violations = points_service.find_quota_violations(employee.id, mission, snapshot, current_day=current_day)
        if violations:
            logger.info(
                "Transition rejected",
                extra={"operation": operation, "reason": MissionErrorKind.QUOTA_EXCEEDED, "mission_id": mission_id},
            )
            return MissionResult.fail(
                MissionErrorKind.QUOTA_EXCEEDED,
                f"Accepting this mission would exceed {settings.daily_points_limit} points on {len(violations)} day(s)",
                quota_days=violations,
            )

        try:
            record = await db_client.compare_and_update_record(
                collection=COLLECTION,
                record_id=mission_id,
                expected={"employee_id": None, "status": None},
                data={"employee_id": employee.id, "status": MissionStatus.ACCEPTED, "modified_date": datetime.now(UTC)},
            )
        except RuntimeError as e:
            return _storage_failure(operation, e, mission_id=mission_id)

        if record is None:
            return _reject(
                operation,
                MissionErrorKind.INVALID_TRANSITION,
                "Another worker accepted this mission first",
                mission_id=mission_id,
            )

        accepted = Mission.model_validate(record)
        logger.info("Mission accepted", extra={"mission_id": mission_id, "employee_id": employee.id})
        await _notify_status(accepted, MissionStatus.ACCEPTED)
        return MissionResult.ok(accepted)


async def _advance(
    operation: str,
    actor: Actor,
    mission_id: str,
    *,
    source: MissionStatus,
    target: MissionStatus,
    now: datetime | None = None,
) -> MissionResult:
    """Move an assigned mission one step forward on behalf of its worker."""
    loaded = await _load_mission(operation, mission_id)
    if isinstance(loaded, MissionResult):
        return loaded
    mission = loaded

    if not actor.is_employee or mission.employee_id != actor.identifier:
        return _reject(
            operation,
            MissionErrorKind.NOT_ASSIGNED_WORKER,
            "Only the assigned worker can do this",
            mission_id=mission_id,
        )
    if mission.status != source:
        return _reject(
            operation,
            MissionErrorKind.INVALID_TRANSITION,
            f"Mission is {mission.status or 'available'}, expected {source}",
            mission_id=mission_id,
        )
    if target == MissionStatus.STARTED:
        now = mission_service.as_utc(now or datetime.now(UTC))
        if now < mission_service.as_utc(mission.start_date_time):
            return _reject(
                operation,
                MissionErrorKind.TOO_EARLY_TO_START,
                f"Mission starts at {format_date_time(mission.start_date_time)}",
                mission_id=mission_id,
            )

    try:
        record = await db_client.compare_and_update_record(
            collection=COLLECTION,
            record_id=mission_id,
            expected={"employee_id": actor.identifier, "status": source},
            data={"status": target, "modified_date": datetime.now(UTC)},
        )
    except RuntimeError as e:
        return _storage_failure(operation, e, mission_id=mission_id)

    if record is None:
        return _changed_meanwhile(operation, mission_id)

    updated = Mission.model_validate(record)
    logger.info(f"Mission {target}", extra={"mission_id": mission_id, "employee_id": actor.identifier})
    await _notify_status(updated, target)
    return MissionResult.ok(updated)


async def start_mission(actor: Actor, mission_id: str, *, now: datetime | None = None) -> MissionResult:
    """Start an accepted mission; only its worker, and not before its start time."""
    with span("mission_state_machine.start_mission"):
        return await _advance(
            "start_mission",
            actor,
            mission_id,
            source=MissionStatus.ACCEPTED,
            target=MissionStatus.STARTED,
            now=now,
        )


async def complete_mission(actor: Actor, mission_id: str) -> MissionResult:
    """Complete a started mission. Objectives are confirmed by the caller beforehand."""
    with span("mission_state_machine.complete_mission"):
        return await _advance(
            "complete_mission",
            actor,
            mission_id,
            source=MissionStatus.STARTED,
            target=MissionStatus.COMPLETED,
        )


async def cancel_mission(actor: Actor, mission_id: str) -> MissionResult:
    """Release an accepted or started mission back to the pool.

    Allowed for the owning conciergerie and for the assigned worker withdrawing themselves.
    """
    operation = "cancel_mission"
    with span("mission_state_machine.cancel_mission"):
        loaded = await _load_mission(operation, mission_id)
        if isinstance(loaded, MissionResult):
            return loaded
        mission = loaded

        if actor.is_conciergerie and mission.conciergerie_name != actor.identifier:
            return _reject(operation, MissionErrorKind.NOT_OWNER, "This mission belongs to another conciergerie")
        if actor.is_employee and mission.employee_id != actor.identifier:
            return _reject(operation, MissionErrorKind.NOT_ASSIGNED_WORKER, "Only the assigned worker can withdraw")
        if mission.status not in (MissionStatus.ACCEPTED, MissionStatus.STARTED):
            return _reject(
                operation,
                MissionErrorKind.INVALID_TRANSITION,
                "Only an accepted or started mission can be canceled",
                mission_id=mission_id,
            )

        try:
            record = await db_client.compare_and_update_record(
                collection=COLLECTION,
                record_id=mission_id,
                expected={"employee_id": mission.employee_id, "status": mission.status},
                data={"employee_id": None, "status": None, "late_notified": False, "modified_date": datetime.now(UTC)},
            )
        except RuntimeError as e:
            return _storage_failure(operation, e, mission_id=mission_id)

        if record is None:
            return _changed_meanwhile(operation, mission_id)

        released = Mission.model_validate(record)
        logger.info("Mission canceled", extra={"mission_id": mission_id, "former_employee_id": mission.employee_id})

        notification = await _removal_notification(mission, RemovalKind.CANCELED)
        if notification is not None:
            await _notify([notification])
        return MissionResult.ok(released)


async def edit_mission(actor: Actor, mission_id: str, data: MissionUpdate) -> MissionResult:
    """Change a mission that has not started. An accepted mission goes back to the pool."""
    operation = "edit_mission"
    with span("mission_state_machine.edit_mission"):
        loaded = await _load_mission(operation, mission_id)
        if isinstance(loaded, MissionResult):
            return loaded
        mission = loaded

        if not actor.is_conciergerie or mission.conciergerie_name != actor.identifier:
            return _reject(operation, MissionErrorKind.NOT_OWNER, "Only the owning conciergerie can edit this mission")
        if mission.status == MissionStatus.STARTED:
            return _reject(
                operation,
                MissionErrorKind.INVALID_TRANSITION,
                "A started mission can no longer be edited",
                mission_id=mission_id,
            )

        changes = data.model_dump(exclude_none=True)
        if "start_date_time" in changes:
            changes["start_date_time"] = mission_service.as_utc(changes["start_date_time"])
        if "end_date_time" in changes:
            changes["end_date_time"] = mission_service.as_utc(changes["end_date_time"])
        edited = mission.model_copy(update=changes)

        problem = validate_schedule(
            edited.tasks,
            mission_service.as_utc(edited.start_date_time),
            mission_service.as_utc(edited.end_date_time),
        )
        if problem:
            return _reject(operation, MissionErrorKind.VALIDATION_ERROR, problem, mission_id=mission_id)

        try:
            home = await home_service.get_home(edited.home_id)
            existing = await mission_service.list_missions(conciergerie_name=actor.identifier, home_id=edited.home_id)
        except KeyError:
            return _reject(operation, MissionErrorKind.NOT_FOUND, f"Home {edited.home_id} not found")
        except RuntimeError as e:
            return _storage_failure(operation, e, mission_id=mission_id)

        if home.conciergerie_name != actor.identifier:
            return _reject(operation, MissionErrorKind.NOT_OWNER, "This home belongs to another conciergerie")
        if duplicate_detector.mission_exists(edited, existing, exclude_id=mission.id):
            return _reject(
                operation,
                MissionErrorKind.DUPLICATE_MISSION,
                "An identical mission already exists",
                mission_id=mission_id,
            )

        update: dict[str, Any] = {
            "home_id": edited.home_id,
            "tasks": [str(kind) for kind in edited.tasks],
            "start_date_time": edited.start_date_time,
            "end_date_time": edited.end_date_time,
            "allowed_employees": edited.allowed_employees,
            "hours": task_catalog.mission_hours(home, edited.tasks),
            "employee_id": None,
            "status": None,
            "late_notified": False,
            "modified_date": datetime.now(UTC),
        }

        try:
            record = await db_client.compare_and_update_record(
                collection=COLLECTION,
                record_id=mission_id,
                expected={"employee_id": mission.employee_id, "status": mission.status},
                data=update,
            )
        except RuntimeError as e:
            return _storage_failure(operation, e, mission_id=mission_id)

        if record is None:
            return _changed_meanwhile(operation, mission_id)

        saved = Mission.model_validate(record)
        logger.info(
            "Mission edited",
            extra={"mission_id": mission_id, "released_employee_id": mission.employee_id},
        )

        if mission.employee_id is not None:
            context = await _load_context(saved, mission.employee_id)
            if context is not None:
                home, employee, conciergerie = context
                await _notify(
                    [
                        MissionUpdatedNotification(
                            mission=saved,
                            home=home,
                            employee=employee,
                            conciergerie=conciergerie,
                            changes=describe_changes(mission, saved, home_title=home.title),
                        )
                    ]
                )
        return MissionResult.ok(saved)


async def delete_mission(actor: Actor, mission_id: str) -> MissionResult:
    """Remove a mission that is not completed, telling its worker if it had one."""
    operation = "delete_mission"
    with span("mission_state_machine.delete_mission"):
        loaded = await _load_mission(operation, mission_id)
        if isinstance(loaded, MissionResult):
            return loaded
        mission = loaded

        if not actor.is_conciergerie or mission.conciergerie_name != actor.identifier:
            return _reject(
                operation, MissionErrorKind.NOT_OWNER, "Only the owning conciergerie can delete this mission"
            )

        # Built before the purge so the email still has the mission's details
        notification = await _removal_notification(mission, RemovalKind.DELETED)

        try:
            await db_client.delete_record(collection=COLLECTION, record_id=mission_id)
        except KeyError:
            return _reject(
                operation, MissionErrorKind.NOT_FOUND, f"Mission {mission_id} not found", mission_id=mission_id
            )
        except RuntimeError as e:
            return _storage_failure(operation, e, mission_id=mission_id)

        logger.info("Mission deleted", extra={"mission_id": mission_id, "conciergerie_name": actor.identifier})
        if notification is not None:
            await _notify([notification])
        return MissionResult.ok(mission)
