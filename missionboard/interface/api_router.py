"""HTTP API for missions, homes, workers, conciergeries and the notification queue.

Callers are authenticated upstream; identity arrives in the `X-Conciergerie-Name` or
`X-Employee-Id` header.
"""

import logging
from collections.abc import Awaitable
from datetime import date
from typing import Any, TypeVar

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Query
from pydantic import BaseModel, ValidationError

from missionboard.core.config import constants, settings
from missionboard.core.errors import classify_error_with_response, classify_mission_error, http_status_for
from missionboard.domain.actor import Actor
from missionboard.domain.conciergerie import Conciergerie, ConciergerieNotificationSettings
from missionboard.domain.create_models import ConciergerieCreate, EmployeeCreate, HomeCreate, MissionCreate
from missionboard.domain.employee import Employee, EmployeeNotificationSettings, EmployeeStatus
from missionboard.domain.home import Home
from missionboard.domain.mission import Mission, MissionPoints, MissionResult
from missionboard.domain.notification import NotificationJob, notification_adapter
from missionboard.domain.update_models import EmployeeStatusUpdate, HomeUpdate, MissionUpdate
from missionboard.models.service_models import RetryReport
from missionboard.services import (
    conciergerie_service,
    employee_service,
    home_service,
    mission_service,
    mission_state_machine,
    notification_queue,
    points_service,
)


logger = logging.getLogger(__name__)

router = APIRouter(tags=["missions"])

T = TypeVar("T")


class DeviceAdd(BaseModel):
    """Request body for attaching a device to a worker."""

    device_id: str


class EmployeeLoad(BaseModel):
    """Points a worker carries on one day."""

    employee_id: str
    day: date
    points: float
    limit: int


def _forbidden(message: str) -> HTTPException:
    return HTTPException(
        status_code=constants.HTTP_FORBIDDEN,
        detail={"code": "ERR_NOT_AUTHORIZED", "message": message},
    )


async def current_actor(
    x_conciergerie_name: str | None = Header(None),
    x_employee_id: str | None = Header(None),
) -> Actor:
    """Resolve the caller from identity headers."""
    if x_conciergerie_name:
        return Actor.conciergerie(x_conciergerie_name)
    if x_employee_id:
        return Actor.employee(x_employee_id)
    raise _forbidden("Missing caller identity")


async def conciergerie_actor(actor: Actor = Depends(current_actor)) -> Actor:
    if not actor.is_conciergerie:
        raise _forbidden("Conciergerie access required")
    return actor


async def _run(awaitable: Awaitable[T]) -> T:
    """Await a service call, translating its exceptions into HTTP errors."""
    try:
        return await awaitable
    except (KeyError, PermissionError, ValueError, RuntimeError) as e:
        response = classify_error_with_response(e)
        logger.info("Request failed", extra={"code": response.code, "error": str(e)})
        raise HTTPException(
            status_code=http_status_for(response),
            detail=response.model_dump(mode="json"),
        ) from e


def _mission_or_error(result: MissionResult) -> Mission:
    """Unwrap a transition result or raise the matching HTTP error."""
    if result.success and result.mission is not None:
        return result.mission
    if result.error is None:
        raise HTTPException(status_code=constants.HTTP_SERVER_ERROR, detail={"code": "ERR_UNKNOWN"})

    response = classify_mission_error(result.error)
    detail: dict[str, Any] = response.model_dump(mode="json")
    if result.error.quota_days:
        detail["quota_days"] = [day.model_dump(mode="json") for day in result.error.quota_days]
    raise HTTPException(status_code=http_status_for(response), detail=detail)


# Missions


@router.post("/missions")
async def create_mission(data: MissionCreate, actor: Actor = Depends(current_actor)) -> Mission:
    return _mission_or_error(await mission_state_machine.create_mission(actor, data))


@router.get("/missions")
async def list_missions(actor: Actor = Depends(current_actor)) -> list[Mission]:
    """Conciergeries see their own missions; workers see what is visible to them."""
    if actor.is_conciergerie:
        return await _run(mission_service.list_missions(conciergerie_name=actor.identifier))
    return await _run(mission_service.visible_missions_for_employee(actor.identifier))


@router.get("/missions/late")
async def list_late_missions(actor: Actor = Depends(conciergerie_actor)) -> list[Mission]:
    return await _run(mission_service.get_late_missions(conciergerie_name=actor.identifier))


@router.get("/missions/{mission_id}")
async def get_mission(mission_id: str, actor: Actor = Depends(current_actor)) -> Mission:
    mission = await _run(mission_service.get_mission(mission_id))
    if actor.is_conciergerie and mission.conciergerie_name != actor.identifier:
        raise _forbidden("This mission belongs to another conciergerie")
    if actor.is_employee and not mission_service.is_visible_to(mission, actor.identifier):
        raise _forbidden("This mission is not visible to you")
    return mission


@router.get("/missions/{mission_id}/points")
async def get_mission_points(mission_id: str, _actor: Actor = Depends(current_actor)) -> MissionPoints:
    mission = await _run(mission_service.get_mission(mission_id))
    return points_service.mission_points(mission)


@router.patch("/missions/{mission_id}")
async def edit_mission(mission_id: str, data: MissionUpdate, actor: Actor = Depends(current_actor)) -> Mission:
    return _mission_or_error(await mission_state_machine.edit_mission(actor, mission_id, data))


@router.delete("/missions/{mission_id}")
async def delete_mission(mission_id: str, actor: Actor = Depends(current_actor)) -> Mission:
    return _mission_or_error(await mission_state_machine.delete_mission(actor, mission_id))


@router.post("/missions/{mission_id}/accept")
async def accept_mission(mission_id: str, actor: Actor = Depends(current_actor)) -> Mission:
    return _mission_or_error(await mission_state_machine.accept_mission(actor, mission_id))


@router.post("/missions/{mission_id}/start")
async def start_mission(mission_id: str, actor: Actor = Depends(current_actor)) -> Mission:
    return _mission_or_error(await mission_state_machine.start_mission(actor, mission_id))


@router.post("/missions/{mission_id}/complete")
async def complete_mission(mission_id: str, actor: Actor = Depends(current_actor)) -> Mission:
    return _mission_or_error(await mission_state_machine.complete_mission(actor, mission_id))


@router.post("/missions/{mission_id}/cancel")
async def cancel_mission(mission_id: str, actor: Actor = Depends(current_actor)) -> Mission:
    return _mission_or_error(await mission_state_machine.cancel_mission(actor, mission_id))


# Homes


@router.post("/homes")
async def create_home(data: HomeCreate, actor: Actor = Depends(conciergerie_actor)) -> Home:
    return await _run(home_service.create_home(conciergerie_name=actor.identifier, data=data))


@router.get("/homes")
async def list_homes(actor: Actor = Depends(current_actor)) -> list[Home]:
    if actor.is_conciergerie:
        return await _run(home_service.list_homes(conciergerie_name=actor.identifier))
    return await _run(home_service.list_homes())


@router.get("/homes/{home_id}")
async def get_home(home_id: str, _actor: Actor = Depends(current_actor)) -> Home:
    return await _run(home_service.get_home(home_id))


@router.patch("/homes/{home_id}")
async def update_home(home_id: str, data: HomeUpdate, actor: Actor = Depends(conciergerie_actor)) -> Home:
    return await _run(home_service.update_home(home_id=home_id, conciergerie_name=actor.identifier, data=data))


@router.delete("/homes/{home_id}", status_code=204)
async def delete_home(home_id: str, actor: Actor = Depends(conciergerie_actor)) -> None:
    await _run(home_service.delete_home(home_id=home_id, conciergerie_name=actor.identifier))


# Employees


@router.post("/employees")
async def register_employee(data: EmployeeCreate) -> Employee:
    return await _run(employee_service.register_employee(data))


@router.get("/employees")
async def list_employees(
    status: EmployeeStatus | None = None,
    actor: Actor = Depends(conciergerie_actor),
) -> list[Employee]:
    return await _run(employee_service.list_employees(conciergerie_name=actor.identifier, status=status))


@router.get("/employees/by-device/{device_id}")
async def get_employee_by_device(device_id: str) -> Employee:
    employee = await _run(employee_service.get_employee_by_device(device_id))
    if employee is None:
        raise HTTPException(
            status_code=constants.HTTP_NOT_FOUND,
            detail={"code": "ERR_NOT_FOUND", "message": "Unknown device"},
        )
    return employee


@router.get("/employees/{employee_id}")
async def get_employee(employee_id: str, _actor: Actor = Depends(current_actor)) -> Employee:
    return await _run(employee_service.get_employee(employee_id))


@router.get("/employees/{employee_id}/load")
async def get_employee_load(
    employee_id: str,
    day: date = Query(..., description="Calendar day (YYYY-MM-DD)"),
    exclude_mission_id: str | None = None,
    _actor: Actor = Depends(current_actor),
) -> EmployeeLoad:
    """Points a worker already has on a day, for warning before an accept."""
    missions = await _run(mission_service.list_missions(employee_id=employee_id))
    points = points_service.employee_load_for_day(employee_id, day, missions, exclude_mission_id=exclude_mission_id)
    return EmployeeLoad(
        employee_id=employee_id,
        day=day,
        points=points,
        limit=settings.daily_points_limit,
    )


@router.post("/employees/{employee_id}/status")
async def set_employee_status(
    employee_id: str,
    data: EmployeeStatusUpdate,
    actor: Actor = Depends(conciergerie_actor),
) -> Employee:
    try:
        status = EmployeeStatus(data.status)
    except ValueError as e:
        raise HTTPException(
            status_code=constants.HTTP_UNPROCESSABLE,
            detail={"code": "ERR_VALIDATION", "message": f"Unknown status: {data.status}"},
        ) from e
    return await _run(
        employee_service.set_employee_status(employee_id=employee_id, conciergerie_name=actor.identifier, status=status)
    )


@router.post("/employees/{employee_id}/devices")
async def add_device(employee_id: str, data: DeviceAdd, actor: Actor = Depends(current_actor)) -> Employee:
    if actor.is_employee and actor.identifier != employee_id:
        raise _forbidden("Workers can only add devices to their own account")
    return await _run(employee_service.add_device(employee_id=employee_id, device_id=data.device_id))


@router.put("/employees/{employee_id}/notification-settings")
async def update_employee_notification_settings(
    employee_id: str,
    data: EmployeeNotificationSettings,
    actor: Actor = Depends(current_actor),
) -> Employee:
    if not actor.is_employee or actor.identifier != employee_id:
        raise _forbidden("Workers can only change their own settings")
    return await _run(
        employee_service.update_notification_settings(employee_id=employee_id, notification_settings=data)
    )


# Conciergeries


@router.post("/conciergeries")
async def create_conciergerie(data: ConciergerieCreate) -> Conciergerie:
    return await _run(conciergerie_service.create_conciergerie(data))


@router.get("/conciergeries")
async def list_conciergeries() -> list[Conciergerie]:
    return await _run(conciergerie_service.list_conciergeries())


@router.get("/conciergeries/{name}")
async def get_conciergerie(name: str) -> Conciergerie:
    return await _run(conciergerie_service.get_conciergerie_by_name(name))


@router.put("/conciergeries/{name}/notification-settings")
async def update_conciergerie_notification_settings(
    name: str,
    data: ConciergerieNotificationSettings,
    actor: Actor = Depends(conciergerie_actor),
) -> Conciergerie:
    if actor.identifier != name:
        raise _forbidden("Conciergeries can only change their own settings")
    return await _run(conciergerie_service.update_notification_settings(name=name, notification_settings=data))


# Notification queue


@router.get("/notifications/jobs")
async def list_notification_jobs(_actor: Actor = Depends(conciergerie_actor)) -> list[NotificationJob]:
    return await _run(notification_queue.list_jobs())


@router.post("/notifications/jobs")
async def enqueue_notification(
    payload: dict[str, Any] = Body(...),
    _actor: Actor = Depends(conciergerie_actor),
) -> NotificationJob:
    try:
        notification = notification_adapter.validate_python(payload)
    except ValidationError as e:
        raise HTTPException(
            status_code=constants.HTTP_UNPROCESSABLE,
            detail={"code": "ERR_VALIDATION", "message": str(e)},
        ) from e
    return await _run(notification_queue.enqueue(notification))


@router.delete("/notifications/jobs/{job_id}", status_code=204)
async def remove_notification_job(job_id: str, _actor: Actor = Depends(conciergerie_actor)) -> None:
    await _run(notification_queue.remove(job_id))


@router.post("/notifications/jobs/process")
async def process_notification_jobs(_actor: Actor = Depends(conciergerie_actor)) -> RetryReport:
    return await _run(notification_queue.process_retries())
