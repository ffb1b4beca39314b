"""Employee service for worker registration, approval and devices."""

import logging

from missionboard.core import db_client
from missionboard.core.logging import span
from missionboard.domain.create_models import EmployeeCreate
from missionboard.domain.employee import Employee, EmployeeNotificationSettings, EmployeeStatus
from missionboard.domain.notification import AcceptanceNotification, RegistrationNotification
from missionboard.services import conciergerie_service, mission_service, notification_service


logger = logging.getLogger(__name__)

COLLECTION = "employees"


async def get_employee(employee_id: str) -> Employee:
    """Fetch a worker by ID, raising KeyError if not found."""
    record = await db_client.get_record(collection=COLLECTION, record_id=employee_id)
    return Employee.model_validate(record)


async def list_employees(
    *,
    conciergerie_name: str | None = None,
    status: EmployeeStatus | None = None,
) -> list[Employee]:
    """List workers, optionally filtered by preferred conciergerie and approval status."""
    filters = []
    if conciergerie_name is not None:
        filters.append(f'conciergerie_name = "{db_client.sanitize_param(conciergerie_name)}"')
    if status is not None:
        filters.append(f'status = "{status}"')
    records = await db_client.list_all_records(
        collection=COLLECTION,
        filter_query=" && ".join(filters),
        sort="+family_name",
    )
    return [Employee.model_validate(record) for record in records]


async def get_employee_by_device(device_id: str) -> Employee | None:
    """Find the worker a device belongs to, or None.

    Device ids are opaque strings, so the match is done on the decoded lists rather than on
    the stored JSON text.
    """
    for record in await db_client.list_all_records(collection=COLLECTION):
        employee = Employee.model_validate(record)
        if device_id in employee.device_ids:
            return employee
    return None


async def register_employee(data: EmployeeCreate) -> Employee:
    """Register a worker as pending and notify the conciergerie they want to join.

    Raises:
        ValueError: If the device is already registered or the conciergerie is unknown
    """
    with span("employee_service.register_employee"):
        if await get_employee_by_device(data.device_id) is not None:
            msg = f"Device already registered: {data.device_id}"
            raise ValueError(msg)

        conciergerie = None
        if data.conciergerie_name:
            try:
                conciergerie = await conciergerie_service.get_conciergerie_by_name(data.conciergerie_name)
            except KeyError as e:
                msg = f"Unknown conciergerie: {data.conciergerie_name}"
                raise ValueError(msg) from e

        fields = data.model_dump(exclude={"device_id"})
        record = await db_client.create_record(
            collection=COLLECTION,
            data={
                **fields,
                "device_ids": [data.device_id],
                "status": EmployeeStatus.PENDING,
                "notification_settings": EmployeeNotificationSettings().model_dump(),
            },
        )
        employee = Employee.model_validate(record)
        logger.info(
            "Registered employee",
            extra={"employee_id": employee.id, "conciergerie_name": employee.conciergerie_name},
        )

        if conciergerie is not None:
            await notification_service.dispatch(RegistrationNotification(conciergerie=conciergerie, employee=employee))
        return employee


async def set_employee_status(*, employee_id: str, conciergerie_name: str, status: EmployeeStatus) -> Employee:
    """Accept or reject a worker and email them the decision.

    Raises:
        KeyError: If the worker or conciergerie does not exist
        PermissionError: If the worker asked to join another conciergerie
        ValueError: If the status is not a decision
    """
    with span("employee_service.set_employee_status"):
        if status not in (EmployeeStatus.ACCEPTED, EmployeeStatus.REJECTED):
            msg = f"Invalid decision: {status}"
            raise ValueError(msg)

        employee = await get_employee(employee_id)
        if employee.conciergerie_name != conciergerie_name:
            msg = f"Employee {employee_id} did not apply to {conciergerie_name}"
            raise PermissionError(msg)
        conciergerie = await conciergerie_service.get_conciergerie_by_name(conciergerie_name)

        record = await db_client.update_record(collection=COLLECTION, record_id=employee_id, data={"status": status})
        employee = Employee.model_validate(record)
        logger.info("Employee status changed", extra={"employee_id": employee_id, "status": status})

        missions = await mission_service.list_missions(conciergerie_name=conciergerie_name)
        await notification_service.dispatch(
            AcceptanceNotification(
                employee=employee,
                conciergerie=conciergerie,
                missions_count=sum(1 for mission in missions if mission.is_available),
                is_accepted=status == EmployeeStatus.ACCEPTED,
            )
        )
        return employee


async def add_device(*, employee_id: str, device_id: str) -> Employee:
    """Attach another device to a worker.

    Raises:
        KeyError: If the worker does not exist
        ValueError: If the device belongs to someone else
    """
    with span("employee_service.add_device"):
        employee = await get_employee(employee_id)
        if device_id in employee.device_ids:
            return employee

        owner = await get_employee_by_device(device_id)
        if owner is not None:
            msg = f"Device already registered to another employee: {device_id}"
            raise ValueError(msg)

        record = await db_client.update_record(
            collection=COLLECTION,
            record_id=employee_id,
            data={"device_ids": [*employee.device_ids, device_id]},
        )
        return Employee.model_validate(record)


async def update_notification_settings(
    *,
    employee_id: str,
    notification_settings: EmployeeNotificationSettings,
) -> Employee:
    """Replace a worker's notification preferences."""
    with span("employee_service.update_notification_settings"):
        record = await db_client.update_record(
            collection=COLLECTION,
            record_id=employee_id,
            data={"notification_settings": notification_settings.model_dump()},
        )
        return Employee.model_validate(record)
