"""Tests for worker registration and approval."""

import pytest

from missionboard.domain.create_models import EmployeeCreate
from missionboard.domain.employee import EmployeeNotificationSettings, EmployeeStatus
from missionboard.services import employee_service
from tests.unit.conftest import sent_recipients, sent_subjects


def registration(**overrides) -> EmployeeCreate:
    fields = {
        "first_name": "David",
        "family_name": "Durand",
        "email": "david@example.com",
        "conciergerie_name": "Alpha",
        "device_id": "device-david",
    }
    fields.update(overrides)
    return EmployeeCreate(**fields)


@pytest.mark.unit
class TestRegisterEmployee:
    """New worker registrations."""

    async def test_registration_is_pending_and_notifies_conciergerie(self, world, mock_send_email):
        employee = await employee_service.register_employee(registration())

        assert employee.status == EmployeeStatus.PENDING
        assert employee.device_ids == ["device-david"]
        assert sent_subjects(mock_send_email) == ["Nouvelle demande d'inscription employé"]
        assert sent_recipients(mock_send_email) == ["alpha@conciergerie.test"]

    async def test_known_device_is_rejected(self, world):
        with pytest.raises(ValueError, match="Device already registered"):
            await employee_service.register_employee(registration(device_id="device-alice"))

    async def test_unknown_conciergerie_is_rejected(self, world):
        with pytest.raises(ValueError, match="Unknown conciergerie"):
            await employee_service.register_employee(registration(conciergerie_name="Gamma"))

    def test_invalid_email_is_rejected(self):
        with pytest.raises(ValueError, match="Invalid email"):
            registration(email="not-an-email")


@pytest.mark.unit
class TestEmployeeStatus:
    """Approval decisions."""

    async def test_accepting_emails_worker_with_available_missions(self, world, mock_send_email):
        employee = await employee_service.set_employee_status(
            employee_id=world.pending_employee_id, conciergerie_name="Alpha", status=EmployeeStatus.ACCEPTED
        )

        assert employee.status == EmployeeStatus.ACCEPTED
        assert sent_subjects(mock_send_email) == ["Votre inscription a été acceptée"]
        assert sent_recipients(mock_send_email) == ["chloe@example.com"]

    async def test_rejecting_sends_refusal(self, world, mock_send_email):
        await employee_service.set_employee_status(
            employee_id=world.pending_employee_id, conciergerie_name="Alpha", status=EmployeeStatus.REJECTED
        )

        assert sent_subjects(mock_send_email) == ["Votre inscription a été refusée"]

    async def test_pending_is_not_a_decision(self, world):
        with pytest.raises(ValueError, match="Invalid decision"):
            await employee_service.set_employee_status(
                employee_id=world.pending_employee_id, conciergerie_name="Alpha", status=EmployeeStatus.PENDING
            )

    async def test_other_conciergerie_cannot_decide(self, world):
        with pytest.raises(PermissionError):
            await employee_service.set_employee_status(
                employee_id=world.pending_employee_id, conciergerie_name="Beta", status=EmployeeStatus.ACCEPTED
            )

    async def test_list_employees_by_status(self, world):
        pending = await employee_service.list_employees(conciergerie_name="Alpha", status=EmployeeStatus.PENDING)

        assert [employee.first_name for employee in pending] == ["Chloe"]


@pytest.mark.unit
class TestDevices:
    """Device lookup and linking."""

    async def test_find_employee_by_device(self, world):
        employee = await employee_service.get_employee_by_device("device-bruno")

        assert employee.id == world.second_employee_id

    async def test_unknown_device(self, world):
        assert await employee_service.get_employee_by_device("device-unknown") is None

    async def test_device_prefix_does_not_match(self, world):
        assert await employee_service.get_employee_by_device("device-al") is None

    async def test_device_id_with_quotes_and_backslash(self, world):
        device_id = 'pixel "work" \\ 7'

        employee = await employee_service.register_employee(registration(device_id=device_id))

        assert (await employee_service.get_employee_by_device(device_id)).id == employee.id
        with pytest.raises(ValueError, match="Device already registered"):
            await employee_service.register_employee(registration(device_id=device_id))

    async def test_add_device(self, world):
        employee = await employee_service.add_device(employee_id=world.employee_id, device_id="tablet-alice")

        assert employee.device_ids == ["device-alice", "tablet-alice"]

    async def test_device_of_another_worker_cannot_be_added(self, world):
        with pytest.raises(ValueError, match="another employee"):
            await employee_service.add_device(employee_id=world.employee_id, device_id="device-bruno")

    async def test_update_notification_settings(self, world):
        employee = await employee_service.update_notification_settings(
            employee_id=world.employee_id,
            notification_settings=EmployeeNotificationSettings(mission_deleted=False),
        )

        assert employee.notification_settings.mission_deleted is False
        assert employee.notification_settings.mission_changed is True
