"""Tests for notification preferences and first-attempt delivery."""

import pytest

from missionboard.domain.conciergerie import Conciergerie, ConciergerieNotificationSettings
from missionboard.domain.employee import Employee, EmployeeNotificationSettings, EmployeeStatus
from missionboard.domain.home import Home
from missionboard.domain.mission import Mission, MissionStatus
from missionboard.domain.notification import (
    AcceptanceNotification,
    LateCompletionNotification,
    MissionRemovedNotification,
    MissionStatusNotification,
    MissionUpdatedNotification,
    RemovalKind,
)
from missionboard.domain.task import TaskKind
from missionboard.interface.email_sender import SendEmailResult
from missionboard.services import notification_service
from tests.unit.conftest import utc


@pytest.fixture
def mission() -> Mission:
    return Mission(
        id="10",
        home_id="1",
        tasks=[TaskKind.CLEANING],
        start_date_time=utc(2030, 3, 10, 9),
        end_date_time=utc(2030, 3, 10, 17),
        conciergerie_name="Alpha",
        employee_id="7",
        status=MissionStatus.ACCEPTED,
    )


@pytest.fixture
def home() -> Home:
    return Home(id="1", title="Villa Azur", conciergerie_name="Alpha", hours_of_cleaning=2)


def make_employee(**settings) -> Employee:
    return Employee(
        id="7",
        first_name="Alice",
        family_name="Martin",
        email="alice@example.com",
        status=EmployeeStatus.ACCEPTED,
        notification_settings=EmployeeNotificationSettings(**settings),
    )


def make_conciergerie(**settings) -> Conciergerie:
    return Conciergerie(
        id="1",
        name="Alpha",
        email="alpha@conciergerie.test",
        notification_settings=ConciergerieNotificationSettings(**settings),
    )


@pytest.mark.unit
class TestIsWanted:
    """Recipient preferences per notification kind."""

    def test_status_preferences_are_per_status(self, mission, home):
        conciergerie = make_conciergerie(started_missions=False)

        def status(value):
            return MissionStatusNotification(
                mission=mission, home=home, employee=make_employee(), conciergerie=conciergerie, status=value
            )

        assert notification_service.is_wanted(status(MissionStatus.ACCEPTED))
        assert not notification_service.is_wanted(status(MissionStatus.STARTED))
        assert notification_service.is_wanted(status(MissionStatus.COMPLETED))

    def test_late_completion_preference(self, mission, home):
        notification = LateCompletionNotification(
            mission=mission,
            home=home,
            employee=make_employee(),
            conciergerie=make_conciergerie(missions_ended_without_completion=False),
        )

        assert not notification_service.is_wanted(notification)

    def test_removal_preference_depends_on_removal_kind(self, mission, home):
        employee = make_employee(mission_deleted=False)

        def removed(removal):
            return MissionRemovedNotification(
                mission=mission, home=home, employee=employee, conciergerie=make_conciergerie(), removal=removal
            )

        assert not notification_service.is_wanted(removed(RemovalKind.DELETED))
        assert notification_service.is_wanted(removed(RemovalKind.CANCELED))

    def test_mission_changed_preference(self, mission, home):
        notification = MissionUpdatedNotification(
            mission=mission,
            home=home,
            employee=make_employee(mission_changed=False),
            conciergerie=make_conciergerie(),
            changes=[],
        )

        assert not notification_service.is_wanted(notification)

    def test_account_emails_are_always_wanted(self):
        notification = AcceptanceNotification(
            employee=make_employee(accepted_missions=False),
            conciergerie=make_conciergerie(accepted_missions=False),
            missions_count=0,
            is_accepted=False,
        )

        assert notification_service.is_wanted(notification)


@pytest.mark.unit
class TestDispatch:
    """First delivery attempt."""

    async def test_successful_send(self, patched_db, mock_send_email, mission, home):
        notification = LateCompletionNotification(
            mission=mission, home=home, employee=make_employee(), conciergerie=make_conciergerie()
        )

        result = await notification_service.dispatch(notification)

        assert result.sent
        assert result.recipient == "alpha@conciergerie.test"
        assert patched_db.records("notification_jobs") == []

    async def test_failed_send_is_queued(self, patched_db, mock_send_email, mission, home):
        mock_send_email.return_value = SendEmailResult(success=False, error="Transport error")
        notification = LateCompletionNotification(
            mission=mission, home=home, employee=make_employee(), conciergerie=make_conciergerie()
        )

        result = await notification_service.dispatch(notification, now=utc(2030, 3, 11))

        assert result.queued
        [job] = patched_db.records("notification_jobs")
        assert job["id"] == result.job_id
        assert job["attempts"] == 1

    async def test_unwanted_notification_is_skipped(self, patched_db, mock_send_email, mission, home):
        notification = LateCompletionNotification(
            mission=mission,
            home=home,
            employee=make_employee(),
            conciergerie=make_conciergerie(missions_ended_without_completion=False),
        )

        result = await notification_service.dispatch(notification)

        assert result.skipped
        mock_send_email.assert_not_awaited()

    async def test_queue_failure_is_reported_not_raised(self, patched_db, mock_send_email, mission, home):
        mock_send_email.return_value = SendEmailResult(success=False, error="Transport error")
        patched_db.failing_operations.add("create_record")
        notification = LateCompletionNotification(
            mission=mission, home=home, employee=make_employee(), conciergerie=make_conciergerie()
        )

        result = await notification_service.dispatch(notification)

        assert not result.queued
        assert result.error
