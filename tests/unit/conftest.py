"""Pytest configuration and fixtures for unit tests."""

from dataclasses import dataclass
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from missionboard.domain.conciergerie import ConciergerieNotificationSettings
from missionboard.domain.employee import EmployeeNotificationSettings, EmployeeStatus
from missionboard.interface.email_sender import SendEmailResult
from tests.unit.mocks import InMemoryDBClient


@pytest.fixture
def in_memory_db():
    """Provides a fresh InMemoryDBClient for each test."""
    return InMemoryDBClient()


@pytest.fixture
def mock_send_email(monkeypatch):
    """Replaces the HTTP email transport with an AsyncMock that succeeds by default.

    Set `mock_send_email.return_value = SendEmailResult(success=False, ...)` to simulate outages.
    """
    mock = AsyncMock(return_value=SendEmailResult(success=True, message_id="mock_message_id"))
    monkeypatch.setattr("missionboard.interface.email_sender.send_email", mock)
    return mock


@pytest.fixture
def patched_db(monkeypatch, in_memory_db, mock_send_email):
    """Patches missionboard.core.db_client functions to use InMemoryDBClient.

    Also patches the email transport so no real HTTP calls are made.
    """
    monkeypatch.setattr("missionboard.core.db_client.create_record", in_memory_db.create_record)
    monkeypatch.setattr("missionboard.core.db_client.get_record", in_memory_db.get_record)
    monkeypatch.setattr("missionboard.core.db_client.update_record", in_memory_db.update_record)
    monkeypatch.setattr(
        "missionboard.core.db_client.compare_and_update_record",
        in_memory_db.compare_and_update_record,
    )
    monkeypatch.setattr("missionboard.core.db_client.delete_record", in_memory_db.delete_record)
    monkeypatch.setattr("missionboard.core.db_client.list_records", in_memory_db.list_records)
    monkeypatch.setattr("missionboard.core.db_client.get_first_record", in_memory_db.get_first_record)

    return in_memory_db


def sent_subjects(mock_send_email: AsyncMock) -> list[str]:
    """Subjects of every email passed to the mocked transport."""
    return [call.kwargs["subject"] for call in mock_send_email.await_args_list]


def sent_recipients(mock_send_email: AsyncMock) -> list[str]:
    return [call.kwargs["to"] for call in mock_send_email.await_args_list]


def utc(year: int, month: int, day: int, hour: int = 12, minute: int = 0) -> datetime:
    """UTC timestamp, noon by default so calendar days match in Europe/Paris."""
    return datetime(year, month, day, hour, minute, tzinfo=UTC)


@dataclass
class World:
    """Ids of the records seeded for state machine tests."""

    conciergerie_name: str
    other_conciergerie_name: str
    home_id: str
    other_home_id: str
    employee_id: str
    second_employee_id: str
    pending_employee_id: str


async def _create_employee(db: InMemoryDBClient, first_name: str, status: EmployeeStatus) -> str:
    record = await db.create_record(
        collection="employees",
        data={
            "first_name": first_name,
            "family_name": "Martin",
            "email": f"{first_name.lower()}@example.com",
            "tel": "0600000000",
            "geographic_zone": "Nice",
            "conciergerie_name": "Alpha",
            "message": None,
            "device_ids": [f"device-{first_name.lower()}"],
            "status": status,
            "notification_settings": EmployeeNotificationSettings().model_dump(),
        },
    )
    return record["id"]


@pytest.fixture
async def world(patched_db) -> World:
    """Two conciergeries with one home each, two accepted workers and one pending worker."""
    for name in ("Alpha", "Beta"):
        await patched_db.create_record(
            collection="conciergeries",
            data={
                "name": name,
                "email": f"{name.lower()}@conciergerie.test",
                "tel": "0400000000",
                "color": "blue",
                "notification_settings": ConciergerieNotificationSettings().model_dump(),
            },
        )

    home = await patched_db.create_record(
        collection="homes",
        data={
            "title": "Villa Azur",
            "description": "Sea view",
            "objectives": ["Check the pool"],
            "images": [],
            "geographic_zone": "Nice",
            "hours_of_cleaning": 2,
            "hours_of_gardening": 1.5,
            "conciergerie_name": "Alpha",
        },
    )
    other_home = await patched_db.create_record(
        collection="homes",
        data={
            "title": "Chalet Neige",
            "description": "",
            "objectives": [],
            "images": [],
            "geographic_zone": "Megeve",
            "hours_of_cleaning": 3,
            "hours_of_gardening": 0,
            "conciergerie_name": "Beta",
        },
    )

    return World(
        conciergerie_name="Alpha",
        other_conciergerie_name="Beta",
        home_id=home["id"],
        other_home_id=other_home["id"],
        employee_id=await _create_employee(patched_db, "Alice", EmployeeStatus.ACCEPTED),
        second_employee_id=await _create_employee(patched_db, "Bruno", EmployeeStatus.ACCEPTED),
        pending_employee_id=await _create_employee(patched_db, "Chloe", EmployeeStatus.PENDING),
    )
