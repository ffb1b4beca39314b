"""Tests for home management."""

import pytest

from missionboard.domain.actor import Actor
from missionboard.domain.create_models import HomeCreate, MissionCreate
from missionboard.domain.task import TaskKind
from missionboard.domain.update_models import HomeUpdate
from missionboard.services import home_service
from missionboard.services import mission_state_machine as machine
from tests.unit.conftest import utc


@pytest.mark.unit
class TestHomeService:
    """Creating, updating and deleting homes."""

    async def test_create_home(self, world):
        home = await home_service.create_home(
            conciergerie_name="Alpha",
            data=HomeCreate(title="  Mas Provence ", objectives=["Water plants", " "], hours_of_cleaning=3),
        )

        assert home.title == "Mas Provence"
        assert home.objectives == ["Water plants"]
        assert home.conciergerie_name == "Alpha"

    async def test_title_is_unique_per_conciergerie_ignoring_case(self, world):
        with pytest.raises(ValueError, match="already exists"):
            await home_service.create_home(conciergerie_name="Alpha", data=HomeCreate(title="villa azur"))

    async def test_same_title_in_another_conciergerie_is_fine(self, world):
        home = await home_service.create_home(conciergerie_name="Beta", data=HomeCreate(title="Villa Azur"))

        assert home.conciergerie_name == "Beta"

    async def test_list_homes_by_conciergerie(self, world):
        homes = await home_service.list_homes(conciergerie_name="Beta")

        assert [home.title for home in homes] == ["Chalet Neige"]

    async def test_update_home(self, world):
        home = await home_service.update_home(
            home_id=world.home_id, conciergerie_name="Alpha", data=HomeUpdate(hours_of_gardening=4)
        )

        assert home.hours_of_gardening == 4
        assert home.title == "Villa Azur"

    async def test_update_keeping_own_title_is_allowed(self, world):
        home = await home_service.update_home(
            home_id=world.home_id, conciergerie_name="Alpha", data=HomeUpdate(title="VILLA AZUR")
        )

        assert home.title == "VILLA AZUR"

    async def test_only_owner_can_update(self, world):
        with pytest.raises(PermissionError):
            await home_service.update_home(
                home_id=world.other_home_id, conciergerie_name="Alpha", data=HomeUpdate(description="x")
            )

    async def test_missing_home_raises_key_error(self, world):
        with pytest.raises(KeyError):
            await home_service.get_home("999")

    async def test_home_with_open_mission_cannot_be_deleted(self, world):
        await machine.create_mission(
            Actor.conciergerie("Alpha"),
            MissionCreate(
                home_id=world.home_id,
                tasks=[TaskKind.CLEANING],
                start_date_time=utc(2030, 3, 10, 9),
                end_date_time=utc(2030, 3, 10, 17),
            ),
        )

        with pytest.raises(ValueError, match="in progress"):
            await home_service.delete_home(home_id=world.home_id, conciergerie_name="Alpha")

    async def test_delete_home_without_missions(self, world, patched_db):
        await home_service.delete_home(home_id=world.home_id, conciergerie_name="Alpha")

        assert [home["title"] for home in patched_db.records("homes")] == ["Chalet Neige"]

    async def test_completed_missions_are_removed_with_their_home(self, world, patched_db):
        await patched_db.create_record(
            collection="missions",
            data={
                "home_id": world.home_id,
                "tasks": [TaskKind.CLEANING],
                "start_date_time": utc(2030, 3, 10, 9),
                "end_date_time": utc(2030, 3, 10, 17),
                "conciergerie_name": "Alpha",
                "employee_id": world.employee_id,
                "status": "completed",
                "allowed_employees": [],
            },
        )

        await home_service.delete_home(home_id=world.home_id, conciergerie_name="Alpha")

        assert patched_db.records("missions") == []
        assert [home["title"] for home in patched_db.records("homes")] == ["Chalet Neige"]
