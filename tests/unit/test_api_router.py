"""Tests for the HTTP API."""

import httpx
import pytest
from fastapi import FastAPI

from missionboard.interface.api_router import router


@pytest.fixture
async def client(world):
    app = FastAPI()
    app.include_router(router)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client


ALPHA = {"X-Conciergerie-Name": "Alpha"}
BETA = {"X-Conciergerie-Name": "Beta"}


def worker(employee_id: str) -> dict[str, str]:
    return {"X-Employee-Id": employee_id}


async def post_mission(client, world, **overrides):
    body = {
        "home_id": world.home_id,
        "tasks": ["cleaning"],
        "start_date_time": "2030-03-10T09:00:00Z",
        "end_date_time": "2030-03-10T17:00:00Z",
    }
    body.update(overrides)
    return await client.post("/missions", json=body, headers=ALPHA)


@pytest.mark.unit
class TestMissionEndpoints:
    """Mission routes and error mapping."""

    async def test_missing_identity_is_forbidden(self, client):
        response = await client.get("/missions")

        assert response.status_code == 403

    async def test_create_and_accept(self, client, world):
        created = await post_mission(client, world)
        mission_id = created.json()["id"]

        accepted = await client.post(f"/missions/{mission_id}/accept", headers=worker(world.employee_id))

        assert created.status_code == 200
        assert accepted.status_code == 200
        assert accepted.json()["status"] == "accepted"

    async def test_duplicate_is_conflict(self, client, world):
        await post_mission(client, world)

        response = await post_mission(client, world)

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "ERR_DUPLICATE_MISSION"

    async def test_invalid_window_is_unprocessable(self, client, world):
        response = await post_mission(client, world, end_date_time="2030-03-10T09:30:00Z")

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "ERR_VALIDATION"

    async def test_quota_days_are_returned(self, client, world):
        busy = await post_mission(
            client,
            world,
            tasks=["arrival"],
            start_date_time="2030-03-11T09:00:00Z",
            end_date_time="2030-03-11T17:00:00Z",
        )
        await client.post(f"/missions/{busy.json()['id']}/accept", headers=worker(world.employee_id))
        heavy = await post_mission(
            client,
            world,
            tasks=["cleaning", "gardening", "arrival"],
            end_date_time="2030-03-11T17:00:00Z",
        )

        response = await client.post(f"/missions/{heavy.json()['id']}/accept", headers=worker(world.employee_id))

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["code"] == "ERR_QUOTA_EXCEEDED"
        assert detail["quota_days"][0]["day"] == "2030-03-11"

    async def test_start_before_start_time_is_conflict(self, client, world):
        mission_id = (await post_mission(client, world)).json()["id"]
        await client.post(f"/missions/{mission_id}/accept", headers=worker(world.employee_id))

        response = await client.post(f"/missions/{mission_id}/start", headers=worker(world.employee_id))

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "ERR_TOO_EARLY_TO_START"

    async def test_other_conciergerie_cannot_read_mission(self, client, world):
        mission_id = (await post_mission(client, world)).json()["id"]

        response = await client.get(f"/missions/{mission_id}", headers=BETA)

        assert response.status_code == 403

    async def test_worker_list_is_filtered_by_allow_list(self, client, world):
        await post_mission(client, world, allowed_employees=[world.second_employee_id])

        own = await client.get("/missions", headers=worker(world.second_employee_id))
        other = await client.get("/missions", headers=worker(world.employee_id))

        assert len(own.json()) == 1
        assert other.json() == []

    async def test_mission_points(self, client, world):
        mission_id = (await post_mission(client, world, tasks=["cleaning", "arrival"])).json()["id"]

        response = await client.get(f"/missions/{mission_id}/points", headers=ALPHA)

        assert response.json() == {"total": 4, "per_day": 3.0}

    async def test_unknown_mission_is_not_found(self, client, world):
        response = await client.delete("/missions/999", headers=ALPHA)

        assert response.status_code == 404


@pytest.mark.unit
class TestOtherEndpoints:
    """Homes, workers and the notification queue."""

    async def test_home_title_clash_is_unprocessable(self, client):
        response = await client.post("/homes", json={"title": "VILLA AZUR"}, headers=ALPHA)

        assert response.status_code == 422

    async def test_worker_cannot_create_home(self, client, world):
        response = await client.post("/homes", json={"title": "Mas"}, headers=worker(world.employee_id))

        assert response.status_code == 403

    async def test_employee_load(self, client, world):
        mission_id = (await post_mission(client, world, tasks=["arrival"])).json()["id"]
        await client.post(f"/missions/{mission_id}/accept", headers=worker(world.employee_id))

        response = await client.get(
            f"/employees/{world.employee_id}/load", params={"day": "2030-03-10"}, headers=ALPHA
        )

        assert response.json()["points"] == 1
        assert response.json()["limit"] == 3

    async def test_unknown_device_is_not_found(self, client):
        response = await client.get("/employees/by-device/nope")

        assert response.status_code == 404

    async def test_unknown_status_is_rejected(self, client, world):
        response = await client.post(
            f"/employees/{world.pending_employee_id}/status", json={"status": "maybe"}, headers=ALPHA
        )

        assert response.status_code == 422

    async def test_enqueue_validates_payload(self, client):
        response = await client.post("/notifications/jobs", json={"kind": "unknown"}, headers=ALPHA)

        assert response.status_code == 422

    async def test_enqueue_and_list_jobs(self, client):
        payload = {
            "kind": "verification",
            "user_id": "42",
            "conciergerie": {"id": "9", "name": "Gamma", "email": "gamma@conciergerie.test"},
        }

        created = await client.post("/notifications/jobs", json=payload, headers=ALPHA)
        listed = await client.get("/notifications/jobs", headers=ALPHA)

        assert created.status_code == 200
        assert [job["id"] for job in listed.json()] == [created.json()["id"]]
        assert listed.json()[0]["attempts"] == 1
