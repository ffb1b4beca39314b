"""Home service for CRUD operations on managed properties."""

import logging
from datetime import UTC, datetime

from missionboard.core import db_client
from missionboard.core.logging import span
from missionboard.domain.create_models import HomeCreate
from missionboard.domain.home import Home
from missionboard.domain.update_models import HomeUpdate
from missionboard.services import mission_service


logger = logging.getLogger(__name__)

COLLECTION = "homes"


def _normalize_title(title: str) -> str:
    return title.strip().casefold()


async def get_home(home_id: str) -> Home:
    """Fetch a home by ID, raising KeyError if not found."""
    record = await db_client.get_record(collection=COLLECTION, record_id=home_id)
    return Home.model_validate(record)


async def list_homes(*, conciergerie_name: str | None = None) -> list[Home]:
    """List homes, optionally restricted to one conciergerie."""
    filter_query = ""
    if conciergerie_name is not None:
        filter_query = f'conciergerie_name = "{db_client.sanitize_param(conciergerie_name)}"'
    records = await db_client.list_all_records(
        collection=COLLECTION,
        filter_query=filter_query,
        sort="+title",
    )
    return [Home.model_validate(record) for record in records]


async def _ensure_title_available(*, conciergerie_name: str, title: str, exclude_id: str | None = None) -> None:
    wanted = _normalize_title(title)
    for home in await list_homes(conciergerie_name=conciergerie_name):
        if home.id != exclude_id and _normalize_title(home.title) == wanted:
            msg = f"A home named '{home.title}' already exists"
            raise ValueError(msg)


async def _get_owned_home(*, home_id: str, conciergerie_name: str) -> Home:
    home = await get_home(home_id)
    if home.conciergerie_name != conciergerie_name:
        msg = f"Home {home_id} belongs to another conciergerie"
        raise PermissionError(msg)
    return home


async def create_home(*, conciergerie_name: str, data: HomeCreate) -> Home:
    """Create a home owned by a conciergerie.

    Raises:
        ValueError: If the conciergerie already has a home with the same title
    """
    with span("home_service.create_home"):
        await _ensure_title_available(conciergerie_name=conciergerie_name, title=data.title)

        record = await db_client.create_record(
            collection=COLLECTION,
            data={
                **data.model_dump(),
                "conciergerie_name": conciergerie_name,
                "modified_date": datetime.now(UTC),
            },
        )
        logger.info("Created home", extra={"home_id": record["id"], "conciergerie_name": conciergerie_name})
        return Home.model_validate(record)


async def update_home(*, home_id: str, conciergerie_name: str, data: HomeUpdate) -> Home:
    """Update a home owned by the caller.

    Raises:
        KeyError: If the home does not exist
        PermissionError: If the caller does not own it
        ValueError: If the new title collides with another home
    """
    with span("home_service.update_home"):
        await _get_owned_home(home_id=home_id, conciergerie_name=conciergerie_name)

        changes = data.model_dump(exclude_none=True)
        if "title" in changes:
            changes["title"] = changes["title"].strip()
            await _ensure_title_available(
                conciergerie_name=conciergerie_name,
                title=changes["title"],
                exclude_id=home_id,
            )
        if not changes:
            return await get_home(home_id)

        changes["modified_date"] = datetime.now(UTC)
        record = await db_client.update_record(collection=COLLECTION, record_id=home_id, data=changes)
        logger.info("Updated home", extra={"home_id": home_id, "fields": sorted(changes)})
        return Home.model_validate(record)


async def delete_home(*, home_id: str, conciergerie_name: str) -> None:
    """Delete a home that has no open missions, together with its completed ones.

    Raises:
        KeyError: If the home does not exist
        PermissionError: If the caller does not own it
        ValueError: If missions that are not completed still reference it
    """
    with span("home_service.delete_home"):
        await _get_owned_home(home_id=home_id, conciergerie_name=conciergerie_name)

        missions = await mission_service.list_missions(home_id=home_id)
        open_missions = [mission for mission in missions if not mission.is_completed]
        if open_missions:
            msg = f"Home {home_id} still has {len(open_missions)} mission(s) in progress"
            raise ValueError(msg)

        # Missions reference their home; completed ones go first
        for mission in missions:
            await db_client.delete_record(collection=mission_service.COLLECTION, record_id=mission.id)
        if missions:
            logger.info("Purged completed missions", extra={"home_id": home_id, "count": len(missions)})

        await db_client.delete_record(collection=COLLECTION, record_id=home_id)
        logger.info("Deleted home", extra={"home_id": home_id, "conciergerie_name": conciergerie_name})
