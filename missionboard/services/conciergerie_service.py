"""Conciergerie service for account creation and notification preferences."""

import logging

from missionboard.core import db_client
from missionboard.core.logging import span
from missionboard.domain.conciergerie import Conciergerie, ConciergerieNotificationSettings
from missionboard.domain.create_models import ConciergerieCreate
from missionboard.domain.notification import VerificationNotification
from missionboard.services import notification_service


logger = logging.getLogger(__name__)

COLLECTION = "conciergeries"


async def get_conciergerie(conciergerie_id: str) -> Conciergerie:
    """Fetch a conciergerie by ID, raising KeyError if not found."""
    record = await db_client.get_record(collection=COLLECTION, record_id=conciergerie_id)
    return Conciergerie.model_validate(record)


async def get_conciergerie_by_name(name: str) -> Conciergerie:
    """Fetch a conciergerie by its unique name, raising KeyError if not found."""
    record = await db_client.get_first_record(
        collection=COLLECTION,
        filter_query=f'name = "{db_client.sanitize_param(name)}"',
    )
    if record is None:
        msg = f"Conciergerie not found: {name}"
        raise KeyError(msg)
    return Conciergerie.model_validate(record)


async def list_conciergeries() -> list[Conciergerie]:
    records = await db_client.list_all_records(
        collection=COLLECTION,
        sort="+name",
    )
    return [Conciergerie.model_validate(record) for record in records]


async def create_conciergerie(data: ConciergerieCreate, *, user_id: str | None = None) -> Conciergerie:
    """Create a conciergerie and email it a verification link.

    Args:
        data: Conciergerie fields
        user_id: Identity to embed in the verification link (defaults to the new record ID)

    Returns:
        Created conciergerie

    Raises:
        ValueError: If the name is already taken
    """
    with span("conciergerie_service.create_conciergerie"):
        existing = await db_client.get_first_record(
            collection=COLLECTION,
            filter_query=f'name = "{db_client.sanitize_param(data.name)}"',
        )
        if existing is not None:
            msg = f"Conciergerie name already taken: {data.name}"
            raise ValueError(msg)

        record = await db_client.create_record(
            collection=COLLECTION,
            data={
                **data.model_dump(),
                "notification_settings": ConciergerieNotificationSettings().model_dump(),
            },
        )
        conciergerie = Conciergerie.model_validate(record)
        logger.info("Created conciergerie", extra={"conciergerie_name": conciergerie.name})

        await notification_service.dispatch(
            VerificationNotification(conciergerie=conciergerie, user_id=user_id or conciergerie.id)
        )
        return conciergerie


async def update_notification_settings(
    *,
    name: str,
    notification_settings: ConciergerieNotificationSettings,
) -> Conciergerie:
    """Replace a conciergerie's notification preferences."""
    with span("conciergerie_service.update_notification_settings"):
        conciergerie = await get_conciergerie_by_name(name)
        record = await db_client.update_record(
            collection=COLLECTION,
            record_id=conciergerie.id,
            data={"notification_settings": notification_settings.model_dump()},
        )
        return Conciergerie.model_validate(record)
