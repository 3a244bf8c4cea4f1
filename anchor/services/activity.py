from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from anchor.domain.models import ActivityEvent
from anchor.persistence.db import SessionLocal


logger = logging.getLogger(__name__)


def normalize_metadata(value: Any) -> Any:
    # Coerce dates and decimals so metadata serializes into JSON columns.
    if isinstance(value, dict):
        return {str(key): normalize_metadata(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize_metadata(item) for item in value]
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


async def record_activity(
    *,
    session: AsyncSession | None = None,
    tenant_id: str,
    client_id: str,
    user_id: str,
    event_type: str,
    description: str,
    metadata: dict[str, Any] | None = None,
    policy_id: str | None = None,
) -> ActivityEvent | None:
    """Append an activity event without ever failing the caller.

    With a session the event joins the caller's transaction inside a
    savepoint, so a failed insert leaves the outer write intact. Without a
    session the event is committed on its own.
    """
    event = ActivityEvent(
        tenant_id=tenant_id,
        client_id=client_id,
        user_id=user_id,
        policy_id=policy_id,
        type=event_type,
        description=description,
        metadata_json=normalize_metadata(metadata or {}),
    )

    if session is None:
        async with SessionLocal() as activity_session:
            try:
                activity_session.add(event)
                await activity_session.commit()
            except SQLAlchemyError as exc:
                await activity_session.rollback()
                logger.warning(
                    "activity_event_write_failed event_type=%s tenant_id=%s client_id=%s",
                    event_type,
                    tenant_id,
                    client_id,
                    exc_info=exc,
                )
                return None
        logger.debug("activity_event_recorded event_type=%s client_id=%s", event_type, client_id)
        return event

    try:
        async with session.begin_nested():
            session.add(event)
    except SQLAlchemyError as exc:
        logger.warning(
            "activity_event_write_failed event_type=%s tenant_id=%s client_id=%s",
            event_type,
            tenant_id,
            client_id,
            exc_info=exc,
        )
        return None
    logger.debug("activity_event_recorded event_type=%s client_id=%s", event_type, client_id)
    return event
