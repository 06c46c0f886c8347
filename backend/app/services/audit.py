"""Audit Trail — records who changed what, inside the caller's transaction.

Invariants:
    - record_audit only adds to the session; the route's commit persists it with
      the change it describes (no audit row for rolled-back work)
    - Snapshots never contain password hashes
"""

import logging
from typing import Any

from fastapi.encoders import jsonable_encoder
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.domain_types import AuditAction
from app.core.tenancy import CurrentUser
from app.models.audit import AuditLog

logger = logging.getLogger(__name__)

_REDACTED = {"password", "bank_details"}


def snapshot(record: Any) -> dict:
    """Column values of an ORM row as JSON-safe dict."""
    values = {
        attr.key: getattr(record, attr.key)
        for attr in inspect(record).mapper.column_attrs
        if attr.key not in _REDACTED
    }
    return jsonable_encoder(values)


def record_audit(
    db: AsyncSession,
    user: CurrentUser | None,
    action: AuditAction,
    entity: str,
    entity_id: Any = None,
    school_id: Any = None,
    old_value: dict | None = None,
    new_value: dict | None = None,
) -> AuditLog:
    entry = AuditLog(
        school_id=school_id if school_id is not None else (user.school_id if user else None),
        user_id=user.id if user else None,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        old_value=old_value,
        new_value=new_value,
    )
    db.add(entry)
    logger.info(
        f"{action.value} {entity}",
        extra={
            "user_id": user.id if user else None, "entity": entity,
            "entity_id": entity_id, "school_id": entry.school_id,
        },
    )
    return entry
