"""
Audit trail helpers.

Entries are added to the caller's session and committed together with
the change they describe.
"""

import json
import logging
from typing import Any, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from flame_kitchen.models import AuditLog

logger = logging.getLogger(__name__)


def record_audit(
    db: AsyncSession,
    action: str,
    entity: str,
    entity_id: Optional[str] = None,
    user_id: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
    request: Optional[Request] = None,
) -> AuditLog:
    """
    Stage an audit entry on the session.

    Args:
        db: Session the audited change is written with
        action: Upper-case action name, e.g. ``CREATE_ORDER``
        entity: Entity type, e.g. ``Order``
        entity_id: Id of the affected row
        user_id: Acting user, if any
        details: JSON-serializable context
        request: Source of the client IP and user agent
    """
    entry = AuditLog(
        user_id=user_id,
        action=action,
        entity=entity,
        entity_id=entity_id,
        details=json.dumps(details, default=str) if details else None,
    )
    if request is not None:
        entry.ip_address = request.client.host if request.client else None
        user_agent = request.headers.get("user-agent")
        entry.user_agent = user_agent[:500] if user_agent else None

    db.add(entry)
    logger.debug(f"Audit {action} on {entity} {entity_id or ''}")
    return entry
