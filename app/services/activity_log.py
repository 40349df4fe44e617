"""Audit trail writer."""

from typing import Any, Dict, Optional

import structlog
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.activity_log import ActivityLog

logger = structlog.get_logger(__name__)


def client_ip(request: Optional[Request]) -> Optional[str]:
    """
    Caller IP as seen by the ASGI server.

    Forwarded headers are applied by the server for trusted proxies only
    (``forwarded_allow_ips``), so the raw header is never read here.
    """
    if request is None or request.client is None:
        return None
    return request.client.host


def log_activity(
    session: AsyncSession,
    user_id,
    action: str,
    *,
    resource_type: Optional[str] = None,
    resource_id: Any = None,
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
) -> ActivityLog:
    """
    Stage an ActivityLog row in the caller's transaction.

    The row is committed together with the change it describes.
    """
    entry = ActivityLog(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        details=details or {},
        ip_address=client_ip(request),
    )
    session.add(entry)
    logger.info("activity_logged", action=action, user_id=str(user_id), resource_type=resource_type)
    return entry
