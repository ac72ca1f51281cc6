"""
Audit Service

Persists admin actions to audit_logs and mirrors them to the structured
"audit" logger. Writing an audit row never breaks the action being audited:
the insert runs in a savepoint and failures are only logged.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.audit_log import filter_sensitive, log_admin_action
from app.core.request_utils import extract_client_ip, extract_user_agent
from app.models.audit_log import AuditAction, AuditLog

logger = logging.getLogger(__name__)


class AuditService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log(
        self,
        action: AuditAction,
        entity_type: str,
        entity_id: Optional[Any] = None,
        user=None,
        request: Optional[Request] = None,
        previous_data: Optional[Dict[str, Any]] = None,
        new_data: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        success: bool = True,
    ) -> Optional[AuditLog]:
        """
        Record an admin action.

        Args:
            action: AuditAction member
            entity_type: "shipment", "carrier", "quote", "user", "file", ...
            entity_id: ID of the affected entity
            user: Acting admin (User) if known
            request: Source request, for IP and user agent
            previous_data / new_data: JSON-safe snapshots (sensitive keys dropped)
            metadata: Extra context
        """
        user_id = getattr(user, "id", None)
        user_email = getattr(user, "email", None)
        ip_address = extract_client_ip(request) if request is not None else None
        if ip_address is None and request is not None and request.client:
            ip_address = request.client.host
        user_agent = extract_user_agent(request) if request is not None else None

        log_admin_action(
            action=action.value,
            user_id=user_id,
            user_email=user_email,
            resource_type=entity_type,
            resource_id=entity_id,
            details=metadata,
            ip_address=ip_address,
            success=success,
        )

        entry = AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            user_id=user_id,
            user_email=user_email,
            ip_address=ip_address,
            user_agent=user_agent[:200] if user_agent else None,
            previous_data=filter_sensitive(previous_data),
            new_data=filter_sensitive(new_data),
            event_metadata=filter_sensitive(metadata),
        )
        try:
            async with self.db.begin_nested():
                self.db.add(entry)
        except SQLAlchemyError as e:
            logger.error(f"Failed to write audit log {action.value} {entity_type}/{entity_id}: {e}")
            return None
        return entry
