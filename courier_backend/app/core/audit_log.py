"""
Audit logging for admin actions

Track administrative actions for accountability:
- Records who did what and when
- Logs to the structured "audit" logger (persisted rows: AuditService)
"""
import logging
from datetime import datetime, timezone
from typing import Optional, Any

from app.core.config import settings

# Structured audit logger
audit_logger = logging.getLogger("audit")
audit_logger.setLevel(logging.INFO)

SENSITIVE_KEYS = ("password", "current_password", "new_password", "secret", "token", "key", "credential")


def filter_sensitive(details: Optional[dict]) -> Optional[dict]:
    """Drop credential-like keys (top level only)."""
    if not details:
        return details
    return {
        k: v for k, v in details.items()
        if k.lower() not in SENSITIVE_KEYS
    }


def log_admin_action(
    action: str,
    user_id: Optional[int],
    user_email: Optional[str],
    resource_type: str,
    resource_id: Optional[Any] = None,
    details: Optional[dict] = None,
    ip_address: Optional[str] = None,
    success: bool = True,
):
    """
    Log an administrative action.

    Args:
        action: AuditAction value (e.g., "SHIPMENT_CREATED")
        user_id: ID of the admin performing the action
        user_email: Email of the admin
        resource_type: Type of resource affected (e.g., "shipment", "carrier")
        resource_id: ID of the affected resource (if applicable)
        details: Additional context about the action
        ip_address: IP address of the request
        success: Whether the action succeeded
    """
    user_email = user_email or "unknown"
    log_entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "action": action,
        "admin_id": user_id,
        "admin_email": user_email,
        "resource_type": resource_type,
        "resource_id": str(resource_id) if resource_id is not None else None,
        "success": success,
        "ip_address": ip_address,
        "environment": settings.ENVIRONMENT,
    }

    if details:
        log_entry["details"] = filter_sensitive(details)

    if success:
        audit_logger.info(
            f"AUDIT: {action} by {user_email} on {resource_type}/{resource_id}",
            extra={"audit": log_entry}
        )
    else:
        audit_logger.warning(
            f"AUDIT FAILED: {action} by {user_email} on {resource_type}/{resource_id}",
            extra={"audit": log_entry}
        )
