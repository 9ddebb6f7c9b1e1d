"""
Audit logging service for tracking workflow transitions.
"""
from ceasa.models.audit_log import AuditLog, AuditAction
from flask import request, has_request_context
from sqlalchemy.exc import SQLAlchemyError
import json
import logging

logger = logging.getLogger(__name__)


def log_action(
    session,
    tenant_id: int,
    user_id: int,
    action: AuditAction,
    resource_type: str = None,
    resource_id=None,
    details: dict = None
):
    """
    Add an audit entry to the caller's unit of work.

    Args:
        session: Database session
        tenant_id: Tenant the action belongs to
        user_id: Acting user (None for system actions)
        action: AuditAction enum value
        resource_type: Type of resource affected (e.g., 'purchase', 'title')
        resource_id: ID of the affected resource
        details: Dict with additional details (will be JSON encoded)
    """
    try:
        ip_address = None
        user_agent = None
        if has_request_context():
            ip_address = request.remote_addr
            user_agent = request.headers.get('User-Agent', '')[:255]

        details_json = json.dumps(details, default=str) if details else None

        session.add(AuditLog(
            tenant_id=tenant_id,
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            details=details_json,
            ip_address=ip_address,
            user_agent=user_agent,
        ))
        # Note: Caller is responsible for committing the session

        logger.info(f"Audit log created: {action.value} by user {user_id} on {resource_type} {resource_id}")

    except (SQLAlchemyError, TypeError, ValueError) as e:
        logger.error(f"Failed to create audit log: {e}")
