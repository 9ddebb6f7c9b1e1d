"""
Audit Log model for tracking workflow transitions.
"""
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from ceasa.database import Base, BigIntId


class AuditAction(enum.Enum):
    """Enumeration of auditable actions."""
    # Purchases
    PURCHASE_CREATED = "PURCHASE_CREATED"
    PURCHASE_UPDATED = "PURCHASE_UPDATED"
    PURCHASE_CONCLUDED = "PURCHASE_CONCLUDED"
    PURCHASE_CANCELLED = "PURCHASE_CANCELLED"
    PURCHASE_DELETED = "PURCHASE_DELETED"

    # Manifests
    MANIFEST_CREATED = "MANIFEST_CREATED"
    MANIFEST_UPDATED = "MANIFEST_UPDATED"
    MANIFEST_FINALIZED = "MANIFEST_FINALIZED"
    MANIFEST_CANCELLED = "MANIFEST_CANCELLED"

    # Packaging
    PACKAGING_ADJUSTED = "PACKAGING_ADJUSTED"

    # Returns
    RETURN_CREATED = "RETURN_CREATED"
    RETURN_PROCESSED = "RETURN_PROCESSED"
    RETURN_CANCELLED = "RETURN_CANCELLED"

    # Titles
    TITLE_SETTLED = "TITLE_SETTLED"
    TITLE_REVERSED = "TITLE_REVERSED"
    TITLE_CANCELLED = "TITLE_CANCELLED"


class AuditLog(Base):
    """
    Audit log for tracking user actions.
    Multi-tenant: filtered by tenant_id.
    """
    __tablename__ = 'audit_log'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    tenant_id = Column(BigIntId, ForeignKey('tenant.id'), nullable=False, index=True)
    user_id = Column(BigIntId, ForeignKey('app_user.id'), nullable=True)
    action = Column(SQLEnum(AuditAction, name='audit_action'), nullable=False, index=True)
    resource_type = Column(String(50))  # e.g., 'purchase', 'manifest', 'title'
    resource_id = Column(String(64))  # int ids and title UUIDs
    details = Column(Text)  # JSON with additional details
    ip_address = Column(String(45))  # IPv4 or IPv6
    user_agent = Column(String(255))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)

    # Relationships
    tenant = relationship('Tenant')
    user = relationship('AppUser')

    def __repr__(self):
        return f"<AuditLog {self.action.value} by user {self.user_id} at {self.created_at}>"
