"""UserTenant model - many-to-many relationship between users and tenants with roles."""
import enum
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ceasa.database import Base, BigIntId


class UserRole(enum.Enum):
    """User roles within a tenant."""
    OWNER = 'OWNER'              # tenant_owner
    MANAGER = 'MANAGER'          # gestor
    BUYER = 'BUYER'              # comprador
    FINANCE = 'FINANCE'          # financeiro
    STORE_OPERATOR = 'STORE_OPERATOR'


class UserTenant(Base):
    """UserTenant model - links users to tenants with roles and attributes."""

    __tablename__ = 'user_tenant'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    user_id = Column(BigIntId, ForeignKey('app_user.id'), nullable=False)
    tenant_id = Column(BigIntId, ForeignKey('tenant.id'), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.STORE_OPERATOR.value)
    # perfil_financeiro: grants access to financial titles regardless of role
    finance_profile = Column(Boolean, nullable=False, default=False)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    user = relationship('AppUser', back_populates='user_tenants')
    tenant = relationship('Tenant', back_populates='user_tenants')

    def __repr__(self):
        return f"<UserTenant(user_id={self.user_id}, tenant_id={self.tenant_id}, role='{self.role}')>"

    def is_owner(self):
        """Check if user is owner of tenant."""
        return self.role == UserRole.OWNER.value

    def is_manager(self):
        """Check if user is manager or owner."""
        return self.role in [UserRole.OWNER.value, UserRole.MANAGER.value]
