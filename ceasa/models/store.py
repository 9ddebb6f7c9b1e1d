"""Store model."""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ceasa.database import Base, BigIntId


class Store(Base):
    """Store (loja) that receives distributed goods."""

    __tablename__ = 'store'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    tenant_id = Column(BigIntId, ForeignKey('tenant.id'), nullable=False)
    name = Column(String(200), nullable=False)
    code = Column(String(30), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    tenant = relationship('Tenant')

    def __repr__(self):
        return f"<Store(id={self.id}, name='{self.name}')>"
