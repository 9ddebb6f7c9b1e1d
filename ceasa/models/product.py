"""Product model."""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ceasa.database import Base, BigIntId


class Product(Base):
    """Product (produto) bought at CEASA."""

    __tablename__ = 'product'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    tenant_id = Column(BigIntId, ForeignKey('tenant.id'), nullable=False)
    name = Column(String, nullable=False)
    code = Column(String, nullable=True)
    unit = Column(String(5), nullable=False, default='un')
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    tenant = relationship('Tenant')

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}')>"
