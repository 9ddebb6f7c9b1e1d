"""Supplier model."""
from sqlalchemy import Column, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ceasa.database import Base, BigIntId


class Supplier(Base):
    """Supplier (fornecedor)."""

    __tablename__ = 'supplier'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    tenant_id = Column(BigIntId, ForeignKey('tenant.id'), nullable=False)
    name = Column(String, nullable=False)
    document = Column(String, nullable=True)  # CPF/CNPJ
    phone = Column(String, nullable=True)
    pix_key = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    tenant = relationship('Tenant')
    purchases = relationship('Purchase', back_populates='supplier')

    def __repr__(self):
        return f"<Supplier(id={self.id}, name='{self.name}')>"
