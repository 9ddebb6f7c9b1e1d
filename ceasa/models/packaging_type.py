"""Returnable packaging type model."""
from sqlalchemy import Column, String, Numeric, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from ceasa.database import Base, BigIntId


class PackagingType(Base):
    """
    Returnable packaging (embalagem retornável), e.g. plastic crate.
    Carries a refundable deposit per unit.
    """
    __tablename__ = 'packaging_type'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    tenant_id = Column(BigIntId, ForeignKey('tenant.id'), nullable=False)
    description = Column(String(100), nullable=False)  # e.g., "Caixa plástica K"
    deposit_value = Column(Numeric(14, 2), nullable=False, default=0)
    unit = Column(String(5), nullable=False, default='un')
    active = Column(Boolean, default=True)

    # Relationships
    tenant = relationship('Tenant')

    def __repr__(self):
        return f"<PackagingType(id={self.id}, description='{self.description}')>"
