"""Packaging Balance model - materialized running total per store and packaging type."""
from sqlalchemy import Column, Integer, Numeric, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ceasa.database import Base, BigIntId
from ceasa.utils.formatters import decimal_str, iso


class PackagingBalance(Base):
    """
    Packaging balance (saldo de embalagens) held by a store.
    Created lazily by upsert on the first movement, never deleted.
    """
    __tablename__ = 'packaging_balance'
    __table_args__ = (
        UniqueConstraint('tenant_id', 'store_id', 'packaging_type_id', name='uq_packaging_balance_key'),
    )

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    tenant_id = Column(BigIntId, ForeignKey('tenant.id'), nullable=False)
    store_id = Column(BigIntId, ForeignKey('store.id'), nullable=False)
    packaging_type_id = Column(BigIntId, ForeignKey('packaging_type.id'), nullable=False)
    quantity_balance = Column(Integer, nullable=False, default=0)
    deposit_balance = Column(Numeric(14, 2), nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    store = relationship('Store')
    packaging_type = relationship('PackagingType')

    def to_dict(self):
        return {
            'id': self.id,
            'store_id': self.store_id,
            'packaging_type_id': self.packaging_type_id,
            'quantity_balance': self.quantity_balance,
            'deposit_balance': decimal_str(self.deposit_balance),
            'updated_at': iso(self.updated_at),
        }

    def __repr__(self):
        return (f"<PackagingBalance(store_id={self.store_id}, packaging_type_id={self.packaging_type_id}, "
                f"quantity_balance={self.quantity_balance})>")
