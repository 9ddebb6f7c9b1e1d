"""Packaging Movement model - append-only log of balance changes."""
import enum
from sqlalchemy import Column, Integer, Numeric, DateTime, Text, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ceasa.database import Base, BigIntId
from ceasa.utils.formatters import decimal_str, iso, enum_value


class MovementType(enum.Enum):
    """Movement type enum."""
    IN = "IN"            # entrada: packaging came back from the store
    OUT = "OUT"          # saida: packaging sent to the store
    ADJUST = "ADJUST"    # ajuste: signed manual correction


class PackagingReferenceType(enum.Enum):
    """What originated the movement."""
    MANIFEST = "MANIFEST"
    RETURN = "RETURN"
    MANUAL_ADJUSTMENT = "MANUAL_ADJUSTMENT"


class PackagingMovement(Base):
    """
    Packaging movement (movimentacao de embalagem).
    quantity/deposit_amount keep the values as informed; the *_delta
    columns keep the signed change applied to the balance.
    """
    __tablename__ = 'packaging_movement'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    tenant_id = Column(BigIntId, ForeignKey('tenant.id'), nullable=False, index=True)
    store_id = Column(BigIntId, ForeignKey('store.id'), nullable=False)
    packaging_type_id = Column(BigIntId, ForeignKey('packaging_type.id'), nullable=False)
    movement_type = Column(Enum(MovementType, name='packaging_movement_type'), nullable=False)
    quantity = Column(Integer, nullable=False)
    deposit_amount = Column(Numeric(14, 2), nullable=False, default=0)
    quantity_delta = Column(Integer, nullable=False)
    deposit_delta = Column(Numeric(14, 2), nullable=False)
    reference_type = Column(Enum(PackagingReferenceType, name='packaging_ref_type'), nullable=False)
    reference_id = Column(BigIntId, nullable=True)
    notes = Column(Text, nullable=True)
    movement_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    store = relationship('Store')
    packaging_type = relationship('PackagingType')

    def to_dict(self):
        return {
            'id': self.id,
            'store_id': self.store_id,
            'packaging_type_id': self.packaging_type_id,
            'movement_type': enum_value(self.movement_type),
            'quantity': self.quantity,
            'deposit_amount': decimal_str(self.deposit_amount),
            'quantity_delta': self.quantity_delta,
            'deposit_delta': decimal_str(self.deposit_delta),
            'reference_type': enum_value(self.reference_type),
            'reference_id': self.reference_id,
            'notes': self.notes,
            'movement_date': iso(self.movement_date),
        }

    def __repr__(self):
        return f"<PackagingMovement(id={self.id}, type={self.movement_type.value}, quantity={self.quantity})>"
