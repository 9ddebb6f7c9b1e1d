"""Merchandise Return (devolucao) model."""
import enum
from sqlalchemy import Column, String, Text, Numeric, DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ceasa.database import Base, BigIntId
from ceasa.utils.formatters import decimal_str, iso, enum_value


class ReturnStatus(enum.Enum):
    """Return status enum."""
    PENDING = "PENDING"
    PROCESSED = "PROCESSED"
    CANCELLED = "CANCELLED"


class ReturnTreatment(enum.Enum):
    """How a processed return is settled."""
    CREDIT = "CREDIT"        # credito: buyer owes the store
    EXCHANGE = "EXCHANGE"    # troca: goods replaced, no financial effect
    REVERSAL = "REVERSAL"    # estorno: reduces the open receivable of the manifest


class MerchandiseReturn(Base):
    """Merchandise return from a store to the buyer."""

    __tablename__ = 'merchandise_return'
    __table_args__ = (
        UniqueConstraint('tenant_id', 'return_number', name='uq_return_tenant_number'),
    )

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    tenant_id = Column(BigIntId, ForeignKey('tenant.id'), nullable=False, index=True)
    return_number = Column(String(30), nullable=False)
    store_id = Column(BigIntId, ForeignKey('store.id'), nullable=False)
    manifest_id = Column(BigIntId, ForeignKey('manifest.id'), nullable=True)
    return_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    reason = Column(Text, nullable=False)
    treatment = Column(Enum(ReturnTreatment, name='return_treatment'), nullable=False, default=ReturnTreatment.CREDIT)
    status = Column(Enum(ReturnStatus, name='return_status'), nullable=False, default=ReturnStatus.PENDING)
    total_amount = Column(Numeric(14, 2), nullable=False, default=0)
    notes = Column(Text, nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    store = relationship('Store')
    manifest = relationship('Manifest')
    lines = relationship('ReturnLine', back_populates='merchandise_return', cascade='all, delete-orphan',
                         order_by='ReturnLine.id')

    def to_dict(self, include_lines=True):
        data = {
            'id': self.id,
            'return_number': self.return_number,
            'store_id': self.store_id,
            'manifest_id': self.manifest_id,
            'return_date': iso(self.return_date),
            'reason': self.reason,
            'treatment': enum_value(self.treatment),
            'status': enum_value(self.status),
            'total_amount': decimal_str(self.total_amount),
            'notes': self.notes,
            'processed_at': iso(self.processed_at),
        }
        if include_lines:
            data['items'] = [line.to_dict() for line in self.lines]
        return data

    def __repr__(self):
        return f"<MerchandiseReturn(id={self.id}, return_number='{self.return_number}', status={self.status.value})>"
