"""Distribution manifest (romaneio) model."""
import enum
from sqlalchemy import Column, Text, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ceasa.database import Base, BigIntId
from ceasa.utils.formatters import iso, enum_value


class ManifestStatus(enum.Enum):
    """Manifest status enum (rascunho / finalizado / cancelado)."""
    DRAFT = "DRAFT"
    FINALIZED = "FINALIZED"
    CANCELLED = "CANCELLED"


class Manifest(Base):
    """
    Distribution manifest (romaneio).
    Lists what each store receives; finalization bills the stores and
    moves returnable packaging to them.
    """
    __tablename__ = 'manifest'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    tenant_id = Column(BigIntId, ForeignKey('tenant.id'), nullable=False, index=True)
    buyer_user_id = Column(BigIntId, ForeignKey('app_user.id'), nullable=True)
    manifest_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    status = Column(Enum(ManifestStatus, name='manifest_status'), nullable=False, default=ManifestStatus.DRAFT)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    tenant = relationship('Tenant')
    lines = relationship('ManifestLine', back_populates='manifest', cascade='all, delete-orphan',
                         order_by='ManifestLine.id')

    def to_dict(self, include_lines=True):
        data = {
            'id': self.id,
            'buyer_user_id': self.buyer_user_id,
            'manifest_date': iso(self.manifest_date),
            'status': enum_value(self.status),
            'notes': self.notes,
        }
        if include_lines:
            data['items'] = [line.to_dict() for line in self.lines]
        return data

    def __repr__(self):
        return f"<Manifest(id={self.id}, status={self.status.value})>"
