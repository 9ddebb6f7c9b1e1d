"""
Financial title models.
Titles live in two relations: store<->buyer and buyer<->supplier. Both use
UUID ids so a single identifier resolves to exactly one title.
"""
import enum
import uuid
from sqlalchemy import Column, Numeric, Date, DateTime, Enum, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ceasa.database import Base, BigIntId
from ceasa.utils.formatters import decimal_str, iso, enum_value


class TitleType(enum.Enum):
    """Title direction from the buyer's point of view."""
    RECEIVABLE = "RECEIVABLE"  # receber
    PAYABLE = "PAYABLE"        # pagar


class TitleStatus(enum.Enum):
    """Title status enum (aberto / parcial / pago / cancelado)."""
    OPEN = "OPEN"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


# Shared by both title relations
TITLE_TYPE_ENUM = Enum(TitleType, name='title_type')
TITLE_STATUS_ENUM = Enum(TitleStatus, name='title_status')


class StoreTitle(Base):
    """Title between a store and the buyer (titulo loja-comprador)."""

    __tablename__ = 'store_title'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(BigIntId, ForeignKey('tenant.id'), nullable=False, index=True)
    title_type = Column(TITLE_TYPE_ENUM, nullable=False)
    store_id = Column(BigIntId, ForeignKey('store.id'), nullable=False)
    manifest_id = Column(BigIntId, ForeignKey('manifest.id'), nullable=True, index=True)
    return_id = Column(BigIntId, ForeignKey('merchandise_return.id'), nullable=True)
    principal_amount = Column(Numeric(14, 2), nullable=False)
    deposit_amount = Column(Numeric(14, 2), nullable=False, default=0)
    total_amount = Column(Numeric(14, 2), nullable=False)
    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(TITLE_STATUS_ENUM, nullable=False, default=TitleStatus.OPEN)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    store = relationship('Store')
    manifest = relationship('Manifest')

    def to_dict(self):
        return {
            'id': str(self.id),
            'kind': 'loja',
            'title_type': enum_value(self.title_type),
            'store_id': self.store_id,
            'manifest_id': self.manifest_id,
            'return_id': self.return_id,
            'principal_amount': decimal_str(self.principal_amount),
            'deposit_amount': decimal_str(self.deposit_amount),
            'total_amount': decimal_str(self.total_amount),
            'issue_date': iso(self.issue_date),
            'due_date': iso(self.due_date),
            'status': enum_value(self.status),
            'paid_at': iso(self.paid_at),
        }

    def __repr__(self):
        return f"<StoreTitle(id={self.id}, type={self.title_type.value}, status={self.status.value})>"


class SupplierTitle(Base):
    """Title between the buyer and a supplier (titulo comprador-fornecedor)."""

    __tablename__ = 'supplier_title'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(BigIntId, ForeignKey('tenant.id'), nullable=False, index=True)
    title_type = Column(TITLE_TYPE_ENUM, nullable=False)
    supplier_id = Column(BigIntId, ForeignKey('supplier.id'), nullable=False)
    purchase_id = Column(BigIntId, ForeignKey('purchase.id'), nullable=True, index=True)
    principal_amount = Column(Numeric(14, 2), nullable=False)
    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(TITLE_STATUS_ENUM, nullable=False, default=TitleStatus.OPEN)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    supplier = relationship('Supplier')
    purchase = relationship('Purchase')

    def to_dict(self):
        return {
            'id': str(self.id),
            'kind': 'fornecedor',
            'title_type': enum_value(self.title_type),
            'supplier_id': self.supplier_id,
            'purchase_id': self.purchase_id,
            'principal_amount': decimal_str(self.principal_amount),
            'issue_date': iso(self.issue_date),
            'due_date': iso(self.due_date),
            'status': enum_value(self.status),
            'paid_at': iso(self.paid_at),
        }

    def __repr__(self):
        return f"<SupplierTitle(id={self.id}, type={self.title_type.value}, status={self.status.value})>"
