"""Purchase model."""
import enum
from sqlalchemy import Column, String, Text, Numeric, DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ceasa.database import Base, BigIntId
from ceasa.utils.formatters import decimal_str, iso, enum_value


class PurchaseStatus(enum.Enum):
    """Purchase status enum (pendente / concluida / cancelada)."""
    PENDING = "PENDING"
    CONCLUDED = "CONCLUDED"
    CANCELLED = "CANCELLED"


class PaymentMethod(enum.Enum):
    """Payment method agreed with the supplier."""
    CASH = "CASH"          # dinheiro
    PIX = "PIX"
    BOLETO = "BOLETO"
    CARD = "CARD"          # cartao
    TRANSFER = "TRANSFER"
    TERM = "TERM"          # a prazo


PAYMENT_METHODS = [m.value for m in PaymentMethod]

# Portuguese names accepted from clients
PAYMENT_METHOD_ALIASES = {
    'DINHEIRO': 'CASH',
    'CARTAO': 'CARD',
    'TRANSFERENCIA': 'TRANSFER',
    'PRAZO': 'TERM',
}


def normalize_payment_method(value) -> str:
    """
    Normalize payment method value to string for DB storage.

    Args:
        value: Can be None, PaymentMethod enum, or string

    Returns:
        str: one of PAYMENT_METHODS (TERM when None)

    Raises:
        ValueError: If value is invalid
    """
    if value is None:
        return PaymentMethod.TERM.value

    if isinstance(value, PaymentMethod):
        return value.value

    normalized = str(value).upper().strip()
    normalized = PAYMENT_METHOD_ALIASES.get(normalized, normalized)
    if normalized in PAYMENT_METHODS:
        return normalized

    raise ValueError(f"Invalid payment method: {value}. Must be one of {', '.join(PAYMENT_METHODS)}.")


class Purchase(Base):
    """Purchase (compra) made by the central buyer from a supplier."""

    __tablename__ = 'purchase'
    __table_args__ = (
        UniqueConstraint('tenant_id', 'purchase_number', name='uq_purchase_tenant_number'),
    )

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    tenant_id = Column(BigIntId, ForeignKey('tenant.id'), nullable=False, index=True)
    purchase_number = Column(String(30), nullable=False)
    supplier_id = Column(BigIntId, ForeignKey('supplier.id'), nullable=False)
    buyer_user_id = Column(BigIntId, ForeignKey('app_user.id'), nullable=True)
    purchase_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    subtotal_amount = Column(Numeric(14, 2), nullable=False, default=0)
    deposit_amount = Column(Numeric(14, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(14, 2), nullable=False, default=0)
    surcharge_amount = Column(Numeric(14, 2), nullable=False, default=0)
    total_amount = Column(Numeric(14, 2), nullable=False, default=0)
    status = Column(Enum(PurchaseStatus, name='purchase_status'), nullable=False, default=PurchaseStatus.PENDING)
    payment_method = Column(String(20), nullable=False, default='TERM', server_default='TERM')
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    tenant = relationship('Tenant')
    supplier = relationship('Supplier', back_populates='purchases')
    lines = relationship('PurchaseLine', back_populates='purchase', cascade='all, delete-orphan',
                         order_by='PurchaseLine.id')

    def to_dict(self, include_lines=True):
        data = {
            'id': self.id,
            'purchase_number': self.purchase_number,
            'supplier_id': self.supplier_id,
            'buyer_user_id': self.buyer_user_id,
            'purchase_date': iso(self.purchase_date),
            'subtotal_amount': decimal_str(self.subtotal_amount),
            'deposit_amount': decimal_str(self.deposit_amount),
            'discount_amount': decimal_str(self.discount_amount),
            'surcharge_amount': decimal_str(self.surcharge_amount),
            'total_amount': decimal_str(self.total_amount),
            'status': enum_value(self.status),
            'payment_method': self.payment_method,
            'notes': self.notes,
        }
        if include_lines:
            data['items'] = [line.to_dict() for line in self.lines]
        return data

    def __repr__(self):
        return f"<Purchase(id={self.id}, purchase_number='{self.purchase_number}', status={self.status.value})>"
