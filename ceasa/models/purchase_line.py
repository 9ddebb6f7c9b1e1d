"""Purchase Line model."""
from sqlalchemy import Column, String, Integer, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from ceasa.database import Base, BigIntId
from ceasa.utils.formatters import decimal_str

UNITS = ['kg', 'un', 'cx', 'dz', 'mc', 'lt']


class PurchaseLine(Base):
    """Purchase Line (item da compra)."""

    __tablename__ = 'purchase_line'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    purchase_id = Column(BigIntId, ForeignKey('purchase.id'), nullable=False, index=True)
    product_id = Column(BigIntId, ForeignKey('product.id'), nullable=False)
    quantity = Column(Numeric(12, 3), nullable=False)
    unit = Column(String(5), nullable=False, default='un')
    unit_price = Column(Numeric(14, 2), nullable=False)
    packaging_type_id = Column(BigIntId, ForeignKey('packaging_type.id'), nullable=True)
    packaging_qty = Column(Integer, nullable=False, default=0)
    deposit_total = Column(Numeric(14, 2), nullable=False, default=0)
    line_total = Column(Numeric(14, 2), nullable=False)

    # Relationships
    purchase = relationship('Purchase', back_populates='lines')
    product = relationship('Product')
    packaging_type = relationship('PackagingType')

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'quantity': decimal_str(self.quantity, '0.001'),
            'unit': self.unit,
            'unit_price': decimal_str(self.unit_price),
            'packaging_type_id': self.packaging_type_id,
            'packaging_qty': self.packaging_qty,
            'deposit_total': decimal_str(self.deposit_total),
            'line_total': decimal_str(self.line_total),
        }

    def __repr__(self):
        return f"<PurchaseLine(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"
