"""Return Line model."""
from sqlalchemy import Column, Text, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from ceasa.database import Base, BigIntId
from ceasa.utils.formatters import decimal_str


class ReturnLine(Base):
    """Return Line (item devolvido). Immutable after creation."""

    __tablename__ = 'return_line'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    return_id = Column(BigIntId, ForeignKey('merchandise_return.id'), nullable=False, index=True)
    product_id = Column(BigIntId, ForeignKey('product.id'), nullable=False)
    quantity = Column(Numeric(12, 3), nullable=False)
    unit_price = Column(Numeric(14, 2), nullable=True)
    reason = Column(Text, nullable=True)  # motivo especifico
    line_total = Column(Numeric(14, 2), nullable=False, default=0)

    # Relationships
    merchandise_return = relationship('MerchandiseReturn', back_populates='lines')
    product = relationship('Product')

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'quantity': decimal_str(self.quantity, '0.001'),
            'unit_price': decimal_str(self.unit_price),
            'reason': self.reason,
            'line_total': decimal_str(self.line_total),
        }

    def __repr__(self):
        return f"<ReturnLine(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"
