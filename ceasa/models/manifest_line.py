"""Manifest Line model."""
from sqlalchemy import Column, Integer, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from ceasa.database import Base, BigIntId
from ceasa.utils.formatters import decimal_str


class ManifestLine(Base):
    """Manifest Line (item do romaneio): what one store receives of one product."""

    __tablename__ = 'manifest_line'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    manifest_id = Column(BigIntId, ForeignKey('manifest.id'), nullable=False, index=True)
    store_id = Column(BigIntId, ForeignKey('store.id'), nullable=False, index=True)
    product_id = Column(BigIntId, ForeignKey('product.id'), nullable=False)
    purchase_line_id = Column(BigIntId, ForeignKey('purchase_line.id'), nullable=True, index=True)
    quantity = Column(Numeric(12, 3), nullable=False)
    unit_price = Column(Numeric(14, 2), nullable=False)
    packaging_type_id = Column(BigIntId, ForeignKey('packaging_type.id'), nullable=True)
    packaging_qty = Column(Integer, nullable=False, default=0)
    deposit_total = Column(Numeric(14, 2), nullable=False, default=0)
    line_total = Column(Numeric(14, 2), nullable=False)

    # Relationships
    manifest = relationship('Manifest', back_populates='lines')
    store = relationship('Store')
    product = relationship('Product')
    purchase_line = relationship('PurchaseLine')
    packaging_type = relationship('PackagingType')

    def to_dict(self):
        return {
            'id': self.id,
            'store_id': self.store_id,
            'product_id': self.product_id,
            'purchase_line_id': self.purchase_line_id,
            'quantity': decimal_str(self.quantity, '0.001'),
            'unit_price': decimal_str(self.unit_price),
            'packaging_type_id': self.packaging_type_id,
            'packaging_qty': self.packaging_qty,
            'deposit_total': decimal_str(self.deposit_total),
            'line_total': decimal_str(self.line_total),
        }

    def __repr__(self):
        return f"<ManifestLine(id={self.id}, store_id={self.store_id}, product_id={self.product_id})>"
