"""Models package - exports all SQLAlchemy models."""
# SaaS Core Models
from ceasa.models.app_user import AppUser
from ceasa.models.tenant import Tenant
from ceasa.models.user_tenant import UserTenant, UserRole

# Master data
from ceasa.models.store import Store
from ceasa.models.supplier import Supplier
from ceasa.models.product import Product
from ceasa.models.packaging_type import PackagingType

# Workflows
from ceasa.models.purchase import Purchase, PurchaseStatus, PaymentMethod, normalize_payment_method
from ceasa.models.purchase_line import PurchaseLine, UNITS
from ceasa.models.manifest import Manifest, ManifestStatus
from ceasa.models.manifest_line import ManifestLine
from ceasa.models.packaging_balance import PackagingBalance
from ceasa.models.packaging_movement import PackagingMovement, MovementType, PackagingReferenceType
from ceasa.models.merchandise_return import MerchandiseReturn, ReturnStatus, ReturnTreatment
from ceasa.models.return_line import ReturnLine
from ceasa.models.financial_title import StoreTitle, SupplierTitle, TitleType, TitleStatus
from ceasa.models.audit_log import AuditLog, AuditAction

__all__ = [
    # SaaS Core
    'Tenant', 'AppUser', 'UserTenant', 'UserRole',
    # Master data
    'Store', 'Supplier', 'Product', 'PackagingType',
    # Workflows
    'Purchase', 'PurchaseStatus', 'PaymentMethod', 'normalize_payment_method',
    'PurchaseLine', 'UNITS',
    'Manifest', 'ManifestStatus', 'ManifestLine',
    'PackagingBalance', 'PackagingMovement', 'MovementType', 'PackagingReferenceType',
    'MerchandiseReturn', 'ReturnStatus', 'ReturnTreatment', 'ReturnLine',
    'StoreTitle', 'SupplierTitle', 'TitleType', 'TitleStatus',
    'AuditLog', 'AuditAction',
]
