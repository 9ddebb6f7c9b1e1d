"""Purchase workflow - Multi-Tenant."""
import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from ceasa.exceptions import CeasaError, ValidationError, NotFoundError, ConflictError
from ceasa.models import (
    Supplier, Product, PackagingType, Purchase, PurchaseLine, ManifestLine,
    PurchaseStatus, TitleType, AuditAction, UNITS, normalize_payment_method,
)
from ceasa.services import audit_service, cache_service, title_service
from ceasa.services.lookups import get_in_tenant
from ceasa.services.workflow_state import PURCHASE, compare_and_swap
from ceasa.utils.document_number import next_document_number, PURCHASE_PREFIX
from ceasa.utils.number_format import to_decimal, to_money, to_int, to_id, parse_datetime
from ceasa.utils.pagination import paginate_query

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')


def compute_totals(lines, discount_amount, surcharge_amount) -> dict:
    """
    Purchase totals from (quantity, unit_price, deposit_total) lines.

    total = sum(quantity * unit_price + deposit_total) - discount + surcharge
    """
    subtotal = Decimal('0')
    deposits = Decimal('0')
    for quantity, unit_price, deposit_total in lines:
        subtotal += Decimal(str(quantity)) * Decimal(str(unit_price))
        deposits += Decimal(str(deposit_total or 0))

    subtotal = subtotal.quantize(CENTS)
    deposits = deposits.quantize(CENTS)
    total = (subtotal + deposits - Decimal(str(discount_amount)) + Decimal(str(surcharge_amount))).quantize(CENTS)
    if total < 0:
        raise ValidationError('O desconto não pode ser maior que o valor da compra')

    return {
        'subtotal_amount': subtotal,
        'deposit_amount': deposits,
        'total_amount': total,
    }


def _payment_method(value):
    try:
        return normalize_payment_method(value)
    except ValueError:
        raise ValidationError('Método de pagamento inválido')


def _validate_items(session, tenant_id: int, items) -> list:
    """Validate purchase items against the tenant catalog."""
    if not items or not isinstance(items, list):
        raise ValidationError('A compra deve ter pelo menos um item')

    validated = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f'Item {index} inválido')

        product_id = to_id(item.get('product_id'), 'product_id')
        get_in_tenant(session, Product, tenant_id, product_id, f'Produto {product_id} não encontrado')

        quantity = to_decimal(item.get('quantity'), 'quantity')
        unit_price = to_money(item.get('unit_price'), 'unit_price')

        unit = (item.get('unit') or 'un').lower()
        if unit not in UNITS:
            raise ValidationError(f'Unidade inválida: {unit}. Use {", ".join(UNITS)}')

        packaging_type_id = to_id(item.get('packaging_type_id'), 'packaging_type_id', required=False)
        if packaging_type_id:
            get_in_tenant(session, PackagingType, tenant_id, packaging_type_id,
                          f'Embalagem {packaging_type_id} não encontrada')
        packaging_qty = to_int(item.get('packaging_qty'), 'packaging_qty', default=0)
        deposit_total = to_money(item.get('deposit_total'), 'deposit_total', default=0)

        validated.append({
            'product_id': product_id,
            'quantity': quantity,
            'unit': unit,
            'unit_price': unit_price,
            'packaging_type_id': packaging_type_id,
            'packaging_qty': packaging_qty,
            'deposit_total': deposit_total,
            'line_total': (quantity * unit_price + deposit_total).quantize(CENTS),
        })
    return validated


def create_purchase(session, tenant_id: int, buyer_user_id: int, payload: dict) -> Purchase:
    """
    Create a pending purchase with its lines (tenant-scoped).

    Steps:
    1. Validate supplier belongs to tenant
    2. Validate items (products and packaging types belong to tenant)
    3. Calculate totals
    4. Create purchase + purchase_line with a new COM- number
    5. Commit transaction

    Args:
        payload: Dictionary with:
            - supplier_id: int
            - purchase_date: ISO-8601 str | None (defaults to now)
            - discount_amount / surcharge_amount: number | None (default 0)
            - payment_method: str | None (default TERM)
            - notes: str | None
            - items: list of {product_id, quantity, unit_price, unit,
              packaging_type_id, packaging_qty, deposit_total}

    Raises:
        NotFoundError: supplier, product or packaging type not in tenant
        ValidationError: invalid payload
        ConflictError: purchase number taken concurrently
    """
    try:
        # Step 1: Supplier
        supplier_id = to_id(payload.get('supplier_id'), 'supplier_id')
        get_in_tenant(session, Supplier, tenant_id, supplier_id, 'Fornecedor não encontrado')

        # Step 2: Items
        items = _validate_items(session, tenant_id, payload.get('items'))

        # Step 3: Totals
        discount_amount = to_money(payload.get('discount_amount'), 'discount_amount', default=0)
        surcharge_amount = to_money(payload.get('surcharge_amount'), 'surcharge_amount', default=0)
        totals = compute_totals(
            [(i['quantity'], i['unit_price'], i['deposit_total']) for i in items],
            discount_amount, surcharge_amount,
        )

        # Step 4: Purchase + lines
        purchase = Purchase(
            tenant_id=tenant_id,
            purchase_number=next_document_number(
                session, Purchase.purchase_number, Purchase.tenant_id, tenant_id, PURCHASE_PREFIX),
            supplier_id=supplier_id,
            buyer_user_id=buyer_user_id,
            discount_amount=discount_amount,
            surcharge_amount=surcharge_amount,
            status=PurchaseStatus.PENDING,
            payment_method=_payment_method(payload.get('payment_method')),
            notes=payload.get('notes'),
            **totals,
        )
        purchase.purchase_date = (parse_datetime(payload.get('purchase_date'), 'purchase_date')
                                  or datetime.now(timezone.utc))

        for item in items:
            purchase.lines.append(PurchaseLine(**item))

        session.add(purchase)
        session.flush()

        audit_service.log_action(
            session, tenant_id, buyer_user_id, AuditAction.PURCHASE_CREATED,
            resource_type='purchase', resource_id=purchase.id,
            details={'purchase_number': purchase.purchase_number, 'total_amount': purchase.total_amount},
        )

        # Step 5: Commit
        session.commit()
        logger.info(f"Purchase {purchase.purchase_number} created: tenant={tenant_id} total={totals['total_amount']}")
        return purchase

    except (ValidationError, NotFoundError):
        session.rollback()
        raise
    except IntegrityError as e:
        session.rollback()
        raise ConflictError('Número de compra já utilizado, tente novamente') from e
    except Exception as e:
        session.rollback()
        raise CeasaError(f'Erro ao criar compra: {e}') from e


def update_purchase(session, tenant_id: int, purchase_id: int, payload: dict, user_id: int = None) -> Purchase:
    """
    Partial update of a pending purchase.

    Editable: discount_amount, surcharge_amount, payment_method, notes.
    The total is recomputed from the persisted lines whenever discount or
    surcharge change.
    """
    try:
        purchase = get_in_tenant(session, Purchase, tenant_id, purchase_id, 'Compra não encontrada',
                                 for_update=True)
        if purchase.status != PurchaseStatus.PENDING:
            raise ValidationError('Apenas compras pendentes podem ser editadas')

        changed = {}
        if 'discount_amount' in payload:
            purchase.discount_amount = to_money(payload['discount_amount'], 'discount_amount', default=0)
            changed['discount_amount'] = purchase.discount_amount
        if 'surcharge_amount' in payload:
            purchase.surcharge_amount = to_money(payload['surcharge_amount'], 'surcharge_amount', default=0)
            changed['surcharge_amount'] = purchase.surcharge_amount
        if 'payment_method' in payload:
            purchase.payment_method = _payment_method(payload['payment_method'])
            changed['payment_method'] = purchase.payment_method
        if 'notes' in payload:
            purchase.notes = payload['notes']
            changed['notes'] = purchase.notes

        if not changed:
            session.commit()
            return purchase

        if 'discount_amount' in changed or 'surcharge_amount' in changed:
            totals = compute_totals(
                [(line.quantity, line.unit_price, line.deposit_total) for line in purchase.lines],
                purchase.discount_amount, purchase.surcharge_amount,
            )
            for column, value in totals.items():
                setattr(purchase, column, value)

        audit_service.log_action(
            session, tenant_id, user_id, AuditAction.PURCHASE_UPDATED,
            resource_type='purchase', resource_id=purchase.id, details=changed,
        )
        session.commit()
        return purchase

    except (ValidationError, NotFoundError):
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        raise CeasaError(f'Erro ao atualizar compra: {e}') from e


def conclude_purchase(session, tenant_id: int, purchase_id: int, user_id: int = None) -> Purchase:
    """
    Conclude a pending purchase and emit the payable supplier title.

    The status change and the title insert share one transaction; a
    second call fails before emitting anything.
    """
    try:
        purchase = get_in_tenant(session, Purchase, tenant_id, purchase_id, 'Compra não encontrada',
                                 for_update=True)
        compare_and_swap(session, Purchase, purchase, PURCHASE, 'conclude')

        title = title_service.create_supplier_title(
            session, tenant_id, TitleType.PAYABLE, purchase.supplier_id, purchase.total_amount,
            purchase_id=purchase.id,
        )

        audit_service.log_action(
            session, tenant_id, user_id, AuditAction.PURCHASE_CONCLUDED,
            resource_type='purchase', resource_id=purchase.id,
            details={'title_id': title.id, 'total_amount': purchase.total_amount},
        )
        session.commit()

    except (ValidationError, NotFoundError):
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        raise CeasaError(f'Erro ao concluir compra: {e}') from e

    cache_service.invalidate(tenant_id, cache_service.TITLES)
    return purchase


def cancel_purchase(session, tenant_id: int, purchase_id: int, user_id: int = None) -> Purchase:
    """Cancel a pending purchase. No financial effect."""
    try:
        purchase = get_in_tenant(session, Purchase, tenant_id, purchase_id, 'Compra não encontrada',
                                 for_update=True)
        compare_and_swap(session, Purchase, purchase, PURCHASE, 'cancel')

        audit_service.log_action(
            session, tenant_id, user_id, AuditAction.PURCHASE_CANCELLED,
            resource_type='purchase', resource_id=purchase.id,
        )
        session.commit()
        return purchase

    except (ValidationError, NotFoundError):
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        raise CeasaError(f'Erro ao cancelar compra: {e}') from e


def delete_purchase(session, tenant_id: int, purchase_id: int, user_id: int = None) -> None:
    """
    Delete a pending purchase that no manifest distributes.

    Raises:
        ValidationError: not pending, or referenced by a manifest line
    """
    try:
        purchase = get_in_tenant(session, Purchase, tenant_id, purchase_id, 'Compra não encontrada',
                                 for_update=True)
        if purchase.status != PurchaseStatus.PENDING:
            raise ValidationError('Apenas compras pendentes podem ser excluídas')

        linked = (
            session.query(ManifestLine.id)
            .join(PurchaseLine, ManifestLine.purchase_line_id == PurchaseLine.id)
            .filter(PurchaseLine.purchase_id == purchase.id)
            .first()
        )
        if linked:
            raise ValidationError('Compra vinculada a romaneio não pode ser excluída')

        purchase_number = purchase.purchase_number
        session.delete(purchase)

        audit_service.log_action(
            session, tenant_id, user_id, AuditAction.PURCHASE_DELETED,
            resource_type='purchase', resource_id=purchase_id,
            details={'purchase_number': purchase_number},
        )
        session.commit()
        logger.info(f"Purchase {purchase_number} deleted: tenant={tenant_id}")

    except (ValidationError, NotFoundError):
        session.rollback()
        raise
    except IntegrityError as e:
        session.rollback()
        raise ConflictError('Compra possui registros vinculados') from e
    except Exception as e:
        session.rollback()
        raise CeasaError(f'Erro ao excluir compra: {e}') from e


def get_purchase(session, tenant_id: int, purchase_id: int) -> Purchase:
    return get_in_tenant(session, Purchase, tenant_id, purchase_id, 'Compra não encontrada')


def list_purchases(session, tenant_id: int, supplier_id=None, status=None, buyer_user_id=None,
                   page=1, limit=20) -> dict:
    """Purchases of the tenant, newest first."""
    query = session.query(Purchase).filter(Purchase.tenant_id == tenant_id)
    if supplier_id:
        query = query.filter(Purchase.supplier_id == to_id(supplier_id, 'supplier_id'))
    if status:
        try:
            query = query.filter(Purchase.status == PurchaseStatus(str(status).upper()))
        except ValueError:
            raise ValidationError('Status de compra inválido')
    if buyer_user_id:
        query = query.filter(Purchase.buyer_user_id == to_id(buyer_user_id, 'buyer_user_id'))

    query = query.order_by(Purchase.purchase_date.desc(), Purchase.id.desc())
    items, pagination = paginate_query(query, page, limit)
    return {'data': [p.to_dict(include_lines=False) for p in items], 'pagination': pagination}
