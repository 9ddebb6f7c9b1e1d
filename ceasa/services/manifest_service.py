"""Distribution (romaneio) workflow - Multi-Tenant."""
import logging
from datetime import datetime, timezone
from decimal import Decimal

from ceasa.exceptions import CeasaError, ValidationError, NotFoundError
from ceasa.models import (
    Store, Product, PackagingType, Purchase, PurchaseLine, Manifest, ManifestLine,
    ManifestStatus, MovementType, PackagingReferenceType, TitleType, AuditAction,
)
from ceasa.services import audit_service, cache_service, packaging_service, title_service
from ceasa.services.lookups import get_in_tenant
from ceasa.services.workflow_state import MANIFEST, compare_and_swap
from ceasa.utils.number_format import to_decimal, to_money, to_int, to_id, parse_datetime
from ceasa.utils.pagination import paginate_query

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')


def _validate_purchase_line(session, tenant_id: int, purchase_line_id: int) -> None:
    found = (
        session.query(PurchaseLine.id)
        .join(Purchase, PurchaseLine.purchase_id == Purchase.id)
        .filter(PurchaseLine.id == purchase_line_id, Purchase.tenant_id == tenant_id)
        .first()
    )
    if not found:
        raise NotFoundError(f'Item de compra {purchase_line_id} não encontrado')


def _validate_items(session, tenant_id: int, items) -> list:
    """Validate manifest lines: every line names its store explicitly."""
    if not items or not isinstance(items, list):
        raise ValidationError('O romaneio deve ter pelo menos um item')

    validated = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f'Item {index} inválido')

        store_id = to_id(item.get('store_id'), 'store_id')
        get_in_tenant(session, Store, tenant_id, store_id, f'Loja {store_id} não encontrada')

        product_id = to_id(item.get('product_id'), 'product_id')
        get_in_tenant(session, Product, tenant_id, product_id, f'Produto {product_id} não encontrado')

        purchase_line_id = to_id(item.get('purchase_line_id'), 'purchase_line_id', required=False)
        if purchase_line_id:
            _validate_purchase_line(session, tenant_id, purchase_line_id)

        quantity = to_decimal(item.get('quantity'), 'quantity')
        unit_price = to_money(item.get('unit_price'), 'unit_price')

        packaging_type_id = to_id(item.get('packaging_type_id'), 'packaging_type_id', required=False)
        if packaging_type_id:
            get_in_tenant(session, PackagingType, tenant_id, packaging_type_id,
                          f'Embalagem {packaging_type_id} não encontrada')
        packaging_qty = to_int(item.get('packaging_qty'), 'packaging_qty', default=0)
        deposit_total = to_money(item.get('deposit_total'), 'deposit_total', default=0)

        validated.append({
            'store_id': store_id,
            'product_id': product_id,
            'purchase_line_id': purchase_line_id,
            'quantity': quantity,
            'unit_price': unit_price,
            'packaging_type_id': packaging_type_id,
            'packaging_qty': packaging_qty,
            'deposit_total': deposit_total,
            'line_total': (quantity * unit_price + deposit_total).quantize(CENTS),
        })
    return validated


def generate_manifest(session, tenant_id: int, buyer_user_id: int, payload: dict) -> Manifest:
    """
    Generate a draft manifest (romaneio) from explicit per-store lines.

    Args:
        payload: Dictionary with:
            - manifest_date: ISO-8601 str | None (defaults to now)
            - notes: str | None
            - items: list of {store_id, product_id, quantity, unit_price,
              purchase_line_id, packaging_type_id, packaging_qty, deposit_total}

    Raises:
        NotFoundError: store, product, packaging type or purchase line not in tenant
        ValidationError: invalid payload
    """
    try:
        items = _validate_items(session, tenant_id, payload.get('items'))

        manifest = Manifest(
            tenant_id=tenant_id,
            buyer_user_id=buyer_user_id,
            manifest_date=parse_datetime(payload.get('manifest_date'), 'manifest_date') or datetime.now(timezone.utc),
            status=ManifestStatus.DRAFT,
            notes=payload.get('notes'),
        )
        for item in items:
            manifest.lines.append(ManifestLine(**item))

        session.add(manifest)
        session.flush()

        audit_service.log_action(
            session, tenant_id, buyer_user_id, AuditAction.MANIFEST_CREATED,
            resource_type='manifest', resource_id=manifest.id,
            details={'lines': len(items), 'stores': len({i['store_id'] for i in items})},
        )
        session.commit()
        logger.info(f"Manifest {manifest.id} generated: tenant={tenant_id} lines={len(items)}")
        return manifest

    except (ValidationError, NotFoundError):
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        raise CeasaError(f'Erro ao gerar romaneio: {e}') from e


def update_manifest(session, tenant_id: int, manifest_id: int, payload: dict, user_id: int = None) -> Manifest:
    """Partial update (notes, manifest_date) of a draft manifest."""
    try:
        manifest = get_in_tenant(session, Manifest, tenant_id, manifest_id, 'Romaneio não encontrado',
                                 for_update=True)
        if manifest.status != ManifestStatus.DRAFT:
            raise ValidationError('Apenas romaneios em rascunho podem ser editados')

        changed = {}
        if 'notes' in payload:
            manifest.notes = payload['notes']
            changed['notes'] = manifest.notes
        if payload.get('manifest_date'):
            manifest.manifest_date = parse_datetime(payload['manifest_date'], 'manifest_date')
            changed['manifest_date'] = manifest.manifest_date

        if changed:
            audit_service.log_action(
                session, tenant_id, user_id, AuditAction.MANIFEST_UPDATED,
                resource_type='manifest', resource_id=manifest.id, details=changed,
            )
        session.commit()
        return manifest

    except (ValidationError, NotFoundError):
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        raise CeasaError(f'Erro ao atualizar romaneio: {e}') from e


def group_by_store(lines) -> dict:
    """
    Per-store billing of manifest lines.

    Returns:
        {store_id: {'principal': sum(quantity * unit_price), 'deposits': sum(deposit_total)}}
        in first-appearance order.
    """
    groups = {}
    for line in lines:
        group = groups.setdefault(line.store_id, {'principal': Decimal('0'), 'deposits': Decimal('0')})
        group['principal'] += Decimal(str(line.quantity)) * Decimal(str(line.unit_price))
        group['deposits'] += Decimal(str(line.deposit_total or 0))

    for group in groups.values():
        group['principal'] = group['principal'].quantize(CENTS)
        group['deposits'] = group['deposits'].quantize(CENTS)
    return groups


def finalize_manifest(session, tenant_id: int, manifest_id: int, user_id: int = None) -> Manifest:
    """
    Finalize a draft manifest.

    Steps:
    1. Lock the manifest and move DRAFT -> FINALIZED (conditional update)
    2. Group every line by store
    3. Emit one receivable store title per store (principal + deposits)
    4. Apply an OUT packaging movement per line carrying packaging
    5. Commit transaction
    """
    try:
        # Step 1: Transition
        manifest = get_in_tenant(session, Manifest, tenant_id, manifest_id, 'Romaneio não encontrado',
                                 for_update=True)
        compare_and_swap(session, Manifest, manifest, MANIFEST, 'finalize')

        # Step 2: Group (complete before any title is emitted)
        lines = list(manifest.lines)
        groups = group_by_store(lines)

        # Step 3: Titles
        title_ids = []
        for store_id, group in groups.items():
            title = title_service.create_store_title(
                session, tenant_id, TitleType.RECEIVABLE, store_id,
                group['principal'], group['deposits'], manifest_id=manifest.id,
            )
            title_ids.append(title.id)

        # Step 4: Packaging sent to the stores
        movements = 0
        for line in lines:
            if line.packaging_type_id and (line.packaging_qty or 0) > 0:
                packaging_service.apply_packaging_movement(
                    session, tenant_id, line.store_id, line.packaging_type_id,
                    MovementType.OUT, line.packaging_qty, line.deposit_total,
                    PackagingReferenceType.MANIFEST, manifest.id,
                )
                movements += 1

        audit_service.log_action(
            session, tenant_id, user_id, AuditAction.MANIFEST_FINALIZED,
            resource_type='manifest', resource_id=manifest.id,
            details={'titles': title_ids, 'packaging_movements': movements},
        )

        # Step 5: Commit
        session.commit()
        logger.info(f"Manifest {manifest_id} finalized: {len(title_ids)} titles, {movements} packaging movements")

    except (ValidationError, NotFoundError):
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        raise CeasaError(f'Erro ao finalizar romaneio: {e}') from e

    cache_service.invalidate(tenant_id, cache_service.TITLES, cache_service.PACKAGING)
    return manifest


def cancel_manifest(session, tenant_id: int, manifest_id: int, user_id: int = None) -> Manifest:
    """Cancel a draft manifest. No side effects."""
    try:
        manifest = get_in_tenant(session, Manifest, tenant_id, manifest_id, 'Romaneio não encontrado',
                                 for_update=True)
        compare_and_swap(session, Manifest, manifest, MANIFEST, 'cancel')

        audit_service.log_action(
            session, tenant_id, user_id, AuditAction.MANIFEST_CANCELLED,
            resource_type='manifest', resource_id=manifest.id,
        )
        session.commit()
        return manifest

    except (ValidationError, NotFoundError):
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        raise CeasaError(f'Erro ao cancelar romaneio: {e}') from e


def get_manifest(session, tenant_id: int, manifest_id: int) -> Manifest:
    return get_in_tenant(session, Manifest, tenant_id, manifest_id, 'Romaneio não encontrado')


def list_manifests(session, tenant_id: int, status=None, buyer_user_id=None, store_id=None,
                   page=1, limit=20) -> dict:
    """Manifests of the tenant, newest first. store_id keeps manifests with a line for that store."""
    query = session.query(Manifest).filter(Manifest.tenant_id == tenant_id)
    if status:
        try:
            query = query.filter(Manifest.status == ManifestStatus(str(status).upper()))
        except ValueError:
            raise ValidationError('Status de romaneio inválido')
    if buyer_user_id:
        query = query.filter(Manifest.buyer_user_id == to_id(buyer_user_id, 'buyer_user_id'))
    if store_id:
        query = query.filter(Manifest.lines.any(ManifestLine.store_id == to_id(store_id, 'store_id')))

    query = query.order_by(Manifest.manifest_date.desc(), Manifest.id.desc())
    items, pagination = paginate_query(query, page, limit)
    return {'data': [m.to_dict(include_lines=False) for m in items], 'pagination': pagination}
