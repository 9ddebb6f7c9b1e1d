"""Merchandise returns (devolucoes) workflow - Multi-Tenant."""
import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from ceasa.exceptions import CeasaError, ValidationError, NotFoundError, ConflictError
from ceasa.models import (
    Store, Product, Manifest, MerchandiseReturn, ReturnLine, StoreTitle,
    ReturnStatus, ReturnTreatment, TitleType, TitleStatus, AuditAction,
)
from ceasa.services import audit_service, cache_service, title_service
from ceasa.services.lookups import get_in_tenant
from ceasa.services.workflow_state import RETURN, compare_and_swap
from ceasa.utils.document_number import next_document_number, RETURN_PREFIX
from ceasa.utils.number_format import to_decimal, to_money, to_id, parse_datetime
from ceasa.utils.pagination import paginate_query

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')

# Portuguese names accepted from clients
TREATMENT_ALIASES = {
    'CREDITO': 'CREDIT',
    'TROCA': 'EXCHANGE',
    'ESTORNO': 'REVERSAL',
}


def parse_treatment(value) -> ReturnTreatment:
    if value is None or value == '':
        return ReturnTreatment.CREDIT
    if isinstance(value, ReturnTreatment):
        return value
    normalized = str(value).upper().strip()
    try:
        return ReturnTreatment(TREATMENT_ALIASES.get(normalized, normalized))
    except ValueError:
        raise ValidationError('Tratamento inválido. Use CREDIT, EXCHANGE ou REVERSAL')


def lines_total(lines) -> Decimal:
    """sum(quantity * unit_price), a missing price counting as zero."""
    total = Decimal('0')
    for quantity, unit_price in lines:
        total += Decimal(str(quantity)) * Decimal(str(unit_price or 0))
    return total.quantize(CENTS)


def create_return(session, tenant_id: int, payload: dict, user_id: int = None) -> MerchandiseReturn:
    """
    Register a pending merchandise return from a store.

    Args:
        payload: Dictionary with:
            - store_id: int
            - manifest_id: int | None
            - reason: str (required)
            - treatment: CREDIT | EXCHANGE | REVERSAL (default CREDIT)
            - return_date: ISO-8601 str | None
            - notes: str | None
            - items: list of {product_id, quantity, unit_price, reason}

    Raises:
        NotFoundError: store, manifest or product not in tenant
        ValidationError: invalid payload
    """
    try:
        store_id = to_id(payload.get('store_id'), 'store_id')
        get_in_tenant(session, Store, tenant_id, store_id, 'Loja não encontrada')

        reason = (payload.get('reason') or '').strip()
        if not reason:
            raise ValidationError('O motivo da devolução é obrigatório')

        treatment = parse_treatment(payload.get('treatment'))

        manifest_id = to_id(payload.get('manifest_id'), 'manifest_id', required=False)
        if manifest_id:
            get_in_tenant(session, Manifest, tenant_id, manifest_id, 'Romaneio não encontrado')

        items = payload.get('items')
        if not items or not isinstance(items, list):
            raise ValidationError('A devolução deve ter pelo menos um item')

        lines = []
        for index, item in enumerate(items, start=1):
            if not isinstance(item, dict):
                raise ValidationError(f'Item {index} inválido')
            product_id = to_id(item.get('product_id'), 'product_id')
            get_in_tenant(session, Product, tenant_id, product_id, f'Produto {product_id} não encontrado')

            quantity = to_decimal(item.get('quantity'), 'quantity')
            unit_price = None
            if item.get('unit_price') not in (None, ''):
                unit_price = to_money(item.get('unit_price'), 'unit_price')

            lines.append(ReturnLine(
                product_id=product_id,
                quantity=quantity,
                unit_price=unit_price,
                reason=item.get('reason'),
                line_total=lines_total([(quantity, unit_price)]),
            ))

        merchandise_return = MerchandiseReturn(
            tenant_id=tenant_id,
            return_number=next_document_number(
                session, MerchandiseReturn.return_number, MerchandiseReturn.tenant_id, tenant_id, RETURN_PREFIX),
            store_id=store_id,
            manifest_id=manifest_id,
            return_date=parse_datetime(payload.get('return_date'), 'return_date') or datetime.now(timezone.utc),
            reason=reason,
            treatment=treatment,
            status=ReturnStatus.PENDING,
            total_amount=lines_total([(line.quantity, line.unit_price) for line in lines]),
            notes=payload.get('notes'),
        )
        merchandise_return.lines.extend(lines)

        session.add(merchandise_return)
        session.flush()

        audit_service.log_action(
            session, tenant_id, user_id, AuditAction.RETURN_CREATED,
            resource_type='return', resource_id=merchandise_return.id,
            details={'return_number': merchandise_return.return_number, 'treatment': treatment.value},
        )
        session.commit()
        logger.info(f"Return {merchandise_return.return_number} created: tenant={tenant_id} "
                    f"treatment={treatment.value} total={merchandise_return.total_amount}")
        return merchandise_return

    except (ValidationError, NotFoundError):
        session.rollback()
        raise
    except IntegrityError as e:
        session.rollback()
        raise ConflictError('Número de devolução já utilizado, tente novamente') from e
    except Exception as e:
        session.rollback()
        raise CeasaError(f'Erro ao registrar devolução: {e}') from e


def _credit(session, merchandise_return, total):
    """Buyer owes the store the returned amount."""
    title = title_service.create_store_title(
        session, merchandise_return.tenant_id, TitleType.PAYABLE, merchandise_return.store_id,
        total, 0, manifest_id=merchandise_return.manifest_id, return_id=merchandise_return.id,
    )
    return {'title_id': title.id}


def _reversal(session, merchandise_return, total):
    """
    Reduce, in place, the open receivable the manifest emitted for this store.

    Rejected with ValidationError, rather than applied as a zero-row or
    negative update, when that receivable is no longer OPEN or when the
    return exceeds its principal.
    """
    if not merchandise_return.manifest_id:
        logger.info(f"Return {merchandise_return.id}: reversal without manifest, no financial effect")
        return {'reversed_title_id': None}

    title = (
        session.query(StoreTitle)
        .filter(
            StoreTitle.tenant_id == merchandise_return.tenant_id,
            StoreTitle.manifest_id == merchandise_return.manifest_id,
            StoreTitle.store_id == merchandise_return.store_id,
            StoreTitle.title_type == TitleType.RECEIVABLE,
            StoreTitle.status == TitleStatus.OPEN,
        )
        .with_for_update()
        .first()
    )
    if not title:
        raise ValidationError('Não há título a receber em aberto deste romaneio para a loja')
    if total > title.principal_amount:
        raise ValidationError('Valor da devolução maior que o valor principal do título')

    title.principal_amount = title.principal_amount - total
    title.total_amount = title.total_amount - total
    logger.info(f"Return {merchandise_return.id}: title {title.id} reduced by {total}")
    return {'reversed_title_id': title.id}


def _exchange(session, merchandise_return, total):
    """Goods are replaced, nothing to settle."""
    return {}


_TREATMENTS = {
    ReturnTreatment.CREDIT: _credit,
    ReturnTreatment.REVERSAL: _reversal,
    ReturnTreatment.EXCHANGE: _exchange,
}


def process_return(session, tenant_id: int, return_id: int, user_id: int = None) -> MerchandiseReturn:
    """
    Process a pending return.

    Steps:
    1. Lock the return and move PENDING -> PROCESSED (conditional update)
    2. Recompute the total from the persisted lines
    3. Apply the treatment (CREDIT / REVERSAL / EXCHANGE)
    4. Commit transaction
    """
    try:
        merchandise_return = get_in_tenant(session, MerchandiseReturn, tenant_id, return_id,
                                           'Devolução não encontrada', for_update=True)

        total = lines_total([(line.quantity, line.unit_price) for line in merchandise_return.lines])
        compare_and_swap(session, MerchandiseReturn, merchandise_return, RETURN, 'process',
                         total_amount=total, processed_at=datetime.now(timezone.utc))

        effect = _TREATMENTS[merchandise_return.treatment](session, merchandise_return, total)

        audit_service.log_action(
            session, tenant_id, user_id, AuditAction.RETURN_PROCESSED,
            resource_type='return', resource_id=merchandise_return.id,
            details=dict(effect, treatment=merchandise_return.treatment.value, total_amount=total),
        )
        session.commit()
        logger.info(f"Return {return_id} processed: treatment={merchandise_return.treatment.value} total={total}")

    except (ValidationError, NotFoundError):
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        raise CeasaError(f'Erro ao processar devolução: {e}') from e

    if merchandise_return.treatment != ReturnTreatment.EXCHANGE:
        cache_service.invalidate(tenant_id, cache_service.TITLES)
    return merchandise_return


def cancel_return(session, tenant_id: int, return_id: int, user_id: int = None) -> MerchandiseReturn:
    """Cancel a pending return."""
    try:
        merchandise_return = get_in_tenant(session, MerchandiseReturn, tenant_id, return_id,
                                           'Devolução não encontrada', for_update=True)
        compare_and_swap(session, MerchandiseReturn, merchandise_return, RETURN, 'cancel')

        audit_service.log_action(
            session, tenant_id, user_id, AuditAction.RETURN_CANCELLED,
            resource_type='return', resource_id=merchandise_return.id,
        )
        session.commit()
        return merchandise_return

    except (ValidationError, NotFoundError):
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        raise CeasaError(f'Erro ao cancelar devolução: {e}') from e


def get_return(session, tenant_id: int, return_id: int) -> MerchandiseReturn:
    return get_in_tenant(session, MerchandiseReturn, tenant_id, return_id, 'Devolução não encontrada')


def list_returns(session, tenant_id: int, store_id=None, status=None, treatment=None, page=1, limit=20) -> dict:
    """Returns of the tenant, newest first."""
    query = session.query(MerchandiseReturn).filter(MerchandiseReturn.tenant_id == tenant_id)
    if store_id:
        query = query.filter(MerchandiseReturn.store_id == to_id(store_id, 'store_id'))
    if status:
        try:
            query = query.filter(MerchandiseReturn.status == ReturnStatus(str(status).upper()))
        except ValueError:
            raise ValidationError('Status de devolução inválido')
    if treatment:
        query = query.filter(MerchandiseReturn.treatment == parse_treatment(treatment))

    query = query.order_by(MerchandiseReturn.return_date.desc(), MerchandiseReturn.id.desc())
    items, pagination = paginate_query(query, page, limit)
    return {'data': [r.to_dict(include_lines=False) for r in items], 'pagination': pagination}
