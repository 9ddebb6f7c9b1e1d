"""
Financial titles ledger.

Titles are emitted only as side effects of the purchase, manifest and
return workflows (create_store_title / create_supplier_title, which never
commit). Settle, reverse and cancel resolve the title through
resolve_title, then persist the status change as a conditional update.
"""
import logging
import uuid
from collections import namedtuple
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from ceasa.exceptions import CeasaError, ValidationError, NotFoundError
from ceasa.models import StoreTitle, SupplierTitle, TitleType, TitleStatus, AuditAction
from ceasa.services import audit_service, cache_service
from ceasa.services.workflow_state import TITLE, compare_and_swap
from ceasa.utils.number_format import parse_datetime, to_id
from ceasa.utils.pagination import paginate_query, pagination_envelope, paginate

logger = logging.getLogger(__name__)

# Titles fall due this many days after issue
DUE_DAYS = 30

STORE_KIND = 'loja'
SUPPLIER_KIND = 'fornecedor'
KINDS = (STORE_KIND, SUPPLIER_KIND)

ResolvedTitle = namedtuple('ResolvedTitle', ['kind', 'title'])

_MODELS = {STORE_KIND: StoreTitle, SUPPLIER_KIND: SupplierTitle}


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal('0.01'))


def due_date_for(issue_date: date) -> date:
    return issue_date + timedelta(days=DUE_DAYS)


def create_store_title(session, tenant_id: int, title_type: TitleType, store_id: int, principal_amount,
                       deposit_amount=0, manifest_id: int = None, return_id: int = None,
                       issue_date: date = None) -> StoreTitle:
    """Add a store<->buyer title to the caller's unit of work."""
    issue_date = issue_date or date.today()
    principal_amount = _money(principal_amount)
    deposit_amount = _money(deposit_amount)

    title = StoreTitle(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        title_type=title_type,
        store_id=store_id,
        manifest_id=manifest_id,
        return_id=return_id,
        principal_amount=principal_amount,
        deposit_amount=deposit_amount,
        total_amount=principal_amount + deposit_amount,
        issue_date=issue_date,
        due_date=due_date_for(issue_date),
        status=TitleStatus.OPEN,
    )
    session.add(title)
    logger.info(f"Store title emitted: {title_type.value} store={store_id} total={title.total_amount}")
    return title


def create_supplier_title(session, tenant_id: int, title_type: TitleType, supplier_id: int, principal_amount,
                          purchase_id: int = None, issue_date: date = None) -> SupplierTitle:
    """Add a buyer<->supplier title to the caller's unit of work."""
    issue_date = issue_date or date.today()

    title = SupplierTitle(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        title_type=title_type,
        supplier_id=supplier_id,
        purchase_id=purchase_id,
        principal_amount=_money(principal_amount),
        issue_date=issue_date,
        due_date=due_date_for(issue_date),
        status=TitleStatus.OPEN,
    )
    session.add(title)
    logger.info(f"Supplier title emitted: {title_type.value} supplier={supplier_id} principal={title.principal_amount}")
    return title


def _parse_title_id(title_id):
    if isinstance(title_id, uuid.UUID):
        return title_id
    try:
        return uuid.UUID(str(title_id))
    except (TypeError, ValueError):
        raise NotFoundError('Título não encontrado')


def resolve_title(session, tenant_id: int, title_id, for_update: bool = False) -> ResolvedTitle:
    """
    Find a title by id in either relation (store titles first).

    Raises:
        NotFoundError: if neither relation holds the id for this tenant.
    """
    title_uuid = _parse_title_id(title_id)
    for kind in KINDS:
        model = _MODELS[kind]
        query = session.query(model).filter(model.id == title_uuid, model.tenant_id == tenant_id)
        if for_update:
            query = query.with_for_update()
        title = query.first()
        if title:
            return ResolvedTitle(kind, title)
    raise NotFoundError('Título não encontrado')


def get_title(session, tenant_id: int, title_id) -> ResolvedTitle:
    return resolve_title(session, tenant_id, title_id)


def _transition(session, tenant_id, title_id, action, audit_action, user_id=None, **values) -> ResolvedTitle:
    """Resolve, check and persist one title transition in its own unit of work."""
    try:
        resolved = resolve_title(session, tenant_id, title_id, for_update=True)
        model = _MODELS[resolved.kind]
        previous = resolved.title.status
        compare_and_swap(session, model, resolved.title, TITLE, action, **values)

        audit_service.log_action(
            session, tenant_id, user_id, audit_action,
            resource_type=f'title_{resolved.kind}', resource_id=resolved.title.id,
            details={'from': previous.value, 'action': action},
        )
        session.commit()

    except (ValidationError, NotFoundError):
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        raise CeasaError(f'Erro ao atualizar título: {e}') from e

    cache_service.invalidate(tenant_id, cache_service.TITLES)
    return resolve_title(session, tenant_id, resolved.title.id)


def settle_title(session, tenant_id: int, title_id, paid_at=None, user_id: int = None) -> ResolvedTitle:
    """
    Settle (baixar) an open or partial title.

    Raises:
        NotFoundError: unknown title
        ValidationError: title already paid or cancelled
    """
    paid_at = parse_datetime(paid_at, 'paid_at') or datetime.now(timezone.utc)
    return _transition(session, tenant_id, title_id, 'settle', AuditAction.TITLE_SETTLED,
                       user_id=user_id, paid_at=paid_at)


def reverse_title(session, tenant_id: int, title_id, user_id: int = None) -> ResolvedTitle:
    """
    Reverse (estornar) a paid title back to open. Amounts are kept.

    Raises:
        ValidationError: title is not paid
    """
    return _transition(session, tenant_id, title_id, 'reverse', AuditAction.TITLE_REVERSED,
                       user_id=user_id, paid_at=None)


def cancel_title(session, tenant_id: int, title_id, user_id: int = None) -> ResolvedTitle:
    """
    Cancel an open or partial title. Paid titles must be reversed first.
    """
    return _transition(session, tenant_id, title_id, 'cancel', AuditAction.TITLE_CANCELLED,
                       user_id=user_id)


def _parse_status(value):
    if value is None or value == '':
        return None
    try:
        return TitleStatus(str(value).upper())
    except ValueError:
        raise ValidationError('Status de título inválido')


def _parse_title_type(value):
    if value is None or value == '':
        return None
    try:
        return TitleType(str(value).upper())
    except ValueError:
        raise ValidationError('Tipo de título inválido')


def _empty_page(page, limit):
    page, limit, _ = paginate(page, limit)
    return {'data': [], 'pagination': pagination_envelope(page, limit, 0)}


def list_titles(session, tenant_id: int, kind: str = None, status=None, title_type=None, store_id=None,
                supplier_id=None, page=1, limit=20) -> dict:
    """
    Store and supplier titles as two independently filtered and paginated
    collections, each ordered by due date.
    """
    if kind and kind not in KINDS:
        raise ValidationError('Tipo deve ser "loja" ou "fornecedor"')
    status = _parse_status(status)
    title_type = _parse_title_type(title_type)
    store_id = to_id(store_id, 'store_id', required=False)
    supplier_id = to_id(supplier_id, 'supplier_id', required=False)

    def load_collection(model, owner_column, owner_id):
        query = session.query(model).filter(model.tenant_id == tenant_id)
        if status:
            query = query.filter(model.status == status)
        if title_type:
            query = query.filter(model.title_type == title_type)
        if owner_id:
            query = query.filter(owner_column == owner_id)
        query = query.order_by(model.due_date, model.created_at)
        items, pagination = paginate_query(query, page, limit)
        return {'data': [t.to_dict() for t in items], 'pagination': pagination}

    def load():
        return {
            'store_titles': (load_collection(StoreTitle, StoreTitle.store_id, store_id)
                             if kind in (None, STORE_KIND) else _empty_page(page, limit)),
            'supplier_titles': (load_collection(SupplierTitle, SupplierTitle.supplier_id, supplier_id)
                                if kind in (None, SUPPLIER_KIND) else _empty_page(page, limit)),
        }

    key = cache_service.build_key(kind=kind, status=status.value if status else None,
                                  type=title_type.value if title_type else None,
                                  store=store_id, supplier=supplier_id, page=page, limit=limit)
    return cache_service.cached(tenant_id, cache_service.TITLES, key, load, 'CACHE_TITLES_TTL')
