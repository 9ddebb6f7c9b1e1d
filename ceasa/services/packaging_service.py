"""
Packaging balance engine.

Returnable packaging sent to a store increases its balance; packaging that
comes back decreases it. Balances are materialized per
(tenant, store, packaging type) and only ever changed through
apply_packaging_movement, which upserts the balance with an atomic
increment and appends the movement in the same unit of work.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError

from ceasa.exceptions import CeasaError, ValidationError, NotFoundError, ConflictError
from ceasa.models import (
    Store, PackagingType, PackagingBalance, PackagingMovement,
    MovementType, PackagingReferenceType, AuditAction,
)
from ceasa.services import audit_service, cache_service
from ceasa.services.lookups import get_in_tenant
from ceasa.utils.number_format import to_id, to_int, to_money, parse_datetime
from ceasa.utils.pagination import paginate_query

logger = logging.getLogger(__name__)

_INSERTS = {
    'postgresql': postgresql.insert,
    'sqlite': sqlite.insert,
}


def _signed(movement_type: MovementType, quantity: int, deposit_amount: Decimal):
    """Signed change applied to the balance: OUT as given, IN negated, ADJUST as given."""
    if movement_type == MovementType.IN:
        return -quantity, -deposit_amount
    return quantity, deposit_amount


def _parse_movement_type(value) -> MovementType:
    if isinstance(value, MovementType):
        return value
    try:
        return MovementType(str(value).upper().strip())
    except ValueError:
        raise ValidationError('Tipo de movimento inválido. Use IN, OUT ou ADJUST')


def _upsert_balance(session, tenant_id, store_id, packaging_type_id, quantity_delta, deposit_delta):
    """INSERT ... ON CONFLICT DO UPDATE with an in-database increment."""
    dialect = session.get_bind().dialect.name
    insert = _INSERTS.get(dialect)
    if insert is None:
        raise CeasaError(f'Banco de dados não suportado para saldos de embalagem: {dialect}')

    table = PackagingBalance.__table__
    stmt = insert(table).values(
        tenant_id=tenant_id,
        store_id=store_id,
        packaging_type_id=packaging_type_id,
        quantity_balance=quantity_delta,
        deposit_balance=deposit_delta,
        updated_at=datetime.now(timezone.utc),
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=['tenant_id', 'store_id', 'packaging_type_id'],
        set_={
            'quantity_balance': table.c.quantity_balance + stmt.excluded.quantity_balance,
            'deposit_balance': table.c.deposit_balance + stmt.excluded.deposit_balance,
            'updated_at': stmt.excluded.updated_at,
        },
    )
    session.execute(stmt)


def apply_packaging_movement(
    session,
    tenant_id: int,
    store_id: int,
    packaging_type_id: int,
    movement_type,
    quantity: int,
    deposit_amount,
    reference_type: PackagingReferenceType,
    reference_id: int = None,
    notes: str = None,
    movement_date: datetime = None,
) -> PackagingMovement:
    """
    Apply one packaging movement to the store balance.

    Shared by manual adjustments and manifest finalization. Does not
    commit: the caller owns the unit of work.
    """
    movement_type = _parse_movement_type(movement_type)
    deposit_amount = Decimal(str(deposit_amount or 0)).quantize(Decimal('0.01'))
    quantity_delta, deposit_delta = _signed(movement_type, int(quantity), deposit_amount)

    _upsert_balance(session, tenant_id, store_id, packaging_type_id, quantity_delta, deposit_delta)

    movement = PackagingMovement(
        tenant_id=tenant_id,
        store_id=store_id,
        packaging_type_id=packaging_type_id,
        movement_type=movement_type,
        quantity=abs(int(quantity)),
        deposit_amount=abs(deposit_amount),
        quantity_delta=quantity_delta,
        deposit_delta=deposit_delta,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
        movement_date=movement_date or datetime.now(timezone.utc),
    )
    session.add(movement)

    logger.info(
        f"Packaging {movement_type.value}: tenant={tenant_id} store={store_id} "
        f"packaging={packaging_type_id} qty_delta={quantity_delta} deposit_delta={deposit_delta}"
    )
    return movement


def adjust_packaging(session, tenant_id: int, payload: dict, user_id: int = None) -> PackagingMovement:
    """
    Manual packaging movement (ajuste).

    payload: store_id, packaging_type_id, movement_type (IN/OUT/ADJUST),
    quantity (integer), deposit_amount (optional, default 0), notes.

    Raises:
        NotFoundError: store or packaging type outside the tenant
        ValidationError: invalid type, quantity or deposit
    """
    try:
        store_id = to_id(payload.get('store_id'), 'store_id')
        packaging_type_id = to_id(payload.get('packaging_type_id'), 'packaging_type_id')
        movement_type = _parse_movement_type(payload.get('movement_type'))
        signed_allowed = movement_type == MovementType.ADJUST

        quantity = to_int(payload.get('quantity'), 'quantity', allow_negative=signed_allowed)
        deposit_amount = to_money(payload.get('deposit_amount'), 'deposit_amount', default=0,
                                  allow_negative=signed_allowed)
        if quantity == 0 and deposit_amount == 0:
            raise ValidationError('Informe uma quantidade ou valor de depósito diferente de zero')

        get_in_tenant(session, Store, tenant_id, store_id, 'Loja não encontrada')
        get_in_tenant(session, PackagingType, tenant_id, packaging_type_id, 'Embalagem não encontrada')

        movement = apply_packaging_movement(
            session, tenant_id, store_id, packaging_type_id,
            movement_type, quantity, deposit_amount,
            PackagingReferenceType.MANUAL_ADJUSTMENT, None,
            notes=payload.get('notes'),
            movement_date=parse_datetime(payload.get('movement_date'), 'movement_date'),
        )
        session.flush()

        audit_service.log_action(
            session, tenant_id, user_id, AuditAction.PACKAGING_ADJUSTED,
            resource_type='packaging_movement', resource_id=movement.id,
            details={'store_id': store_id, 'packaging_type_id': packaging_type_id,
                     'movement_type': movement_type.value, 'quantity': quantity,
                     'deposit_amount': deposit_amount},
        )
        session.commit()

    except (ValidationError, NotFoundError):
        session.rollback()
        raise
    except IntegrityError as e:
        session.rollback()
        raise ConflictError('Conflito ao registrar movimento de embalagem') from e
    except Exception as e:
        session.rollback()
        raise CeasaError(f'Erro ao registrar movimento de embalagem: {e}') from e

    cache_service.invalidate(tenant_id, cache_service.PACKAGING)
    return movement


def list_balances(session, tenant_id: int, store_id=None, packaging_type_id=None, page=1, limit=20) -> dict:
    """Packaging balances of the tenant, by store and packaging type."""
    def load():
        query = session.query(PackagingBalance).filter(PackagingBalance.tenant_id == tenant_id)
        if store_id:
            query = query.filter(PackagingBalance.store_id == store_id)
        if packaging_type_id:
            query = query.filter(PackagingBalance.packaging_type_id == packaging_type_id)
        query = query.order_by(PackagingBalance.store_id, PackagingBalance.packaging_type_id)
        items, pagination = paginate_query(query, page, limit)
        return {'data': [b.to_dict() for b in items], 'pagination': pagination}

    key = cache_service.build_key(view='balances', store=store_id, packaging=packaging_type_id,
                                  page=page, limit=limit)
    return cache_service.cached(tenant_id, cache_service.PACKAGING, key, load, 'CACHE_PACKAGING_TTL')


def list_movements(session, tenant_id: int, store_id=None, packaging_type_id=None, movement_type=None,
                   start=None, end=None, page=1, limit=20) -> dict:
    """Packaging movements, newest first."""
    query = session.query(PackagingMovement).filter(PackagingMovement.tenant_id == tenant_id)
    if store_id:
        query = query.filter(PackagingMovement.store_id == store_id)
    if packaging_type_id:
        query = query.filter(PackagingMovement.packaging_type_id == packaging_type_id)
    if movement_type:
        query = query.filter(PackagingMovement.movement_type == _parse_movement_type(movement_type))
    if start:
        query = query.filter(PackagingMovement.movement_date >= parse_datetime(start, 'start'))
    if end:
        query = query.filter(PackagingMovement.movement_date <= parse_datetime(end, 'end', end_of_day=True))

    query = query.order_by(PackagingMovement.movement_date.desc(), PackagingMovement.id.desc())
    items, pagination = paginate_query(query, page, limit)
    return {'data': [m.to_dict() for m in items], 'pagination': pagination}


def reconcile_balance(session, tenant_id: int, store_id: int, packaging_type_id: int) -> dict:
    """
    Compare the materialized balance with the sum of movement deltas.

    Diagnostic only, nothing is written.
    """
    balance = (
        session.query(PackagingBalance)
        .filter(
            PackagingBalance.tenant_id == tenant_id,
            PackagingBalance.store_id == store_id,
            PackagingBalance.packaging_type_id == packaging_type_id,
        )
        .first()
    )
    quantity_sum, deposit_sum = (
        session.query(
            func.coalesce(func.sum(PackagingMovement.quantity_delta), 0),
            func.coalesce(func.sum(PackagingMovement.deposit_delta), 0),
        )
        .filter(
            PackagingMovement.tenant_id == tenant_id,
            PackagingMovement.store_id == store_id,
            PackagingMovement.packaging_type_id == packaging_type_id,
        )
        .one()
    )

    quantity_balance = balance.quantity_balance if balance else 0
    deposit_balance = Decimal(str(balance.deposit_balance if balance else 0)).quantize(Decimal('0.01'))
    movement_quantity = int(quantity_sum)
    movement_deposit = Decimal(str(deposit_sum)).quantize(Decimal('0.01'))

    return {
        'store_id': store_id,
        'packaging_type_id': packaging_type_id,
        'quantity_balance': quantity_balance,
        'deposit_balance': deposit_balance,
        'movement_quantity': movement_quantity,
        'movement_deposit': movement_deposit,
        'consistent': quantity_balance == movement_quantity and deposit_balance == movement_deposit,
    }


def reconcile_tenant(session, tenant_id: int) -> list:
    """Reconcile every balance of a tenant."""
    keys = (
        session.query(PackagingBalance.store_id, PackagingBalance.packaging_type_id)
        .filter(PackagingBalance.tenant_id == tenant_id)
        .order_by(PackagingBalance.store_id, PackagingBalance.packaging_type_id)
        .all()
    )
    return [reconcile_balance(session, tenant_id, store_id, packaging_type_id)
            for store_id, packaging_type_id in keys]
