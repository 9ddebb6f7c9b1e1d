"""
Integration tests for the packaging balance engine.
"""

import pytest
from decimal import Decimal

from ceasa.exceptions import ValidationError, NotFoundError
from ceasa.models import PackagingBalance, PackagingMovement, MovementType, PackagingReferenceType
from ceasa.services import packaging_service


def _adjust(session, tenant, store, packaging, movement_type, quantity, deposit=None, **extra):
    payload = {'store_id': store.id, 'packaging_type_id': packaging.id,
               'movement_type': movement_type, 'quantity': quantity}
    if deposit is not None:
        payload['deposit_amount'] = deposit
    payload.update(extra)
    return packaging_service.adjust_packaging(session, tenant.id, payload)


def _balance(session, store, packaging):
    return session.query(PackagingBalance).filter_by(store_id=store.id, packaging_type_id=packaging.id).one()


class TestAdjustPackaging:

    def test_out_then_in(self, session, tenant1, store_a, crate):
        _adjust(session, tenant1, store_a, crate, 'OUT', 5, 25)
        _adjust(session, tenant1, store_a, crate, 'in', 2, 10)

        balance = _balance(session, store_a, crate)
        assert balance.quantity_balance == 3
        assert balance.deposit_balance == Decimal('15.00')
        assert session.query(PackagingBalance).count() == 1

    def test_signed_adjust(self, session, tenant1, store_a, crate):
        _adjust(session, tenant1, store_a, crate, 'OUT', 4, 20)
        movement = _adjust(session, tenant1, store_a, crate, 'ADJUST', -1, '-5,00', notes='quebra')

        assert movement.reference_type == PackagingReferenceType.MANUAL_ADJUSTMENT
        assert movement.quantity_delta == -1
        assert movement.notes == 'quebra'
        assert _balance(session, store_a, crate).quantity_balance == 3

    def test_in_may_go_negative(self, session, tenant1, store_a, crate):
        _adjust(session, tenant1, store_a, crate, 'IN', 2)
        balance = _balance(session, store_a, crate)
        assert balance.quantity_balance == -2
        assert balance.deposit_balance == Decimal('0.00')

    def test_balances_are_per_store(self, session, tenant1, store_a, store_b, crate):
        _adjust(session, tenant1, store_a, crate, 'OUT', 3)
        _adjust(session, tenant1, store_b, crate, 'OUT', 7)
        assert _balance(session, store_a, crate).quantity_balance == 3
        assert _balance(session, store_b, crate).quantity_balance == 7

    def test_zero_movement_rejected(self, session, tenant1, store_a, crate):
        with pytest.raises(ValidationError):
            _adjust(session, tenant1, store_a, crate, 'OUT', 0)
        assert session.query(PackagingMovement).count() == 0

    def test_negative_out_rejected(self, session, tenant1, store_a, crate):
        with pytest.raises(ValidationError):
            _adjust(session, tenant1, store_a, crate, 'OUT', -3)

    def test_fractional_quantity_rejected(self, session, tenant1, store_a, crate):
        with pytest.raises(ValidationError):
            _adjust(session, tenant1, store_a, crate, 'OUT', '1,5')

    def test_invalid_movement_type(self, session, tenant1, store_a, crate):
        with pytest.raises(ValidationError):
            _adjust(session, tenant1, store_a, crate, 'SIDEWAYS', 1)

    def test_packaging_from_other_tenant(self, session, tenant1, store_a, crate_t2):
        with pytest.raises(NotFoundError):
            _adjust(session, tenant1, store_a, crate_t2, 'OUT', 1)
        assert session.query(PackagingBalance).count() == 0


class TestConservation:

    def test_balance_equals_movement_sum(self, session, tenant1, store_a, crate):
        _adjust(session, tenant1, store_a, crate, 'OUT', 10, 50)
        _adjust(session, tenant1, store_a, crate, 'IN', 4, 20)
        _adjust(session, tenant1, store_a, crate, 'ADJUST', -1, -5)
        _adjust(session, tenant1, store_a, crate, 'OUT', 2, 10)

        report = packaging_service.reconcile_balance(session, tenant1.id, store_a.id, crate.id)
        assert report['consistent']
        assert report['quantity_balance'] == 7
        assert report['movement_quantity'] == 7
        assert report['deposit_balance'] == Decimal('35.00')

    def test_reconcile_detects_drift(self, session, tenant1, store_a, crate):
        _adjust(session, tenant1, store_a, crate, 'OUT', 3, 15)
        balance = _balance(session, store_a, crate)
        balance.quantity_balance = 99
        session.commit()

        reports = packaging_service.reconcile_tenant(session, tenant1.id)
        assert len(reports) == 1
        assert not reports[0]['consistent']
        assert reports[0]['movement_quantity'] == 3

    def test_reconcile_without_balance(self, session, tenant1, store_a, crate):
        report = packaging_service.reconcile_balance(session, tenant1.id, store_a.id, crate.id)
        assert report['consistent']
        assert report['quantity_balance'] == 0


class TestListings:

    def test_list_balances_and_movements(self, session, tenant1, store_a, store_b, crate):
        _adjust(session, tenant1, store_a, crate, 'OUT', 3)
        _adjust(session, tenant1, store_b, crate, 'OUT', 1)
        _adjust(session, tenant1, store_a, crate, 'IN', 1)

        balances = packaging_service.list_balances(session, tenant1.id)
        assert balances['pagination']['total'] == 2

        only_a = packaging_service.list_balances(session, tenant1.id, store_id=store_a.id)
        assert only_a['data'][0]['quantity_balance'] == 2

        movements = packaging_service.list_movements(session, tenant1.id, store_id=store_a.id)
        assert movements['pagination']['total'] == 2

        ins = packaging_service.list_movements(session, tenant1.id, movement_type='IN')
        assert [m['movement_type'] for m in ins['data']] == [MovementType.IN.value]

    def test_date_only_end_includes_that_day(self, session, tenant1, store_a, crate):
        _adjust(session, tenant1, store_a, crate, 'OUT', 2, movement_date='2024-05-10T15:00:00')
        _adjust(session, tenant1, store_a, crate, 'IN', 1, movement_date='2024-05-11T09:00:00')

        same_day = packaging_service.list_movements(session, tenant1.id, start='2024-05-10', end='2024-05-10')
        assert same_day['pagination']['total'] == 1
        assert same_day['data'][0]['movement_type'] == MovementType.OUT.value

        both = packaging_service.list_movements(session, tenant1.id, end='2024-05-11')
        assert both['pagination']['total'] == 2
