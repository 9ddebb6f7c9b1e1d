"""
Integration tests for the merchandise returns workflow.
"""

import pytest
from decimal import Decimal

from ceasa.exceptions import ValidationError, NotFoundError
from ceasa.models import (
    MerchandiseReturn, ReturnStatus, ReturnTreatment, StoreTitle, TitleType, TitleStatus,
)
from ceasa.services import manifest_service, return_service, title_service


@pytest.fixture
def finalized_manifest(session, tenant1, buyer, store_a, store_b, tomato, lettuce, crate):
    """Receivables: store A 12.00 + 10.00 deposit, store B 12.00."""
    manifest = manifest_service.generate_manifest(session, tenant1.id, buyer.id, {
        'items': [
            {'store_id': store_a.id, 'product_id': tomato.id, 'quantity': 2, 'unit_price': 6,
             'packaging_type_id': crate.id, 'packaging_qty': 2, 'deposit_total': 10},
            {'store_id': store_b.id, 'product_id': lettuce.id, 'quantity': 3, 'unit_price': 4},
        ],
    })
    return manifest_service.finalize_manifest(session, tenant1.id, manifest.id)


def _return(session, tenant, store, product, treatment, quantity=1, unit_price=6, manifest=None, **extra):
    payload = {
        'store_id': store.id,
        'reason': 'avariado',
        'treatment': treatment,
        'items': [{'product_id': product.id, 'quantity': quantity, 'unit_price': unit_price}],
    }
    if manifest is not None:
        payload['manifest_id'] = manifest.id
    payload.update(extra)
    return return_service.create_return(session, tenant.id, payload)


def _receivable(session, manifest, store):
    return (session.query(StoreTitle)
            .filter_by(manifest_id=manifest.id, store_id=store.id, title_type=TitleType.RECEIVABLE)
            .one())


class TestCreateReturn:

    def test_pending_with_number(self, session, tenant1, store_a, tomato):
        merchandise_return = _return(session, tenant1, store_a, tomato, 'credito', quantity=2, unit_price='3,50')
        assert merchandise_return.status == ReturnStatus.PENDING
        assert merchandise_return.treatment == ReturnTreatment.CREDIT
        assert merchandise_return.return_number.startswith('DEV-')
        assert merchandise_return.total_amount == Decimal('7.00')

    def test_default_treatment_is_credit(self, session, tenant1, store_a, tomato):
        merchandise_return = _return(session, tenant1, store_a, tomato, None)
        assert merchandise_return.treatment == ReturnTreatment.CREDIT

    def test_reason_required(self, session, tenant1, store_a, tomato):
        with pytest.raises(ValidationError):
            _return(session, tenant1, store_a, tomato, 'CREDIT', reason='  ')
        assert session.query(MerchandiseReturn).count() == 0

    def test_invalid_treatment(self, session, tenant1, store_a, tomato):
        with pytest.raises(ValidationError):
            _return(session, tenant1, store_a, tomato, 'DOACAO')

    def test_missing_price_counts_as_zero(self, session, tenant1, store_a, tomato, lettuce):
        merchandise_return = return_service.create_return(session, tenant1.id, {
            'store_id': store_a.id,
            'reason': 'sobra',
            'items': [
                {'product_id': tomato.id, 'quantity': 2, 'unit_price': 5},
                {'product_id': lettuce.id, 'quantity': 4},
            ],
        })
        assert merchandise_return.total_amount == Decimal('10.00')
        assert merchandise_return.lines[1].unit_price is None

    def test_manifest_from_other_tenant(self, session, tenant2, store_t2, product_t2, finalized_manifest):
        with pytest.raises(NotFoundError):
            _return(session, tenant2, store_t2, product_t2, 'CREDIT', manifest=finalized_manifest)


class TestProcessReturn:

    def test_credit_emits_payable_store_title(self, session, tenant1, store_a, tomato, finalized_manifest):
        merchandise_return = _return(session, tenant1, store_a, tomato, 'CREDIT', manifest=finalized_manifest)
        processed = return_service.process_return(session, tenant1.id, merchandise_return.id)

        assert processed.status == ReturnStatus.PROCESSED
        assert processed.processed_at is not None

        title = session.query(StoreTitle).filter_by(return_id=merchandise_return.id).one()
        assert title.title_type == TitleType.PAYABLE
        assert title.store_id == store_a.id
        assert title.manifest_id == finalized_manifest.id
        assert title.principal_amount == Decimal('6.00')
        assert title.total_amount == Decimal('6.00')

    def test_reversal_reduces_open_receivable(self, session, tenant1, store_a, store_b, tomato,
                                              finalized_manifest):
        merchandise_return = _return(session, tenant1, store_a, tomato, 'estorno', manifest=finalized_manifest)
        return_service.process_return(session, tenant1.id, merchandise_return.id)

        title_a = _receivable(session, finalized_manifest, store_a)
        assert title_a.principal_amount == Decimal('6.00')
        assert title_a.deposit_amount == Decimal('10.00')
        assert title_a.total_amount == Decimal('16.00')
        assert title_a.status == TitleStatus.OPEN

        assert _receivable(session, finalized_manifest, store_b).total_amount == Decimal('12.00')
        assert session.query(StoreTitle).count() == 2

    def test_reversal_above_principal_rejected(self, session, tenant1, store_a, tomato, finalized_manifest):
        merchandise_return = _return(session, tenant1, store_a, tomato, 'REVERSAL', quantity=3,
                                     manifest=finalized_manifest)
        with pytest.raises(ValidationError):
            return_service.process_return(session, tenant1.id, merchandise_return.id)

        assert session.get(MerchandiseReturn, merchandise_return.id).status == ReturnStatus.PENDING
        assert _receivable(session, finalized_manifest, store_a).principal_amount == Decimal('12.00')

    def test_reversal_of_paid_receivable_rejected(self, session, tenant1, store_a, tomato, finalized_manifest):
        title_service.settle_title(session, tenant1.id, _receivable(session, finalized_manifest, store_a).id)
        merchandise_return = _return(session, tenant1, store_a, tomato, 'REVERSAL', manifest=finalized_manifest)

        with pytest.raises(ValidationError):
            return_service.process_return(session, tenant1.id, merchandise_return.id)
        assert session.get(MerchandiseReturn, merchandise_return.id).status == ReturnStatus.PENDING

    def test_reversal_without_manifest_has_no_effect(self, session, tenant1, store_a, tomato, finalized_manifest):
        merchandise_return = _return(session, tenant1, store_a, tomato, 'REVERSAL')
        processed = return_service.process_return(session, tenant1.id, merchandise_return.id)

        assert processed.status == ReturnStatus.PROCESSED
        assert _receivable(session, finalized_manifest, store_a).principal_amount == Decimal('12.00')
        assert session.query(StoreTitle).count() == 2

    def test_exchange_has_no_financial_effect(self, session, tenant1, store_a, tomato, finalized_manifest):
        merchandise_return = _return(session, tenant1, store_a, tomato, 'troca', manifest=finalized_manifest)
        processed = return_service.process_return(session, tenant1.id, merchandise_return.id)

        assert processed.status == ReturnStatus.PROCESSED
        assert session.query(StoreTitle).count() == 2

    def test_second_process_rejected(self, session, tenant1, store_a, tomato):
        merchandise_return = _return(session, tenant1, store_a, tomato, 'CREDIT')
        return_service.process_return(session, tenant1.id, merchandise_return.id)
        with pytest.raises(ValidationError):
            return_service.process_return(session, tenant1.id, merchandise_return.id)
        assert session.query(StoreTitle).count() == 1

    def test_cancelled_cannot_process(self, session, tenant1, store_a, tomato):
        merchandise_return = _return(session, tenant1, store_a, tomato, 'CREDIT')
        return_service.cancel_return(session, tenant1.id, merchandise_return.id)
        with pytest.raises(ValidationError):
            return_service.process_return(session, tenant1.id, merchandise_return.id)
        assert session.query(StoreTitle).count() == 0


class TestListReturns:

    def test_filters(self, session, tenant1, store_a, store_b, tomato):
        _return(session, tenant1, store_a, tomato, 'CREDIT')
        _return(session, tenant1, store_b, tomato, 'EXCHANGE')
        processed = _return(session, tenant1, store_a, tomato, 'EXCHANGE')
        return_service.process_return(session, tenant1.id, processed.id)

        assert return_service.list_returns(session, tenant1.id)['pagination']['total'] == 3
        assert return_service.list_returns(session, tenant1.id, store_id=store_a.id)['pagination']['total'] == 2
        assert return_service.list_returns(session, tenant1.id, treatment='troca')['pagination']['total'] == 2
        pending = return_service.list_returns(session, tenant1.id, status='PENDING')
        assert processed.id not in [r['id'] for r in pending['data']]
