"""
Critical integration tests for tenant isolation.
These tests ensure that data is properly isolated between tenants.
"""

import pytest

from ceasa.exceptions import NotFoundError
from ceasa.models import Purchase, PackagingBalance
from ceasa.services import (
    purchase_service, manifest_service, packaging_service, return_service, title_service,
)


@pytest.fixture
def purchase_tenant1(session, tenant1, buyer, supplier1, tomato):
    return purchase_service.create_purchase(session, tenant1.id, buyer.id, {
        'supplier_id': supplier1.id,
        'items': [{'product_id': tomato.id, 'quantity': 10, 'unit_price': 5}],
    })


@pytest.fixture
def purchase_tenant2(session, tenant2, owner2, supplier_t2, product_t2):
    return purchase_service.create_purchase(session, tenant2.id, owner2.id, {
        'supplier_id': supplier_t2.id,
        'items': [{'product_id': product_t2.id, 'quantity': 1, 'unit_price': 3}],
    })


class TestPurchaseIsolation:
    """Test purchase isolation between tenants."""

    def test_numbering_is_per_tenant(self, purchase_tenant1, purchase_tenant2):
        """Both tenants start their daily sequence at 0001."""
        assert purchase_tenant1.purchase_number.endswith('-0001')
        assert purchase_tenant2.purchase_number.endswith('-0001')

    def test_list_only_own_purchases(self, session, tenant1, purchase_tenant1, purchase_tenant2):
        result = purchase_service.list_purchases(session, tenant1.id)
        assert [p['id'] for p in result['data']] == [purchase_tenant1.id]

    def test_cannot_conclude_other_tenant_purchase(self, session, tenant2, purchase_tenant1):
        """Test that a foreign purchase behaves as missing."""
        with pytest.raises(NotFoundError):
            purchase_service.conclude_purchase(session, tenant2.id, purchase_tenant1.id)
        with pytest.raises(NotFoundError):
            purchase_service.delete_purchase(session, tenant2.id, purchase_tenant1.id)
        assert session.query(Purchase).filter_by(id=purchase_tenant1.id).count() == 1

    def test_cannot_use_other_tenant_supplier(self, session, tenant1, buyer, supplier_t2, tomato):
        with pytest.raises(NotFoundError):
            purchase_service.create_purchase(session, tenant1.id, buyer.id, {
                'supplier_id': supplier_t2.id,
                'items': [{'product_id': tomato.id, 'quantity': 1, 'unit_price': 1}],
            })


class TestManifestIsolation:
    """Test manifest isolation between tenants."""

    def test_cannot_link_other_tenant_purchase_line(self, session, tenant2, owner2, store_t2, product_t2,
                                                    purchase_tenant1):
        with pytest.raises(NotFoundError):
            manifest_service.generate_manifest(session, tenant2.id, owner2.id, {
                'items': [{'store_id': store_t2.id, 'product_id': product_t2.id, 'quantity': 1,
                           'unit_price': 1, 'purchase_line_id': purchase_tenant1.lines[0].id}],
            })

    def test_get_other_tenant_manifest(self, session, tenant1, tenant2, buyer, store_a, tomato):
        manifest = manifest_service.generate_manifest(session, tenant1.id, buyer.id, {
            'items': [{'store_id': store_a.id, 'product_id': tomato.id, 'quantity': 1, 'unit_price': 1}],
        })
        with pytest.raises(NotFoundError):
            manifest_service.get_manifest(session, tenant2.id, manifest.id)
        assert manifest_service.list_manifests(session, tenant2.id)['pagination']['total'] == 0


class TestPackagingIsolation:
    """Test packaging balance isolation between tenants."""

    def test_cannot_adjust_other_tenant_store(self, session, tenant1, store_t2, crate):
        with pytest.raises(NotFoundError):
            packaging_service.adjust_packaging(session, tenant1.id, {
                'store_id': store_t2.id, 'packaging_type_id': crate.id,
                'movement_type': 'OUT', 'quantity': 1,
            })
        assert session.query(PackagingBalance).count() == 0

    def test_balances_are_tenant_scoped(self, session, tenant1, tenant2, store_a, store_t2, crate, crate_t2):
        packaging_service.adjust_packaging(session, tenant1.id, {
            'store_id': store_a.id, 'packaging_type_id': crate.id, 'movement_type': 'OUT', 'quantity': 4})
        packaging_service.adjust_packaging(session, tenant2.id, {
            'store_id': store_t2.id, 'packaging_type_id': crate_t2.id, 'movement_type': 'OUT', 'quantity': 9})

        tenant1_balances = packaging_service.list_balances(session, tenant1.id)['data']
        assert [b['quantity_balance'] for b in tenant1_balances] == [4]
        assert packaging_service.list_movements(session, tenant2.id)['pagination']['total'] == 1


class TestTitleIsolation:
    """Test financial title isolation between tenants."""

    def test_cannot_settle_other_tenant_title(self, session, tenant1, tenant2, purchase_tenant1):
        purchase_service.conclude_purchase(session, tenant1.id, purchase_tenant1.id)
        title_id = title_service.list_titles(session, tenant1.id)['supplier_titles']['data'][0]['id']

        with pytest.raises(NotFoundError):
            title_service.settle_title(session, tenant2.id, title_id)
        assert title_service.get_title(session, tenant1.id, title_id).title.status.value == 'OPEN'


class TestReturnIsolation:
    """Test return isolation between tenants."""

    def test_cannot_process_other_tenant_return(self, session, tenant1, tenant2, store_a, tomato):
        merchandise_return = return_service.create_return(session, tenant1.id, {
            'store_id': store_a.id, 'reason': 'avariado',
            'items': [{'product_id': tomato.id, 'quantity': 1, 'unit_price': 2}],
        })
        with pytest.raises(NotFoundError):
            return_service.process_return(session, tenant2.id, merchandise_return.id)
        assert return_service.list_returns(session, tenant2.id)['pagination']['total'] == 0
