"""
Integration tests for the financial titles ledger.
"""

import uuid
import pytest
from datetime import datetime, timezone
from decimal import Decimal

from ceasa.exceptions import ValidationError, NotFoundError
from ceasa.models import StoreTitle, SupplierTitle, TitleType, TitleStatus, AuditLog, AuditAction
from ceasa.services import title_service


@pytest.fixture
def store_title(session, tenant1, store_a):
    title = title_service.create_store_title(session, tenant1.id, TitleType.RECEIVABLE, store_a.id, 12, 10)
    session.commit()
    return title


@pytest.fixture
def supplier_title(session, tenant1, supplier1):
    title = title_service.create_supplier_title(session, tenant1.id, TitleType.PAYABLE, supplier1.id, 110)
    session.commit()
    return title


class TestResolveTitle:

    def test_resolves_both_kinds(self, session, tenant1, store_title, supplier_title):
        resolved = title_service.resolve_title(session, tenant1.id, store_title.id)
        assert resolved.kind == 'loja'
        assert resolved.title.id == store_title.id

        resolved = title_service.resolve_title(session, tenant1.id, str(supplier_title.id))
        assert resolved.kind == 'fornecedor'
        assert resolved.title.principal_amount == Decimal('110.00')

    def test_unknown_id(self, session, tenant1, store_title):
        with pytest.raises(NotFoundError):
            title_service.resolve_title(session, tenant1.id, uuid.uuid4())

    def test_malformed_id(self, session, tenant1):
        with pytest.raises(NotFoundError):
            title_service.resolve_title(session, tenant1.id, 'abc')

    def test_other_tenant(self, session, tenant2, store_title):
        with pytest.raises(NotFoundError):
            title_service.resolve_title(session, tenant2.id, store_title.id)

    def test_store_title_amounts(self, store_title):
        assert store_title.principal_amount == Decimal('12.00')
        assert store_title.total_amount == Decimal('22.00')
        assert (store_title.due_date - store_title.issue_date).days == 30


class TestSettleAndReverse:

    def test_settle_then_reverse(self, session, tenant1, owner, store_title):
        settled = title_service.settle_title(session, tenant1.id, store_title.id, user_id=owner.id)
        assert settled.kind == 'loja'
        assert settled.title.status == TitleStatus.PAID
        assert settled.title.paid_at is not None

        reversed_ = title_service.reverse_title(session, tenant1.id, store_title.id, user_id=owner.id)
        assert reversed_.title.status == TitleStatus.OPEN
        assert reversed_.title.paid_at is None
        assert reversed_.title.total_amount == Decimal('22.00')

        actions = [a.action for a in session.query(AuditLog).order_by(AuditLog.id)]
        assert actions == [AuditAction.TITLE_SETTLED, AuditAction.TITLE_REVERSED]

    def test_settle_with_paid_at(self, session, tenant1, supplier_title):
        settled = title_service.settle_title(session, tenant1.id, supplier_title.id,
                                             paid_at='2024-06-01T10:00:00')
        assert settled.kind == 'fornecedor'
        assert settled.title.paid_at.replace(tzinfo=None) == datetime(2024, 6, 1, 10, 0)

    def test_partial_can_be_settled(self, session, tenant1, store_title):
        store_title.status = TitleStatus.PARTIAL
        session.commit()
        assert title_service.settle_title(session, tenant1.id, store_title.id).title.status == TitleStatus.PAID

    def test_settle_paid_rejected(self, session, tenant1, store_title):
        title_service.settle_title(session, tenant1.id, store_title.id)
        with pytest.raises(ValidationError) as exc:
            title_service.settle_title(session, tenant1.id, store_title.id)
        assert exc.value.message == 'Título já está pago'

    def test_reverse_open_rejected(self, session, tenant1, supplier_title):
        with pytest.raises(ValidationError) as exc:
            title_service.reverse_title(session, tenant1.id, supplier_title.id)
        assert exc.value.message == 'Apenas títulos pagos podem ser estornados'

    def test_settle_cancelled_rejected(self, session, tenant1, store_title):
        title_service.cancel_title(session, tenant1.id, store_title.id)
        with pytest.raises(ValidationError):
            title_service.settle_title(session, tenant1.id, store_title.id)


class TestCancelTitle:

    def test_cancel_open(self, session, tenant1, supplier_title):
        cancelled = title_service.cancel_title(session, tenant1.id, supplier_title.id)
        assert cancelled.title.status == TitleStatus.CANCELLED

    def test_paid_must_be_reversed_first(self, session, tenant1, store_title):
        title_service.settle_title(session, tenant1.id, store_title.id)
        with pytest.raises(ValidationError):
            title_service.cancel_title(session, tenant1.id, store_title.id)

        title_service.reverse_title(session, tenant1.id, store_title.id)
        assert title_service.cancel_title(session, tenant1.id, store_title.id).title.status == TitleStatus.CANCELLED


class TestListTitles:

    def test_two_collections(self, session, tenant1, store_a, store_b, store_title, supplier_title):
        title_service.create_store_title(session, tenant1.id, TitleType.PAYABLE, store_b.id, 5)
        session.commit()

        result = title_service.list_titles(session, tenant1.id)
        assert result['store_titles']['pagination']['total'] == 2
        assert result['supplier_titles']['pagination']['total'] == 1

        receivables = title_service.list_titles(session, tenant1.id, title_type='receivable')
        assert [t['store_id'] for t in receivables['store_titles']['data']] == [store_a.id]
        assert receivables['supplier_titles']['pagination']['total'] == 0

        by_store = title_service.list_titles(session, tenant1.id, store_id=store_b.id)
        assert by_store['store_titles']['pagination']['total'] == 1

    def test_kind_filter(self, session, tenant1, store_title, supplier_title):
        result = title_service.list_titles(session, tenant1.id, kind='fornecedor')
        assert result['store_titles']['data'] == []
        assert result['supplier_titles']['pagination']['total'] == 1

    def test_status_filter(self, session, tenant1, store_title, supplier_title):
        title_service.settle_title(session, tenant1.id, supplier_title.id)
        paid = title_service.list_titles(session, tenant1.id, status='paid')
        assert paid['store_titles']['pagination']['total'] == 0
        assert paid['supplier_titles']['pagination']['total'] == 1

    def test_invalid_filters(self, session, tenant1):
        with pytest.raises(ValidationError):
            title_service.list_titles(session, tenant1.id, kind='cliente')
        with pytest.raises(ValidationError):
            title_service.list_titles(session, tenant1.id, status='OVERDUE')

    def test_tenant_scoped(self, session, tenant2, store_title, supplier_title):
        result = title_service.list_titles(session, tenant2.id)
        assert result['store_titles']['pagination']['total'] == 0
        assert result['supplier_titles']['pagination']['total'] == 0
