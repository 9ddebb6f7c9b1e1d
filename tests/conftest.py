import pytest
from decimal import Decimal
import uuid

from config import TestConfig
from ceasa import create_app
from ceasa.database import create_schema, drop_schema, get_session
from ceasa.models import (
    Tenant, AppUser, UserTenant, Store, Supplier, Product, PackagingType
)


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing (in-memory SQLite, no Redis)."""
    app = create_app(TestConfig)
    return app


@pytest.fixture(autouse=True)
def schema(app):
    """Fresh schema for every test."""
    with app.app_context():
        create_schema()
        yield
        get_session().remove()
        drop_schema()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session():
    """Create database session for testing."""
    session = get_session()
    yield session
    session.rollback()
    session.close()


def _tenant(session, label):
    suffix = str(uuid.uuid4())[:8]
    tenant = Tenant(
        slug=f'test-{label}-{suffix}',
        name=f'Test {label} {suffix}',
        active=True
    )
    session.add(tenant)
    session.commit()
    return tenant


def _member(session, tenant, role, finance_profile=False, label='user'):
    suffix = str(uuid.uuid4())[:8]
    user = AppUser(
        email=f'{label}-{suffix}@test.com',
        full_name=label.title(),
        active=True
    )
    user.set_password('password123')
    session.add(user)
    session.flush()

    session.add(UserTenant(
        user_id=user.id,
        tenant_id=tenant.id,
        role=role,
        finance_profile=finance_profile,
        active=True
    ))
    session.commit()
    return user


@pytest.fixture(scope='function')
def tenant1(session):
    """Create first test tenant."""
    return _tenant(session, 'tenant-1')


@pytest.fixture(scope='function')
def tenant2(session):
    """Create second test tenant for isolation tests."""
    return _tenant(session, 'tenant-2')


@pytest.fixture(scope='function')
def owner(session, tenant1):
    """Tenant1 owner with the finance profile."""
    return _member(session, tenant1, 'OWNER', finance_profile=True, label='owner')


@pytest.fixture(scope='function')
def buyer(session, tenant1):
    """Tenant1 buyer (comprador), no finance profile."""
    return _member(session, tenant1, 'BUYER', label='buyer')


@pytest.fixture(scope='function')
def finance_user(session, tenant1):
    """Tenant1 finance user with the finance profile."""
    return _member(session, tenant1, 'FINANCE', finance_profile=True, label='finance')


@pytest.fixture(scope='function')
def owner2(session, tenant2):
    """Tenant2 owner."""
    return _member(session, tenant2, 'OWNER', finance_profile=True, label='owner2')


@pytest.fixture(scope='function')
def store_a(session, tenant1):
    store = Store(tenant_id=tenant1.id, name='Loja A', code='A')
    session.add(store)
    session.commit()
    return store


@pytest.fixture(scope='function')
def store_b(session, tenant1):
    store = Store(tenant_id=tenant1.id, name='Loja B', code='B')
    session.add(store)
    session.commit()
    return store


@pytest.fixture(scope='function')
def store_t2(session, tenant2):
    store = Store(tenant_id=tenant2.id, name='Loja Tenant 2')
    session.add(store)
    session.commit()
    return store


@pytest.fixture(scope='function')
def supplier1(session, tenant1):
    supplier = Supplier(tenant_id=tenant1.id, name='Hortifruti Silva')
    session.add(supplier)
    session.commit()
    return supplier


@pytest.fixture(scope='function')
def supplier_t2(session, tenant2):
    supplier = Supplier(tenant_id=tenant2.id, name='Fornecedor Tenant 2')
    session.add(supplier)
    session.commit()
    return supplier


@pytest.fixture(scope='function')
def tomato(session, tenant1):
    product = Product(tenant_id=tenant1.id, name='Tomate', unit='cx')
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def lettuce(session, tenant1):
    product = Product(tenant_id=tenant1.id, name='Alface', unit='un')
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def product_t2(session, tenant2):
    product = Product(tenant_id=tenant2.id, name='Batata')
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def crate(session, tenant1):
    """Returnable plastic crate, 5.00 deposit per unit."""
    packaging = PackagingType(tenant_id=tenant1.id, description='Caixa plástica', deposit_value=Decimal('5.00'))
    session.add(packaging)
    session.commit()
    return packaging


@pytest.fixture(scope='function')
def crate_t2(session, tenant2):
    packaging = PackagingType(tenant_id=tenant2.id, description='Caixa tenant 2', deposit_value=Decimal('5.00'))
    session.add(packaging)
    session.commit()
    return packaging


@pytest.fixture(scope='function')
def login(client):
    """
    Return a function that authenticates the test client as (user, tenant).

    Accepts models or plain ids; pass ids once a request has detached the
    fixture objects.
    """
    def _login(user, tenant):
        with client.session_transaction() as sess:
            sess['user_id'] = getattr(user, 'id', user)
            sess['tenant_id'] = getattr(tenant, 'id', tenant)
        return client
    return _login
