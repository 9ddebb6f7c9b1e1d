"""Middleware for authentication and tenant context."""
from flask import session, g

from ceasa.database import get_session
from ceasa.models import AppUser, Tenant, UserTenant


def load_user_and_tenant():
    """
    Load current user and tenant into g (Flask's per-request global).

    The session itself is established by the auth collaborator; this only
    reads user_id/tenant_id from it. Sets g.user, g.user_id, g.tenant_id,
    g.user_role and g.finance_profile when the membership is active.
    """
    g.user = None
    g.user_id = None
    g.tenant_id = None
    g.user_role = None
    g.finance_profile = False

    user_id = session.get('user_id')
    if not user_id:
        return

    db_session = get_session()
    user = db_session.query(AppUser).filter_by(id=user_id, active=True).first()
    if not user:
        return

    g.user = user
    g.user_id = user.id

    tenant_id = session.get('tenant_id')
    if not tenant_id:
        return

    user_tenant = db_session.query(UserTenant).filter_by(
        user_id=user.id,
        tenant_id=tenant_id,
        active=True
    ).first()
    if not user_tenant:
        # User doesn't have access to this tenant, clear it
        session.pop('tenant_id', None)
        return

    tenant = db_session.query(Tenant).filter_by(id=tenant_id).first()
    if not tenant or not tenant.active or tenant.is_suspended:
        return

    g.tenant_id = tenant.id
    g.user_role = user_tenant.role
    g.finance_profile = bool(user_tenant.finance_profile)
