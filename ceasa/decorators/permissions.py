"""
Permission decorators for role-based access control.
Authentication, tenant and role checks for the API blueprints.
"""

from functools import wraps
from flask import g

from ceasa.exceptions import ForbiddenError, UnauthorizedError

# Role groups used by the API
OPERATIONS_ROLES = ('OWNER', 'MANAGER', 'BUYER')
ELEVATED_ROLES = ('OWNER', 'MANAGER')
FINANCE_ROLES = ('OWNER', 'MANAGER', 'FINANCE')


def _require_context():
    if not g.get('user'):
        raise UnauthorizedError('Autenticação necessária')
    if not g.get('tenant_id'):
        raise UnauthorizedError('Selecione uma empresa primeiro')


def require_role(*allowed_roles):
    """
    Decorator to restrict access to specific roles.

    Usage:
        @require_role('OWNER')
        @require_role(*ELEVATED_ROLES)

    Args:
        *allowed_roles: Variable number of role strings
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            _require_context()

            user_role = g.get('user_role')
            if not user_role or user_role not in allowed_roles:
                raise ForbiddenError('Você não tem permissão para esta operação')

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_finance_profile(f):
    """
    Decorator: require the finance profile attribute of the membership.

    Independent of the role; stack it with require_role where both apply.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        _require_context()
        if not g.get('finance_profile'):
            raise ForbiddenError('Acesso restrito ao perfil financeiro')
        return f(*args, **kwargs)
    return decorated_function
