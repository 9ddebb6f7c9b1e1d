"""Financial titles blueprint (financeiro) - Multi-Tenant JSON API."""
from flask import Blueprint, request, g

from ceasa.blueprints.metrics import record_transition
from ceasa.database import get_session
from ceasa.decorators.permissions import require_role, require_finance_profile, FINANCE_ROLES
from ceasa.services import title_service
from ceasa.utils.api import json_payload, page_args, success

titles_bp = Blueprint('titles', __name__, url_prefix='/api/v1/titles')


def _resolved(resolved):
    return {'kind': resolved.kind, 'title': resolved.title.to_dict()}


@titles_bp.route('', methods=['GET'])
@require_finance_profile
def list_titles():
    """
    Store and supplier titles as two parallel collections.

    Filters: kind (loja|fornecedor), status, title_type, store_id, supplier_id.
    """
    page, limit = page_args()
    result = title_service.list_titles(
        get_session(), g.tenant_id,
        kind=request.args.get('kind'),
        status=request.args.get('status'),
        title_type=request.args.get('title_type'),
        store_id=request.args.get('store_id'),
        supplier_id=request.args.get('supplier_id'),
        page=page, limit=limit,
    )
    return success(result)


@titles_bp.route('/<title_id>', methods=['GET'])
@require_finance_profile
def get_title(title_id):
    return success(_resolved(title_service.get_title(get_session(), g.tenant_id, title_id)))


@titles_bp.route('/<title_id>/settle', methods=['POST'])
@require_role(*FINANCE_ROLES)
@require_finance_profile
def settle_title(title_id):
    payload = json_payload()
    resolved = title_service.settle_title(get_session(), g.tenant_id, title_id,
                                          paid_at=payload.get('paid_at'), user_id=g.user_id)
    record_transition('title', 'settle')
    return success(_resolved(resolved), message='Título baixado')


@titles_bp.route('/<title_id>/reverse', methods=['POST'])
@require_role(*FINANCE_ROLES)
@require_finance_profile
def reverse_title(title_id):
    resolved = title_service.reverse_title(get_session(), g.tenant_id, title_id, user_id=g.user_id)
    record_transition('title', 'reverse')
    return success(_resolved(resolved), message='Título estornado')


@titles_bp.route('/<title_id>/cancel', methods=['POST'])
@require_role(*FINANCE_ROLES)
@require_finance_profile
def cancel_title(title_id):
    resolved = title_service.cancel_title(get_session(), g.tenant_id, title_id, user_id=g.user_id)
    record_transition('title', 'cancel')
    return success(_resolved(resolved), message='Título cancelado')
