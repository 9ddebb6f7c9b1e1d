"""Merchandise returns (devolucoes) blueprint - Multi-Tenant JSON API."""
from flask import Blueprint, request, g

from ceasa.blueprints.metrics import record_transition, record_titles
from ceasa.database import get_session
from ceasa.decorators.permissions import require_role, OPERATIONS_ROLES
from ceasa.models import ReturnTreatment
from ceasa.services import return_service
from ceasa.utils.api import json_payload, page_args, success, listing

returns_bp = Blueprint('returns', __name__, url_prefix='/api/v1/returns')


@returns_bp.route('', methods=['GET'])
@require_role(*OPERATIONS_ROLES)
def list_returns():
    """List returns (filters: store_id, status, treatment)."""
    page, limit = page_args()
    result = return_service.list_returns(
        get_session(), g.tenant_id,
        store_id=request.args.get('store_id'),
        status=request.args.get('status'),
        treatment=request.args.get('treatment'),
        page=page, limit=limit,
    )
    return listing(result)


@returns_bp.route('/<int:return_id>', methods=['GET'])
@require_role(*OPERATIONS_ROLES)
def get_return(return_id):
    merchandise_return = return_service.get_return(get_session(), g.tenant_id, return_id)
    return success(merchandise_return.to_dict())


@returns_bp.route('', methods=['POST'])
@require_role(*OPERATIONS_ROLES)
def create_return():
    merchandise_return = return_service.create_return(get_session(), g.tenant_id, json_payload(),
                                                      user_id=g.user_id)
    return success(merchandise_return.to_dict(), 201, message='Devolução registrada')


@returns_bp.route('/<int:return_id>/process', methods=['POST'])
@require_role(*OPERATIONS_ROLES)
def process_return(return_id):
    merchandise_return = return_service.process_return(get_session(), g.tenant_id, return_id, user_id=g.user_id)
    record_transition('return', 'process')
    if merchandise_return.treatment == ReturnTreatment.CREDIT:
        record_titles('loja', 'PAYABLE')
    return success(merchandise_return.to_dict(), message='Devolução processada')


@returns_bp.route('/<int:return_id>/cancel', methods=['POST'])
@require_role(*OPERATIONS_ROLES)
def cancel_return(return_id):
    merchandise_return = return_service.cancel_return(get_session(), g.tenant_id, return_id, user_id=g.user_id)
    record_transition('return', 'cancel')
    return success(merchandise_return.to_dict(), message='Devolução cancelada')
