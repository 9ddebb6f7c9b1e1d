"""Returnable packaging blueprint - balances, movements and manual adjustments."""
from flask import Blueprint, request, g

from ceasa.database import get_session
from ceasa.decorators.permissions import require_role, OPERATIONS_ROLES
from ceasa.services import packaging_service
from ceasa.utils.api import json_payload, page_args, success, listing

packaging_bp = Blueprint('packaging', __name__, url_prefix='/api/v1/packaging')


@packaging_bp.route('/balances', methods=['GET'])
@require_role(*OPERATIONS_ROLES)
def list_balances():
    page, limit = page_args()
    result = packaging_service.list_balances(
        get_session(), g.tenant_id,
        store_id=request.args.get('store_id', type=int),
        packaging_type_id=request.args.get('packaging_type_id', type=int),
        page=page, limit=limit,
    )
    return listing(result)


@packaging_bp.route('/movements', methods=['GET'])
@require_role(*OPERATIONS_ROLES)
def list_movements():
    """List movements (filters: store_id, packaging_type_id, movement_type, start, end)."""
    page, limit = page_args()
    result = packaging_service.list_movements(
        get_session(), g.tenant_id,
        store_id=request.args.get('store_id', type=int),
        packaging_type_id=request.args.get('packaging_type_id', type=int),
        movement_type=request.args.get('movement_type'),
        start=request.args.get('start'),
        end=request.args.get('end'),
        page=page, limit=limit,
    )
    return listing(result)


@packaging_bp.route('/adjustments', methods=['POST'])
@require_role(*OPERATIONS_ROLES)
def adjust():
    movement = packaging_service.adjust_packaging(get_session(), g.tenant_id, json_payload(), user_id=g.user_id)
    return success(movement.to_dict(), 201, message='Movimento registrado')
