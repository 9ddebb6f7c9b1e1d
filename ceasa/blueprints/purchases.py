"""Purchases blueprint - Multi-Tenant JSON API."""
from flask import Blueprint, request, g

from ceasa.blueprints.metrics import record_transition, record_titles
from ceasa.database import get_session
from ceasa.decorators.permissions import require_role, OPERATIONS_ROLES, ELEVATED_ROLES
from ceasa.services import purchase_service
from ceasa.utils.api import json_payload, page_args, success, listing

purchases_bp = Blueprint('purchases', __name__, url_prefix='/api/v1/purchases')


@purchases_bp.route('', methods=['GET'])
@require_role(*OPERATIONS_ROLES)
def list_purchases():
    """List purchases (filters: supplier_id, status, buyer_user_id)."""
    page, limit = page_args()
    result = purchase_service.list_purchases(
        get_session(), g.tenant_id,
        supplier_id=request.args.get('supplier_id'),
        status=request.args.get('status'),
        buyer_user_id=request.args.get('buyer_user_id'),
        page=page, limit=limit,
    )
    return listing(result)


@purchases_bp.route('/<int:purchase_id>', methods=['GET'])
@require_role(*OPERATIONS_ROLES)
def get_purchase(purchase_id):
    purchase = purchase_service.get_purchase(get_session(), g.tenant_id, purchase_id)
    return success(purchase.to_dict())


@purchases_bp.route('', methods=['POST'])
@require_role(*OPERATIONS_ROLES)
def create_purchase():
    purchase = purchase_service.create_purchase(get_session(), g.tenant_id, g.user_id, json_payload())
    return success(purchase.to_dict(), 201, message='Compra registrada')


@purchases_bp.route('/<int:purchase_id>', methods=['PUT', 'PATCH'])
@require_role(*OPERATIONS_ROLES)
def update_purchase(purchase_id):
    purchase = purchase_service.update_purchase(get_session(), g.tenant_id, purchase_id, json_payload(),
                                                user_id=g.user_id)
    return success(purchase.to_dict())


@purchases_bp.route('/<int:purchase_id>/conclude', methods=['POST'])
@require_role(*OPERATIONS_ROLES)
def conclude_purchase(purchase_id):
    purchase = purchase_service.conclude_purchase(get_session(), g.tenant_id, purchase_id, user_id=g.user_id)
    record_transition('purchase', 'conclude')
    record_titles('fornecedor', 'PAYABLE')
    return success(purchase.to_dict(), message='Compra concluída')


@purchases_bp.route('/<int:purchase_id>/cancel', methods=['POST'])
@require_role(*OPERATIONS_ROLES)
def cancel_purchase(purchase_id):
    purchase = purchase_service.cancel_purchase(get_session(), g.tenant_id, purchase_id, user_id=g.user_id)
    record_transition('purchase', 'cancel')
    return success(purchase.to_dict(), message='Compra cancelada')


@purchases_bp.route('/<int:purchase_id>', methods=['DELETE'])
@require_role(*ELEVATED_ROLES)
def delete_purchase(purchase_id):
    purchase_service.delete_purchase(get_session(), g.tenant_id, purchase_id, user_id=g.user_id)
    return success(None, message='Compra excluída')
