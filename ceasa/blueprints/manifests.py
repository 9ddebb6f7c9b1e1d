"""Distribution manifests (romaneios) blueprint - Multi-Tenant JSON API."""
from flask import Blueprint, request, g

from ceasa.blueprints.metrics import record_transition, record_titles
from ceasa.database import get_session
from ceasa.decorators.permissions import require_role, OPERATIONS_ROLES
from ceasa.services import manifest_service
from ceasa.utils.api import json_payload, page_args, success, listing

manifests_bp = Blueprint('manifests', __name__, url_prefix='/api/v1/manifests')


@manifests_bp.route('', methods=['GET'])
@require_role(*OPERATIONS_ROLES)
def list_manifests():
    """List manifests (filters: status, buyer_user_id, store_id)."""
    page, limit = page_args()
    result = manifest_service.list_manifests(
        get_session(), g.tenant_id,
        status=request.args.get('status'),
        buyer_user_id=request.args.get('buyer_user_id'),
        store_id=request.args.get('store_id'),
        page=page, limit=limit,
    )
    return listing(result)


@manifests_bp.route('/<int:manifest_id>', methods=['GET'])
@require_role(*OPERATIONS_ROLES)
def get_manifest(manifest_id):
    manifest = manifest_service.get_manifest(get_session(), g.tenant_id, manifest_id)
    return success(manifest.to_dict())


@manifests_bp.route('', methods=['POST'])
@require_role(*OPERATIONS_ROLES)
def generate_manifest():
    manifest = manifest_service.generate_manifest(get_session(), g.tenant_id, g.user_id, json_payload())
    return success(manifest.to_dict(), 201, message='Romaneio gerado')


@manifests_bp.route('/<int:manifest_id>', methods=['PUT', 'PATCH'])
@require_role(*OPERATIONS_ROLES)
def update_manifest(manifest_id):
    manifest = manifest_service.update_manifest(get_session(), g.tenant_id, manifest_id, json_payload(),
                                                user_id=g.user_id)
    return success(manifest.to_dict())


@manifests_bp.route('/<int:manifest_id>/finalize', methods=['POST'])
@require_role(*OPERATIONS_ROLES)
def finalize_manifest(manifest_id):
    manifest = manifest_service.finalize_manifest(get_session(), g.tenant_id, manifest_id, user_id=g.user_id)
    record_transition('manifest', 'finalize')
    record_titles('loja', 'RECEIVABLE', len({line.store_id for line in manifest.lines}))
    return success(manifest.to_dict(), message='Romaneio finalizado')


@manifests_bp.route('/<int:manifest_id>/cancel', methods=['POST'])
@require_role(*OPERATIONS_ROLES)
def cancel_manifest(manifest_id):
    manifest = manifest_service.cancel_manifest(get_session(), g.tenant_id, manifest_id, user_id=g.user_id)
    record_transition('manifest', 'cancel')
    return success(manifest.to_dict(), message='Romaneio cancelado')
