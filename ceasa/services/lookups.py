"""Tenant-scoped entity lookups shared by the workflow services."""
from ceasa.exceptions import NotFoundError


def get_in_tenant(session, model, tenant_id: int, entity_id, message: str, for_update: bool = False):
    """
    Load an entity of the caller's tenant.

    Raises:
        NotFoundError: if it does not exist or belongs to another tenant.
    """
    if entity_id is None:
        raise NotFoundError(message)
    query = session.query(model).filter(model.id == entity_id, model.tenant_id == tenant_id)
    if for_update:
        query = query.with_for_update()
    entity = query.first()
    if not entity:
        raise NotFoundError(message)
    return entity
