"""
Status state machines for purchases, manifests, returns and titles.

Each entity has one transition table. Persisting a transition is a
conditional UPDATE filtered by the status that was read, so two units of
work racing on the same entity cannot both succeed.
"""
import logging

from ceasa.exceptions import ValidationError
from ceasa.models import PurchaseStatus, ManifestStatus, ReturnStatus, TitleStatus

logger = logging.getLogger(__name__)


class StateMachine:
    """Transition table plus the rejection message of each action."""

    def __init__(self, name, transitions, messages):
        self.name = name
        self.transitions = transitions
        # messages: {action: msg} or {(current, action): msg}
        self.messages = messages

    def actions(self):
        return sorted({action for (_, action) in self.transitions})

    def rejection(self, current, action):
        return (self.messages.get((current, action))
                or self.messages.get(action)
                or f'Transição inválida para {self.name}: {action}')


PURCHASE = StateMachine(
    'compra',
    {
        (PurchaseStatus.PENDING, 'conclude'): PurchaseStatus.CONCLUDED,
        (PurchaseStatus.PENDING, 'cancel'): PurchaseStatus.CANCELLED,
    },
    {
        'conclude': 'Apenas compras pendentes podem ser concluídas',
        'cancel': 'Apenas compras pendentes podem ser canceladas',
    },
)

MANIFEST = StateMachine(
    'romaneio',
    {
        (ManifestStatus.DRAFT, 'finalize'): ManifestStatus.FINALIZED,
        (ManifestStatus.DRAFT, 'cancel'): ManifestStatus.CANCELLED,
    },
    {
        'finalize': 'Apenas romaneios em rascunho podem ser finalizados',
        'cancel': 'Apenas romaneios em rascunho podem ser cancelados',
    },
)

RETURN = StateMachine(
    'devolução',
    {
        (ReturnStatus.PENDING, 'process'): ReturnStatus.PROCESSED,
        (ReturnStatus.PENDING, 'cancel'): ReturnStatus.CANCELLED,
    },
    {
        'process': 'Apenas devoluções pendentes podem ser processadas',
        'cancel': 'Apenas devoluções pendentes podem ser canceladas',
    },
)

TITLE = StateMachine(
    'título',
    {
        (TitleStatus.OPEN, 'settle'): TitleStatus.PAID,
        (TitleStatus.PARTIAL, 'settle'): TitleStatus.PAID,
        (TitleStatus.PAID, 'reverse'): TitleStatus.OPEN,
        (TitleStatus.OPEN, 'cancel'): TitleStatus.CANCELLED,
        (TitleStatus.PARTIAL, 'cancel'): TitleStatus.CANCELLED,
    },
    {
        (TitleStatus.PAID, 'settle'): 'Título já está pago',
        (TitleStatus.CANCELLED, 'settle'): 'Título cancelado não pode ser baixado',
        'reverse': 'Apenas títulos pagos podem ser estornados',
        (TitleStatus.PAID, 'cancel'): 'Título pago deve ser estornado antes de ser cancelado',
        (TitleStatus.CANCELLED, 'cancel'): 'Título já está cancelado',
    },
)


def next_status(machine: StateMachine, current, action: str):
    """
    Target status for an action.

    Raises:
        ValidationError: if the action is not allowed from the current status.
    """
    target = machine.transitions.get((current, action))
    if target is None:
        raise ValidationError(machine.rejection(current, action))
    return target


def compare_and_swap(session, model, entity, machine: StateMachine, action: str, **values):
    """
    Persist a transition of `entity` as a conditional UPDATE.

    The UPDATE matches id, tenant and the status that was read; zero
    affected rows means another unit of work moved the entity first.
    Extra column values are written in the same statement.

    Returns:
        The new status.
    """
    current = entity.status
    target = next_status(machine, current, action)
    values['status'] = target

    updated = (
        session.query(model)
        .filter(
            model.id == entity.id,
            model.tenant_id == entity.tenant_id,
            model.status == current,
        )
        .update(values, synchronize_session='evaluate')
    )
    if updated == 0:
        logger.warning(f"Concurrent transition on {model.__tablename__} {entity.id} ({action})")
        raise ValidationError(machine.rejection(current, action))

    logger.info(f"{model.__tablename__} {entity.id}: {current.value} -> {target.value}")
    return target
