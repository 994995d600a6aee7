"""
Tabela de transições do ciclo de vida da venda.

    pending   ──confirm──▶ completed
    pending   ──cancel───▶ cancelled
    completed ──revert───▶ pending
    pending|completed ──bulk_cancel──▶ cancelled
    qualquer  ──remove───▶ (registro excluído)

`cancelled` é terminal: nenhuma transição parte dele além da exclusão.
Cada transição declara também o efeito sobre o lote, aplicado com
compare-and-set sobre o status esperado do lote.
"""
from __future__ import annotations

from dataclasses import dataclass

from land_sales.core.domain.entities.parcel_entity import AVAILABLE, RESERVED, SOLD
from land_sales.core.domain.entities.sale_entity import CANCELLED, COMPLETED, PENDING
from land_sales.core.domain.events.exceptions import InvalidTransitionError

CONFIRM = "confirm"
CANCEL = "cancel"
REVERT = "revert"
BULK_CANCEL = "bulk_cancel"
REMOVE = "remove"
RESERVE = "reserve"

REMOVED = None


@dataclass(frozen=True)
class TransitionRule:
    name: str
    allowed_from: frozenset[str]
    target: str | None


@dataclass(frozen=True)
class ParcelEffect:
    expected: frozenset[str]
    target: str


TRANSITIONS: dict[str, TransitionRule] = {
    CONFIRM: TransitionRule(CONFIRM, frozenset({PENDING}), COMPLETED),
    CANCEL: TransitionRule(CANCEL, frozenset({PENDING}), CANCELLED),
    REVERT: TransitionRule(REVERT, frozenset({COMPLETED}), PENDING),
    BULK_CANCEL: TransitionRule(BULK_CANCEL, frozenset({PENDING, COMPLETED}), CANCELLED),
    REMOVE: TransitionRule(REMOVE, frozenset({PENDING, COMPLETED, CANCELLED}), REMOVED),
}

# (transição, status atual da venda) → efeito no lote
_PARCEL_EFFECTS: dict[tuple[str, str | None], ParcelEffect] = {
    (RESERVE, None): ParcelEffect(frozenset({AVAILABLE}), RESERVED),
    (CONFIRM, PENDING): ParcelEffect(frozenset({AVAILABLE, RESERVED}), SOLD),
    (CANCEL, PENDING): ParcelEffect(frozenset({AVAILABLE, RESERVED}), AVAILABLE),
    (BULK_CANCEL, PENDING): ParcelEffect(frozenset({AVAILABLE, RESERVED}), AVAILABLE),
    (BULK_CANCEL, COMPLETED): ParcelEffect(frozenset({SOLD}), AVAILABLE),
    (REVERT, COMPLETED): ParcelEffect(frozenset({SOLD}), RESERVED),
    (REMOVE, PENDING): ParcelEffect(frozenset({AVAILABLE, RESERVED}), AVAILABLE),
    (REMOVE, COMPLETED): ParcelEffect(frozenset({SOLD}), AVAILABLE),
    # venda cancelada já devolveu o lote; ele pode pertencer a outra venda
}


def ensure_allowed(transition: str, current_status: str) -> TransitionRule:
    rule = TRANSITIONS.get(transition)
    if rule is None or current_status not in rule.allowed_from:
        raise InvalidTransitionError(transition, current_status)
    return rule


def can_transition(transition: str, current_status: str) -> bool:
    rule = TRANSITIONS.get(transition)
    return rule is not None and current_status in rule.allowed_from


def parcel_effect(transition: str, current_status: str | None) -> ParcelEffect | None:
    return _PARCEL_EFFECTS.get((transition, current_status))


def reachable_from(status: str) -> set[str | None]:
    """Status alcançáveis em um passo (None = exclusão)."""
    return {rule.target for rule in TRANSITIONS.values() if status in rule.allowed_from}
