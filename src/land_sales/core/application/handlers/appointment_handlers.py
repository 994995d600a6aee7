from __future__ import annotations

import uuid
from typing import Any

import structlog

from land_sales.core.application.cqrs import CommandHandler, CommandResult, PagedResult, QueryHandler
from land_sales.core.domain.entities.appointment_entity import (
    SCHEDULED,
    TERMINAL_STATUSES,
    AppointmentEntity,
)
from land_sales.core.domain.entities.sale_entity import PENDING
from land_sales.core.domain.entities.user_entity import UserEntity
from land_sales.core.domain.events.events import (
    AppointmentDeletedEvent,
    AppointmentRescheduledEvent,
    AppointmentScheduledEvent,
    AppointmentStatusChangedEvent,
)
from land_sales.core.domain.events.exceptions import (
    AppointmentConflictError,
    AppointmentNotFoundError,
    InvalidTransitionError,
    PermissionDeniedError,
    SaleNotFoundError,
    SaleValidationError,
    UserNotFoundError,
)
from land_sales.core.domain.repositories.appointment_repository import AppointmentRepository
from land_sales.core.domain.repositories.sale_repository import SaleRepository
from land_sales.core.domain.repositories.user_repository import UserRepository

from ..commands.appointment_commands import (
    ChangeAppointmentStatusCommand,
    DeleteAppointmentCommand,
    RescheduleAppointmentCommand,
    ScheduleAppointmentCommand,
)
from ..queries.appointment_queries import GetAppointmentQuery, ListAppointmentsQuery

logger = structlog.get_logger(__name__)


class _AppointmentHandler:
    def __init__(self, repo: AppointmentRepository, user_repo: UserRepository):
        self.repo = repo
        self.users = user_repo

    def _actor(self, actor_id: str | None) -> UserEntity | None:
        if actor_id is None:
            return None
        user = self.users.find_by_id(str(actor_id))
        if user is None:
            raise UserNotFoundError(f"usuário {actor_id} não encontrado")
        return user

    def _load(self, appointment_id: str) -> AppointmentEntity:
        appointment = self.repo.find_by_id(str(appointment_id))
        if appointment is None:
            raise AppointmentNotFoundError(f"agendamento {appointment_id} não encontrado")
        return appointment

    @staticmethod
    def _actor_fields(actor: UserEntity | None) -> dict[str, Any]:
        if actor is None:
            return {"actor_id": None, "actor_name": None, "actor_email": None}
        return {"actor_id": actor.id, "actor_name": actor.name, "actor_email": actor.email}

    def _update(self, appointment: AppointmentEntity, changes: dict[str, Any]) -> AppointmentEntity:
        updated = self.repo.compare_and_update(
            str(appointment.id), expected_status=appointment.status, changes=changes
        )
        if not updated:
            raise AppointmentConflictError("agendamento alterado por outro usuário")
        return self._load(str(appointment.id))


class ScheduleAppointmentHandler(_AppointmentHandler, CommandHandler[ScheduleAppointmentCommand]):
    """Vincula uma venda pendente a um horário; o cliente vem da própria venda."""

    def __init__(self, repo: AppointmentRepository, user_repo: UserRepository, sale_repo: SaleRepository):
        super().__init__(repo, user_repo)
        self.sales = sale_repo

    def handle(self, cmd: ScheduleAppointmentCommand) -> CommandResult[AppointmentEntity]:
        actor = self._actor(cmd.actor_id)
        sale = self.sales.find_by_id(str(cmd.sale_id))
        if sale is None:
            raise SaleNotFoundError(f"venda {cmd.sale_id} não encontrada")
        if sale.status != PENDING:
            raise InvalidTransitionError("schedule", sale.status)

        appointment = self.repo.create(
            AppointmentEntity(
                id=uuid.uuid4(),
                sale_id=sale.id,
                client_id=sale.client_id,
                appointment_date=cmd.appointment_date,
                appointment_time=cmd.appointment_time,
                notes=cmd.notes,
                created_by_id=actor.id if actor else None,
                updated_by_id=actor.id if actor else None,
            )
        )
        logger.info("appointment.scheduled", appointment_id=str(appointment.id), sale_id=str(sale.id))
        event = AppointmentScheduledEvent(
            appointment_id=appointment.id,
            entity_id=str(appointment.id),
            after=appointment.audit_payload(),
            **self._actor_fields(actor),
        )
        return CommandResult(appointment, (event,))


class RescheduleAppointmentHandler(_AppointmentHandler, CommandHandler[RescheduleAppointmentCommand]):
    def handle(self, cmd: RescheduleAppointmentCommand) -> CommandResult[AppointmentEntity]:
        actor = self._actor(cmd.actor_id)
        before = self._load(cmd.appointment_id)
        if not before.is_editable:
            raise InvalidTransitionError("reschedule", before.status)

        changes: dict[str, Any] = {}
        if cmd.appointment_date is not None:
            changes["appointment_date"] = cmd.appointment_date
        if cmd.appointment_time is not None:
            changes["appointment_time"] = cmd.appointment_time
        if cmd.notes is not None:
            changes["notes"] = cmd.notes
        if not changes:
            return CommandResult(before)
        if actor is not None:
            changes["updated_by_id"] = actor.id

        after = self._update(before, changes)
        logger.info("appointment.rescheduled", appointment_id=str(after.id), fields=sorted(changes))
        event = AppointmentRescheduledEvent(
            appointment_id=after.id,
            entity_id=str(after.id),
            before=before.audit_payload(),
            after=after.audit_payload(),
            **self._actor_fields(actor),
        )
        return CommandResult(after, (event,))


class ChangeAppointmentStatusHandler(_AppointmentHandler, CommandHandler[ChangeAppointmentStatusCommand]):
    def handle(self, cmd: ChangeAppointmentStatusCommand) -> CommandResult[AppointmentEntity]:
        if cmd.status not in TERMINAL_STATUSES:
            raise SaleValidationError("status", f"status de agendamento inválido: {cmd.status}")
        actor = self._actor(cmd.actor_id)
        before = self._load(cmd.appointment_id)
        if before.status != SCHEDULED:
            raise InvalidTransitionError(cmd.status, before.status)

        changes: dict[str, Any] = {"status": cmd.status}
        if actor is not None:
            changes["updated_by_id"] = actor.id
        after = self._update(before, changes)

        logger.info("appointment.status_changed", appointment_id=str(after.id), status=cmd.status)
        event = AppointmentStatusChangedEvent(
            appointment_id=after.id,
            entity_id=str(after.id),
            status=cmd.status,
            before=before.audit_payload(),
            after=after.audit_payload(),
            **self._actor_fields(actor),
        )
        return CommandResult(after, (event,))


class DeleteAppointmentHandler(_AppointmentHandler, CommandHandler[DeleteAppointmentCommand]):
    def handle(self, cmd: DeleteAppointmentCommand) -> CommandResult[None]:
        actor = self._actor(cmd.actor_id)
        if actor is None or not actor.is_owner:
            raise PermissionDeniedError("somente proprietários podem excluir agendamentos")
        snapshot = self._load(cmd.appointment_id)
        if not self.repo.delete(str(snapshot.id)):
            raise AppointmentConflictError("agendamento já excluído")

        logger.info("appointment.deleted", appointment_id=str(snapshot.id))
        event = AppointmentDeletedEvent(
            appointment_id=snapshot.id,
            entity_id=str(snapshot.id),
            before=snapshot.audit_payload(),
            **self._actor_fields(actor),
        )
        return CommandResult(None, (event,))


# ───────────────────────────────────────────────
# Consultas
# ───────────────────────────────────────────────
class GetAppointmentHandler(QueryHandler[GetAppointmentQuery, AppointmentEntity | None]):
    def __init__(self, repo: AppointmentRepository):
        self.repo = repo

    def handle(self, q: GetAppointmentQuery) -> AppointmentEntity | None:
        return self.repo.find_by_id(str(q.id))


class ListAppointmentsHandler(QueryHandler[ListAppointmentsQuery, PagedResult[AppointmentEntity]]):
    def __init__(self, repo: AppointmentRepository):
        self.repo = repo

    def handle(self, q: ListAppointmentsQuery) -> PagedResult[AppointmentEntity]:
        return self.repo.list(q.filtros, q.page, q.page_size)
