from __future__ import annotations

from collections.abc import Callable
from typing import Any

from django.db import transaction
from django.utils import timezone

from land_sales.adapters.config.schema_capabilities import SchemaCapabilities
from land_sales.core.application.cqrs import PagedResult
from land_sales.core.domain.entities.appointment_entity import AppointmentEntity
from land_sales.core.domain.repositories.appointment_repository import AppointmentRepository
from plugins.django_interface.models import Appointment as AppointmentModel

_ACTOR_FIELDS = ("created_by_id", "updated_by_id")


class AppointmentRepoImpl(AppointmentRepository):
    """Implementação Django do AppointmentRepository."""

    def __init__(self, capabilities: Callable[[], SchemaCapabilities] | None = None) -> None:
        self._capabilities = capabilities or SchemaCapabilities

    def _strip_actor_fields(self, values: dict[str, Any]) -> dict[str, Any]:
        if self._capabilities().appointment_actor_columns:
            return values
        return {k: v for k, v in values.items() if k not in _ACTOR_FIELDS}

    # ────────────────────────────────── #
    # CRUD
    # ────────────────────────────────── #
    @transaction.atomic
    def create(self, appointment: AppointmentEntity) -> AppointmentEntity:
        values = self._strip_actor_fields({
            "id": appointment.id,
            "sale_id": appointment.sale_id,
            "client_id": appointment.client_id,
            "appointment_date": appointment.appointment_date,
            "appointment_time": appointment.appointment_time,
            "notes": appointment.notes,
            "status": appointment.status,
            "created_by_id": appointment.created_by_id,
            "updated_by_id": appointment.updated_by_id,
        })
        obj = AppointmentModel.objects.create(**values)
        return AppointmentEntity.from_model(obj)

    def find_by_id(self, appointment_id: str) -> AppointmentEntity | None:
        try:
            return AppointmentEntity.from_model(AppointmentModel.objects.get(id=appointment_id))
        except AppointmentModel.DoesNotExist:
            return None

    def compare_and_update(self, appointment_id: str, *, expected_status: str, changes: dict[str, Any]) -> int:
        changes = self._strip_actor_fields(changes)
        return AppointmentModel.objects.filter(id=appointment_id, status=expected_status).update(
            **changes, updated_at=timezone.now()
        )

    def delete(self, appointment_id: str) -> int:
        deleted, _ = AppointmentModel.objects.filter(id=appointment_id).delete()
        return deleted

    # ────────────────────────────────── #
    # Consultas
    # ────────────────────────────────── #
    def list(self, filtros: dict[str, Any] | None, page: int, page_size: int) -> PagedResult[AppointmentEntity]:
        filtros = dict(filtros or {})
        qs = AppointmentModel.objects.all()
        for key in ("sale_id", "client_id", "status"):
            if filtros.get(key):
                qs = qs.filter(**{key: filtros[key]})
        if filtros.get("date_from"):
            qs = qs.filter(appointment_date__gte=filtros["date_from"])
        if filtros.get("date_to"):
            qs = qs.filter(appointment_date__lte=filtros["date_to"])

        total = qs.count()
        offset = (page - 1) * page_size
        objs_page = qs.order_by("appointment_date", "appointment_time")[offset : offset + page_size]
        items = [AppointmentEntity.from_model(obj) for obj in objs_page]
        return PagedResult(items=items, total=total, page=page, page_size=page_size)
