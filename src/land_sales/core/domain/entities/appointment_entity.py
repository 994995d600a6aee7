import uuid
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Literal

from land_sales.core.domain.entities._base import EntityMixin

AppointmentStatus = Literal["scheduled", "completed", "cancelled", "no_show"]

SCHEDULED = "scheduled"
TERMINAL_STATUSES = ("completed", "cancelled", "no_show")


@dataclass(slots=True)
class AppointmentEntity(EntityMixin):
    id: uuid.UUID
    sale_id: uuid.UUID
    client_id: uuid.UUID
    appointment_date: date
    appointment_time: time
    status: AppointmentStatus = SCHEDULED
    notes: str | None = None
    created_by_id: uuid.UUID | None = None
    updated_by_id: uuid.UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_editable(self) -> bool:
        return self.status == SCHEDULED

    def audit_payload(self) -> dict[str, Any]:
        return {
            "sale_id": self.sale_id,
            "client_id": self.client_id,
            "appointment_date": self.appointment_date,
            "appointment_time": self.appointment_time,
            "status": self.status,
            "notes": self.notes,
        }
