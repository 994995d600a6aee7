from dataclasses import dataclass
from datetime import date, time

from land_sales.core.application.cqrs import CommandDTO


@dataclass(frozen=True, slots=True)
class ScheduleAppointmentCommand(CommandDTO):
    sale_id: str
    appointment_date: date
    appointment_time: time
    notes: str | None = None
    actor_id: str | None = None


@dataclass(frozen=True, slots=True)
class RescheduleAppointmentCommand(CommandDTO):
    appointment_id: str
    appointment_date: date | None = None
    appointment_time: time | None = None
    notes: str | None = None
    actor_id: str | None = None


@dataclass(frozen=True, slots=True)
class ChangeAppointmentStatusCommand(CommandDTO):
    appointment_id: str
    status: str  # completed | cancelled | no_show
    actor_id: str | None = None


@dataclass(frozen=True, slots=True)
class DeleteAppointmentCommand(CommandDTO):
    """Restrito a proprietários; auditado com o snapshot anterior à exclusão."""
    appointment_id: str
    actor_id: str | None = None
