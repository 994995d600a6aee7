import uuid
from datetime import date, time

from django.test import TestCase

from land_sales.adapters.config import composition_root
from land_sales.adapters.config.schema_capabilities import SchemaCapabilities
from land_sales.adapters.repositories.appointment_repo_impl import AppointmentRepoImpl
from land_sales.core.domain.entities.appointment_entity import AppointmentEntity
from land_sales.core.domain.events.exceptions import (
    InvalidTransitionError,
    PermissionDeniedError,
    SaleValidationError,
)
from plugins.django_interface.models import Appointment, AuditLog, Sale
from tests.helpers.factories import make_owner, make_sale, make_user


class AppointmentTests(TestCase):
    def setUp(self):
        self.service = composition_root.container.land_sales_service()
        self.owner = make_owner()
        self.worker = make_user(name="Sofiane")
        self.sale = make_sale(payment_method="full")

    def schedule(self):
        return self.service.schedule(
            self.sale.id, date(2025, 1, 10), time(10, 30), notes="assinatura", actor_id=self.worker.id
        )

    def audit(self, appointment_id):
        return AuditLog.objects.filter(entity_type="appointment", entity_id=str(appointment_id)).order_by("id")

    def test_schedule_links_sale_client(self):
        appointment = self.schedule()

        self.assertEqual(appointment.client_id, self.sale.client_id)
        self.assertEqual(appointment.status, "scheduled")
        self.assertEqual(appointment.created_by_id, self.worker.id)
        entry = self.audit(appointment.id).get()
        self.assertEqual(entry.action, "created")
        self.assertEqual(entry.new_values["appointment_date"], "2025-01-10")

    def test_reschedule_audits_only_changed_date(self):
        appointment = self.schedule()

        moved = self.service.reschedule(appointment.id, actor_id=self.worker.id, appointment_date=date(2025, 1, 12))

        self.assertEqual(moved.appointment_date, date(2025, 1, 12))
        entry = self.audit(appointment.id).get(action="updated")
        self.assertEqual(entry.changes, {"appointment_date": {"old": "2025-01-10", "new": "2025-01-12"}})
        self.assertEqual(entry.user_name, "Sofiane")

    def test_reschedule_without_changes_writes_nothing(self):
        appointment = self.schedule()
        self.service.reschedule(appointment.id, actor_id=self.worker.id)
        self.assertEqual(self.audit(appointment.id).count(), 1)

    def test_terminal_status_blocks_edits(self):
        appointment = self.schedule()

        done = self.service.set_appointment_status(appointment.id, "completed", actor_id=self.worker.id)

        self.assertEqual(done.status, "completed")
        with self.assertRaises(InvalidTransitionError):
            self.service.reschedule(appointment.id, appointment_date=date(2025, 2, 1))
        with self.assertRaises(InvalidTransitionError):
            self.service.set_appointment_status(appointment.id, "no_show")

    def test_unknown_status_is_rejected(self):
        appointment = self.schedule()
        with self.assertRaises(SaleValidationError):
            self.service.set_appointment_status(appointment.id, "scheduled")

    def test_only_pending_sales_can_be_scheduled(self):
        Sale.objects.filter(id=self.sale.id).update(status=Sale.Status.COMPLETED)
        with self.assertRaises(InvalidTransitionError):
            self.schedule()

    def test_delete_is_owner_only_and_audited(self):
        appointment = self.schedule()

        with self.assertRaises(PermissionDeniedError):
            self.service.delete_appointment(appointment.id, actor_id=self.worker.id)

        self.service.delete_appointment(appointment.id, actor_id=self.owner.id)

        self.assertFalse(Appointment.objects.filter(id=appointment.id).exists())
        entry = self.audit(appointment.id).get(action="deleted")
        self.assertEqual(entry.old_values["notes"], "assinatura")
        self.assertEqual(entry.user_id, self.owner.id)

    def test_list_and_get(self):
        appointment = self.schedule()
        self.service.schedule(self.sale.id, date(2025, 1, 9), time(9, 0))

        page = self.service.list_appointments({"sale_id": self.sale.id, "date_from": date(2025, 1, 10)})

        self.assertEqual(page.total, 1)
        self.assertEqual(page.items[0].id, appointment.id)
        self.assertEqual(self.service.get_appointment(appointment.id).notes, "assinatura")


class LegacyAppointmentSchemaTests(TestCase):
    def test_actor_columns_are_skipped_when_missing(self):
        repo = AppointmentRepoImpl(capabilities=lambda: SchemaCapabilities(appointment_actor_columns=False))
        sale = make_sale(payment_method="full")
        worker = make_user()

        created = repo.create(
            AppointmentEntity(
                id=uuid.uuid4(),
                sale_id=sale.id,
                client_id=sale.client_id,
                appointment_date=date(2025, 1, 10),
                appointment_time=time(10, 0),
                created_by_id=worker.id,
                updated_by_id=worker.id,
            )
        )

        self.assertIsNone(created.created_by_id)
        self.assertIsNone(created.updated_by_id)
