from datetime import date
from io import StringIO

from django.core.management import call_command
from django.test import SimpleTestCase, TestCase

from plugins.django_interface.models import Client, LandPiece, OwnerNotification, PaymentOffer, User
from plugins.django_interface.signals import normalize_phone
from tests.helpers.factories import make_owner, make_sale


class SeedLandSalesCommandTests(TestCase):
    def test_seed_is_idempotent(self):
        call_command("seed_land_sales", "--pieces", "3", stdout=StringIO())
        call_command("seed_land_sales", "--pieces", "3", stdout=StringIO())

        self.assertEqual(User.objects.filter(role=User.Role.OWNER).count(), 1)
        self.assertEqual(LandPiece.objects.count(), 3)
        self.assertEqual(PaymentOffer.objects.filter(is_default=True).count(), 1)


class NotifyOverdueSalesCommandTests(TestCase):
    def test_reports_notified_sales(self):
        make_owner()
        make_sale(payment_method="full", deadline_date=date(2025, 1, 1))
        out = StringIO()

        call_command("notify_overdue_sales", "--today", "2025-01-05", stdout=out)

        self.assertIn("1 venda(s)", out.getvalue())
        self.assertEqual(OwnerNotification.objects.filter(type="sale_overdue").count(), 1)

    def test_nothing_overdue(self):
        out = StringIO()
        call_command("notify_overdue_sales", "--today", "2025-01-05", stdout=out)
        self.assertIn("Nenhuma venda", out.getvalue())


class PhoneNormalizationTests(SimpleTestCase):
    def test_local_number_gets_country_code(self):
        self.assertEqual(normalize_phone("0550 12 34 56", "DZ"), "+213550123456")

    def test_blank_is_none(self):
        self.assertIsNone(normalize_phone("   "))

    def test_garbage_is_rejected(self):
        with self.assertRaises(ValueError):
            normalize_phone("telefone")


class ClientSignalTests(TestCase):
    def test_client_is_normalized_on_save(self):
        client = Client.objects.create(name="  Amine   Benali ", phone="+213 550 12 34 56")
        client.refresh_from_db()
        self.assertEqual(client.name, "Amine Benali")
        self.assertEqual(client.phone, "+213550123456")
