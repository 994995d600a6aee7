import uuid
from datetime import date, datetime
from decimal import Decimal

from django.test import SimpleTestCase

from land_sales.core.application.dtos.sale_row_dto import SaleRowDTO
from land_sales.core.application.services.sale_grouping_service import (
    collation_key,
    compute_received,
    compute_remaining,
    group_key,
    group_sales,
    overdue_info,
    search_rows,
)

NOW = datetime(2025, 3, 10, 9, 30)


def row(client_id=None, client_name="Amine", **kw) -> SaleRowDTO:
    client_id = client_id or uuid.uuid4()
    values = {
        "id": uuid.uuid4(),
        "client_id": client_id,
        "land_piece_id": uuid.uuid4(),
        "batch_id": uuid.uuid4(),
        "sale_price": Decimal("100000"),
        "status": "pending",
        "sale_date": date(2025, 1, 1),
        "client": {"id": client_id, "name": client_name, "id_number": "A123", "phone": "+213550000000"},
    }
    values.update(kw)
    return SaleRowDTO.model_validate(values)


class DerivedAmountsTests(SimpleTestCase):
    def test_full_sale_with_deposit(self):
        line = row(payment_method="full", deposit_amount=Decimal("20000"))
        self.assertEqual(compute_received(line), Decimal("20000.00"))
        self.assertEqual(compute_remaining(line), Decimal("80000.00"))

    def test_promise_uses_partial_and_remaining(self):
        line = row(
            payment_method="promise",
            deposit_amount=Decimal("1000"),
            partial_payment_amount=Decimal("5000"),
            remaining_payment_amount=Decimal("10000"),
            sale_price=Decimal("15000"),
        )
        self.assertEqual(compute_received(line), Decimal("5000.00"))
        self.assertEqual(compute_remaining(line), Decimal("10000.00"))

    def test_promise_without_partial_falls_back_to_deposit(self):
        line = row(payment_method="promise", deposit_amount=Decimal("3000"), sale_price=Decimal("15000"))
        self.assertEqual(compute_received(line), Decimal("3000.00"))
        self.assertEqual(compute_remaining(line), Decimal("12000.00"))

    def test_received_plus_remaining_is_price_for_non_promise(self):
        for method in ("full", "installment", None):
            line = row(payment_method=method, deposit_amount=Decimal("1234.56"), sale_price=Decimal("98765.43"))
            self.assertEqual(compute_received(line) + compute_remaining(line), Decimal("98765.43"))


class GroupingTests(SimpleTestCase):
    def test_group_key_by_method_and_offer(self):
        client_id = uuid.uuid4()
        offer_id = uuid.uuid4()
        self.assertEqual(group_key(row(client_id, payment_method="full")), f"{client_id}-full")
        self.assertEqual(
            group_key(row(client_id, payment_method="installment", payment_offer_id=offer_id)),
            f"{client_id}-installment-{offer_id}",
        )
        # registro antigo: sem forma, com oferta
        self.assertEqual(
            group_key(row(client_id, payment_method=None, payment_offer_id=offer_id)),
            f"{client_id}-installment-{offer_id}",
        )
        self.assertEqual(group_key(row(client_id)), f"{client_id}-none")

    def test_groups_sorted_by_client_name_ignoring_accents(self):
        rows = [row(client_name="Zineb"), row(client_name="Émilie"), row(client_name="amine")]
        names = [g.client_name for g in group_sales(rows, NOW)]
        self.assertEqual(names, ["amine", "Émilie", "Zineb"])

    def test_lines_sorted_by_sale_date_desc_and_totals(self):
        client_id = uuid.uuid4()
        rows = [
            row(client_id, payment_method="full", sale_date=date(2025, 1, 1), deposit_amount=Decimal("10000")),
            row(client_id, payment_method="full", sale_date=date(2025, 2, 1), deposit_amount=Decimal("20000")),
            row(client_id, payment_method="promise", partial_payment_amount=Decimal("5000"),
                remaining_payment_amount=Decimal("10000"), sale_price=Decimal("15000")),
        ]
        (group,) = group_sales(rows, NOW)

        self.assertEqual(group.sale_count, 3)
        full = next(p for p in group.plans if p.payment_method == "full")
        self.assertEqual([line.row.sale_date for line in full.lines], [date(2025, 2, 1), date(2025, 1, 1)])
        self.assertEqual(full.total_received, Decimal("30000.00"))
        self.assertEqual(full.total_remaining, Decimal("170000.00"))
        self.assertEqual(group.total_price, Decimal("215000.00"))
        self.assertEqual(group.total_received, Decimal("35000.00"))
        self.assertEqual(group.total_remaining, Decimal("180000.00"))

    def test_grouping_twice_gives_same_result(self):
        client_id = uuid.uuid4()
        rows = [row(client_id, payment_method="full"), row(client_id, payment_method="promise"), row()]
        self.assertEqual(group_sales(rows, NOW), group_sales(rows, NOW))
        self.assertEqual(group_sales(list(reversed(rows)), NOW), group_sales(rows, NOW))


class OverdueTests(SimpleTestCase):
    def test_deadline_counts_from_midnight(self):
        line = row(deadline_date=date(2025, 3, 7))
        self.assertEqual(overdue_info(line, NOW), (True, 3))

    def test_same_day_midnight_is_not_overdue(self):
        line = row(deadline_date=date(2025, 3, 10))
        self.assertEqual(overdue_info(line, datetime(2025, 3, 10)), (False, 0))
        self.assertEqual(overdue_info(line, NOW), (True, 0))

    def test_no_deadline(self):
        self.assertEqual(overdue_info(row(), NOW), (False, 0))


class NormalizationTests(SimpleTestCase):
    def test_single_element_list_collapses_to_object(self):
        client_id = uuid.uuid4()
        line = row(
            client_id,
            client=[{"id": client_id, "name": "Karim"}],
            batch=[{"id": uuid.uuid4(), "name": "Les Oliviers"}],
            piece=[],
        )
        self.assertEqual(line.client_name, "Karim")
        self.assertEqual(line.batch.name, "Les Oliviers")
        self.assertIsNone(line.piece)

    def test_blank_payment_method_is_none(self):
        self.assertIsNone(row(payment_method="").payment_method)


class SearchTests(SimpleTestCase):
    def test_search_by_name_phone_piece_and_batch(self):
        batch_id = uuid.uuid4()
        target = row(
            client_name="Hélène",
            batch={"id": batch_id, "name": "Les Oliviers"},
            piece={"id": uuid.uuid4(), "piece_number": "42", "surface_m2": "500", "status": "Reserved"},
        )
        other = row(client_name="Bilal")

        self.assertEqual(search_rows([target, other], "helene"), [target])
        self.assertEqual(search_rows([target, other], "oliviers"), [target])
        self.assertEqual(search_rows([target, other], "42"), [target])
        self.assertEqual(search_rows([target, other], "5500000"), [target, other])
        self.assertEqual(search_rows([target, other], "  "), [target, other])

    def test_collation_key(self):
        self.assertEqual(collation_key(" Éric "), "eric")
