"""
Domínio → ORM do back-office de venda de lotes.

⚑ Uma venda ativa (não cancelada) por lote: UniqueConstraint condicional
⚑ Parcelas pertencem à venda (CASCADE); auditoria nunca referencia o alvo por FK
⚑ Valores monetários sempre Decimal(15, 2)
"""

from __future__ import annotations

import uuid

from django.db import models
from django.db.models import Index, Q, UniqueConstraint
from django.db.models.functions import Lower

MONEY = {"max_digits": 15, "decimal_places": 2}


# ╭──────────────────────────────────────────────╮
# │ 1. Usuários (atores)                        │
# ╰──────────────────────────────────────────────╯
class User(models.Model):
    class Role(models.TextChoices):
        OWNER = "owner", "Owner"
        WORKER = "worker", "Worker"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True, max_length=128)
    name = models.CharField(max_length=100)
    is_active = models.BooleanField(default=True, db_index=True)
    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.WORKER,
        db_index=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "users"
        indexes = [
            Index(Lower("email"), name="user_email_lower_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"


# ╭──────────────────────────────────────────────╮
# │ 2. Clientes                                 │
# ╰──────────────────────────────────────────────╯
class Client(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255, db_index=True)
    id_number = models.CharField(max_length=64, blank=True, null=True, db_index=True)
    phone = models.CharField(max_length=32, blank=True, null=True)
    email = models.EmailField(max_length=128, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "clients"
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


# ╭──────────────────────────────────────────────╮
# │ 3. Loteamentos e lotes                      │
# ╰──────────────────────────────────────────────╯
class LandBatch(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=120, unique=True)
    price_per_m2_cash = models.DecimalField(**MONEY, default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "land_batches"
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class LandPiece(models.Model):
    class Status(models.TextChoices):
        AVAILABLE = "Available", "Available"
        RESERVED = "Reserved", "Reserved"
        SOLD = "Sold", "Sold"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    batch = models.ForeignKey(LandBatch, on_delete=models.PROTECT, related_name="pieces")
    piece_number = models.CharField(max_length=32)
    surface_m2 = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.AVAILABLE,
        db_index=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "land_pieces"
        constraints = [
            UniqueConstraint(fields=["batch", "piece_number"], name="uniq_piece_number_per_batch"),
        ]

    def __str__(self) -> str:
        return f"{self.batch_id}#{self.piece_number}"


# ╭──────────────────────────────────────────────╮
# │ 4. Ofertas de parcelamento                  │
# ╰──────────────────────────────────────────────╯
class PaymentOffer(models.Model):
    class AdvanceMode(models.TextChoices):
        FIXED = "fixed", "Fixed"
        PERCENT = "percent", "Percent"

    class CalcMode(models.TextChoices):
        MONTHLY_AMOUNT = "monthly_amount", "Monthly amount"
        MONTHS = "months", "Months"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=120, blank=True, null=True)
    batch = models.ForeignKey(
        LandBatch, on_delete=models.CASCADE, related_name="payment_offers", null=True, blank=True
    )
    land_piece = models.ForeignKey(
        LandPiece, on_delete=models.CASCADE, related_name="payment_offers", null=True, blank=True
    )
    price_per_m2_installment = models.DecimalField(**MONEY)
    company_fee_percentage = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    advance_mode = models.CharField(max_length=10, choices=AdvanceMode.choices, default=AdvanceMode.PERCENT)
    advance_value = models.DecimalField(**MONEY, default=0)
    calc_mode = models.CharField(max_length=20, choices=CalcMode.choices, default=CalcMode.MONTHS)
    monthly_amount = models.DecimalField(**MONEY, null=True, blank=True)
    months = models.PositiveIntegerField(null=True, blank=True)
    is_default = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "payment_offers"
        constraints = [
            models.CheckConstraint(
                condition=Q(batch__isnull=False) | Q(land_piece__isnull=False),
                name="offer_has_batch_or_piece",
            ),
        ]

    def __str__(self) -> str:
        return self.name or str(self.id)


# ╭──────────────────────────────────────────────╮
# │ 5. Vendas                                   │
# ╰──────────────────────────────────────────────╯
class Sale(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"

    class PaymentMethod(models.TextChoices):
        FULL = "full", "Full"
        INSTALLMENT = "installment", "Installment"
        PROMISE = "promise", "Promise"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    client = models.ForeignKey(Client, on_delete=models.PROTECT, related_name="sales")
    land_piece = models.ForeignKey(LandPiece, on_delete=models.PROTECT, related_name="sales")
    batch = models.ForeignKey(LandBatch, on_delete=models.PROTECT, related_name="sales")
    payment_offer = models.ForeignKey(
        PaymentOffer, on_delete=models.SET_NULL, related_name="sales", null=True, blank=True
    )

    sale_price = models.DecimalField(**MONEY)
    deposit_amount = models.DecimalField(**MONEY, null=True, blank=True)
    partial_payment_amount = models.DecimalField(**MONEY, null=True, blank=True)
    remaining_payment_amount = models.DecimalField(**MONEY, null=True, blank=True)
    company_fee_amount = models.DecimalField(**MONEY, null=True, blank=True)

    payment_method = models.CharField(
        max_length=16, choices=PaymentMethod.choices, null=True, blank=True, db_index=True
    )
    status = models.CharField(
        max_length=16, choices=Status.choices, default=Status.PENDING, db_index=True
    )
    sale_date = models.DateField()
    deadline_date = models.DateField(null=True, blank=True)
    installment_start_date = models.DateField(null=True, blank=True)
    offer_snapshot = models.JSONField(null=True, blank=True)
    notes = models.TextField(blank=True, null=True)
    contract_writer = models.CharField(max_length=120, blank=True, null=True)

    sold_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, related_name="+", null=True, blank=True
    )
    confirmed_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, related_name="+", null=True, blank=True
    )
    confirmed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "sales"
        constraints = [
            UniqueConstraint(
                fields=["land_piece"],
                condition=~Q(status="cancelled"),
                name="uniq_active_sale_per_piece",
            ),
        ]
        indexes = [
            Index(fields=["status", "sale_date"], name="sale_status_date_idx"),
            Index(fields=["client", "status"], name="sale_client_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Sale {self.id} ({self.status})"


class InstallmentPayment(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        PAID = "paid", "Paid"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    sale = models.ForeignKey(Sale, on_delete=models.CASCADE, related_name="installment_payments")
    installment_number = models.PositiveIntegerField()
    amount_due = models.DecimalField(**MONEY)
    amount_paid = models.DecimalField(**MONEY, default=0)
    due_date = models.DateField()
    paid_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "installment_payments"
        ordering = ["sale", "installment_number"]
        constraints = [
            UniqueConstraint(fields=["sale", "installment_number"], name="uniq_installment_number"),
        ]


# ╭──────────────────────────────────────────────╮
# │ 6. Agendamentos                             │
# ╰──────────────────────────────────────────────╯
class Appointment(models.Model):
    class Status(models.TextChoices):
        SCHEDULED = "scheduled", "Scheduled"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"
        NO_SHOW = "no_show", "No show"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    sale = models.ForeignKey(Sale, on_delete=models.CASCADE, related_name="appointments")
    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name="appointments")
    appointment_date = models.DateField(db_index=True)
    appointment_time = models.TimeField()
    notes = models.TextField(blank=True, null=True)
    status = models.CharField(
        max_length=16, choices=Status.choices, default=Status.SCHEDULED, db_index=True
    )
    created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, related_name="+", null=True, blank=True
    )
    updated_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, related_name="+", null=True, blank=True
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "appointments"
        ordering = ["appointment_date", "appointment_time"]


# ╭──────────────────────────────────────────────╮
# │ 7. Auditoria (append-only)                  │
# ╰──────────────────────────────────────────────╯
class AuditLog(models.Model):
    class EntityType(models.TextChoices):
        SALE = "sale", "Sale"
        PIECE = "piece", "Piece"
        CLIENT = "client", "Client"
        INSTALLMENT = "installment", "Installment"
        APPOINTMENT = "appointment", "Appointment"

    class Action(models.TextChoices):
        CREATED = "created", "Created"
        UPDATED = "updated", "Updated"
        DELETED = "deleted", "Deleted"

    id = models.BigAutoField(primary_key=True)
    entity_type = models.CharField(max_length=20, choices=EntityType.choices)
    entity_id = models.CharField(max_length=64)
    action = models.CharField(max_length=10, choices=Action.choices)
    user_id = models.UUIDField(null=True, blank=True)
    user_email = models.CharField(max_length=128, null=True, blank=True)
    user_name = models.CharField(max_length=100, null=True, blank=True)
    old_values = models.JSONField(null=True, blank=True)
    new_values = models.JSONField(null=True, blank=True)
    changes = models.JSONField(null=True, blank=True)
    notes = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = "audit_logs"
        ordering = ["-created_at", "-id"]
        indexes = [
            Index(fields=["entity_type", "entity_id", "created_at"], name="audit_entity_idx"),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("audit_logs é append-only; entradas não podem ser alteradas")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("audit_logs é append-only; entradas não podem ser removidas")


# ╭──────────────────────────────────────────────╮
# │ 8. Notificações para proprietários          │
# ╰──────────────────────────────────────────────╯
class OwnerNotification(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="notifications")
    type = models.CharField(max_length=50)
    title = models.CharField(max_length=255)
    message = models.TextField()
    entity_type = models.CharField(max_length=20, null=True, blank=True)
    entity_id = models.CharField(max_length=64, null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    read = models.BooleanField(default=False, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "notifications"
        ordering = ["-created_at"]
