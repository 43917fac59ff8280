from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone


class BankStatement(models.Model):
    tenant = models.ForeignKey(
        "ledger.Tenant",
        on_delete=models.CASCADE,
        related_name="bank_statements",
    )
    account_name = models.CharField(max_length=255, blank=True, default="")
    statement_date = models.DateField(default=timezone.localdate)
    file_name = models.CharField(max_length=255, blank=True, default="")
    row_count = models.PositiveIntegerField(default=0)
    matched_count = models.PositiveIntegerField(default=0)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.account_name or 'Bank'} statement {self.statement_date} ({self.file_name})"


class BankRow(models.Model):
    class Direction(models.TextChoices):
        IN = "IN", "Deposit"
        OUT = "OUT", "Withdrawal"

    class TargetType(models.TextChoices):
        INVOICE = "invoice", "Invoice"
        BILL = "bill", "Bill"

    tenant = models.ForeignKey(
        "ledger.Tenant",
        on_delete=models.CASCADE,
        related_name="bank_rows",
    )
    statement = models.ForeignKey(
        BankStatement,
        on_delete=models.CASCADE,
        related_name="rows",
    )
    txn_date = models.DateField(db_index=True)
    description = models.CharField(max_length=500)
    amount = models.DecimalField(max_digits=19, decimal_places=4)
    direction = models.CharField(max_length=3, choices=Direction.choices)
    hash = models.CharField(max_length=64, help_text="SHA-256 of date, amount, normalized description and direction.")
    matched = models.BooleanField(default=False, db_index=True)
    matched_target_type = models.CharField(max_length=10, choices=TargetType.choices, blank=True, null=True)
    matched_target_id = models.PositiveBigIntegerField(blank=True, null=True)
    matched_at = models.DateTimeField(blank=True, null=True)
    journal = models.ForeignKey(
        "ledger.Journal",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bank_rows",
    )

    class Meta:
        ordering = ["txn_date", "id"]
        constraints = [
            models.UniqueConstraint(fields=["tenant", "hash"], name="unique_bank_row_hash_per_tenant"),
            models.CheckConstraint(condition=models.Q(amount__gt=Decimal("0")), name="bank_row_amount_positive"),
        ]

    def __str__(self):
        return f"{self.txn_date} {self.get_direction_display()} {self.amount} {self.description[:40]}"
