from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from django.conf import settings
from django.db import models
from django.db.models import Q

from .exceptions import AlreadyApproved, EmptyJournal, LedgerError, UnbalancedJournal

if TYPE_CHECKING:
    from django.db.models import Manager


class Tenant(models.Model):
    name = models.CharField(max_length=255, unique=True)
    currency = models.CharField(max_length=3, default="JPY")
    owner_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="tenants",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return self.name


class Account(models.Model):
    class AccountType(models.TextChoices):
        ASSET = "ASSET", "Asset"
        LIABILITY = "LIABILITY", "Liability"
        EQUITY = "EQUITY", "Equity"
        REVENUE = "REVENUE", "Revenue"
        EXPENSE = "EXPENSE", "Expense"
        CONTRA = "CONTRA", "Contra"

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="accounts",
    )
    code = models.CharField(max_length=20, help_text="Chart of accounts code like 1101, 4100.")
    name = models.CharField(max_length=255)
    type = models.CharField(max_length=10, choices=AccountType.choices)
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        related_name="children",
        on_delete=models.PROTECT,
    )
    tax_category = models.CharField(max_length=30, blank=True, default="")
    is_active = models.BooleanField(default=True)
    description = models.TextField(blank=True)
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["code", "name"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "code"],
                name="unique_account_code_per_tenant",
            )
        ]

    def __str__(self):
        return f"{self.code} – {self.name}"

    @property
    def is_referenced(self) -> bool:
        return bool(self.pk) and self.journal_lines.exists()

    def save(self, *args, **kwargs):
        if self.pk and self.is_referenced:
            stored = Account.objects.filter(pk=self.pk).values("code", "type").first()
            if stored and (stored["code"] != self.code or stored["type"] != self.type):
                raise LedgerError(
                    "Account code and type cannot change once the account has postings.",
                    code="account_referenced",
                )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self.is_referenced:
            raise LedgerError(
                "Accounts with postings cannot be deleted; deactivate them instead.",
                code="account_referenced",
            )
        return super().delete(*args, **kwargs)

    def deactivate(self):
        self.is_active = False
        self.save(update_fields=["is_active"])

    if TYPE_CHECKING:
        journal_lines: Manager["JournalLine"]


class TaxRate(models.Model):
    class Category(models.TextChoices):
        STANDARD = "STANDARD", "Standard"
        REDUCED = "REDUCED", "Reduced"
        EXEMPT = "EXEMPT", "Exempt"
        NON_TAXABLE = "NON_TAXABLE", "Non-taxable"

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="tax_rates",
    )
    name = models.CharField(max_length=100)
    rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Percentage, e.g. 10.00 for 10%.",
    )
    category = models.CharField(max_length=12, choices=Category.choices, default=Category.STANDARD)
    applies_from = models.DateField()
    applies_to = models.DateField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["-applies_from", "name"]

    def __str__(self):
        return f"{self.name} ({self.rate}%)"

    def is_effective_on(self, on_date) -> bool:
        if not self.is_active or on_date < self.applies_from:
            return False
        return self.applies_to is None or on_date <= self.applies_to

    def delete(self, *args, **kwargs):
        if self.journal_lines.exists():
            raise LedgerError(
                "Tax rates referenced by postings cannot be deleted; deactivate them instead.",
                code="tax_rate_referenced",
            )
        return super().delete(*args, **kwargs)


class AccountingPeriod(models.Model):
    class Status(models.TextChoices):
        OPEN = "OPEN", "Open"
        CLOSED = "CLOSED", "Closed"
        LOCKED = "LOCKED", "Locked"

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="periods",
    )
    name = models.CharField(max_length=100)
    start_date = models.DateField()
    end_date = models.DateField()
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.OPEN,
        db_index=True,
    )
    closed_at = models.DateTimeField(null=True, blank=True)
    locked_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-start_date"]
        constraints = [
            models.CheckConstraint(
                condition=Q(start_date__lte=models.F("end_date")),
                name="period_start_before_end",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.start_date} – {self.end_date})"

    @property
    def is_locked(self) -> bool:
        return self.status == self.Status.LOCKED


class Journal(models.Model):
    class SourceType(models.TextChoices):
        MANUAL = "manual", "Manual"
        INVOICE = "invoice", "Invoice"
        BILL = "bill", "Bill"
        BANK_TRANSACTION = "bank_transaction", "Bank transaction"
        FIXED_ASSET = "fixed_asset", "Fixed asset"
        EXPENSE = "expense", "Expense"

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="journals",
    )
    date = models.DateField(db_index=True)
    memo = models.CharField(max_length=255, blank=True, default="")
    period = models.ForeignKey(
        AccountingPeriod,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="journals",
    )
    source_type = models.CharField(
        max_length=20,
        choices=SourceType.choices,
        null=True,
        blank=True,
        db_index=True,
    )
    source_id = models.PositiveBigIntegerField(null=True, blank=True)
    source_event = models.CharField(
        max_length=50,
        null=True,
        blank=True,
        help_text="Document transition that derived this journal, e.g. invoice.sent.",
    )
    is_approved = models.BooleanField(default=False)
    approved_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="approved_journals",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_journals",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-date", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "source_type", "source_id", "source_event"],
                condition=Q(source_event__isnull=False),
                name="unique_derived_journal_per_event",
            )
        ]

    def __str__(self):
        return f"{self.date} – {self.memo}"

    @property
    def is_manual(self) -> bool:
        return self.source_type == self.SourceType.MANUAL

    def totals(self) -> tuple[Decimal, Decimal]:
        agg = self.lines.aggregate(
            total_debit=models.Sum("debit"),
            total_credit=models.Sum("credit"),
        )
        return agg["total_debit"] or Decimal("0"), agg["total_credit"] or Decimal("0")

    def check_balance(self):
        total_debit, total_credit = self.totals()
        if total_debit != total_credit:
            raise UnbalancedJournal(
                f"Unbalanced journal (debits={total_debit}, credits={total_credit})."
            )
        if total_debit == Decimal("0"):
            raise EmptyJournal()

    def delete(self, *args, **kwargs):
        if self.is_approved:
            raise AlreadyApproved("Approved journals cannot be deleted.")
        return super().delete(*args, **kwargs)

    if TYPE_CHECKING:
        id: int
        lines: Manager["JournalLine"]
        period_id: Optional[int]


class JournalLine(models.Model):
    journal = models.ForeignKey(
        Journal,
        on_delete=models.CASCADE,
        related_name="lines",
    )
    line_number = models.PositiveIntegerField(default=1)
    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="journal_lines",
    )
    debit = models.DecimalField(max_digits=19, decimal_places=4, default=Decimal("0.0000"))
    credit = models.DecimalField(max_digits=19, decimal_places=4, default=Decimal("0.0000"))
    tax_rate = models.ForeignKey(
        TaxRate,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="journal_lines",
    )
    description = models.CharField(max_length=255, blank=True, default="")
    department = models.CharField(max_length=100, blank=True, default="")

    class Meta:
        ordering = ["line_number", "id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(debit__gte=0) & Q(credit__gte=0),
                name="journal_line_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(debit=0) | Q(credit=0),
                name="journal_line_single_side",
            ),
        ]

    def __str__(self):
        side = f"Dr {self.debit}" if self.debit else f"Cr {self.credit}"
        return f"{self.account_id} {side}"
