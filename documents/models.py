from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone

from ledger.journal_generator import BILL, EXPENSE_CLAIM, INVOICE, ClaimLine, DocumentTransition


class Customer(models.Model):
    tenant = models.ForeignKey(
        "ledger.Tenant",
        on_delete=models.CASCADE,
        related_name="customers",
    )
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class Vendor(models.Model):
    tenant = models.ForeignKey(
        "ledger.Tenant",
        on_delete=models.CASCADE,
        related_name="vendors",
    )
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class Invoice(models.Model):
    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        PENDING = "PENDING", "Pending"
        SENT = "SENT", "Sent"
        PARTIAL = "PARTIAL", "Partially paid"
        PAID = "PAID", "Paid"
        CANCELLED = "CANCELLED", "Cancelled"

    tenant = models.ForeignKey(
        "ledger.Tenant",
        on_delete=models.CASCADE,
        related_name="invoices",
    )
    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        related_name="invoices",
    )
    invoice_number = models.CharField(max_length=50)
    issue_date = models.DateField(default=timezone.localdate)
    due_date = models.DateField(blank=True, null=True)
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.DRAFT,
        db_index=True,
    )
    total_amount = models.DecimalField(max_digits=14, decimal_places=2)
    amount_paid = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    payment_date = models.DateField(blank=True, null=True)
    revenue_account = models.ForeignKey(
        "ledger.Account",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Overrides the default sales account when the invoice is sent.",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-issue_date", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "invoice_number"],
                name="unique_invoice_number_per_tenant",
            )
        ]

    def __str__(self):
        return f"Invoice {self.invoice_number} ({self.customer})"

    @property
    def balance(self) -> Decimal:
        return (self.total_amount or Decimal("0")) - (self.amount_paid or Decimal("0"))

    @property
    def document_number(self) -> str:
        return self.invoice_number

    @property
    def counterparty_name(self) -> str:
        return self.customer.name

    def transition_event(self, old_status, new_status, *, amount=None) -> DocumentTransition:
        return DocumentTransition(
            tenant_id=self.tenant_id,
            document_type=INVOICE,
            document_id=self.pk,
            document_number=self.invoice_number,
            old_status=old_status,
            new_status=new_status,
            amount=self.total_amount if amount is None else amount,
            document_date=self.issue_date,
            payment_date=self.payment_date,
            due_date=self.due_date,
            counterparty_name=self.customer.name,
            account_override_id=self.revenue_account_id,
        )


class Bill(models.Model):
    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        ISSUED = "ISSUED", "Issued"
        PARTIAL = "PARTIAL", "Partially paid"
        PAID = "PAID", "Paid"
        CANCELLED = "CANCELLED", "Cancelled"

    tenant = models.ForeignKey(
        "ledger.Tenant",
        on_delete=models.CASCADE,
        related_name="bills",
    )
    vendor = models.ForeignKey(
        Vendor,
        on_delete=models.PROTECT,
        related_name="bills",
    )
    bill_number = models.CharField(max_length=50)
    bill_date = models.DateField(default=timezone.localdate)
    due_date = models.DateField(blank=True, null=True)
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.DRAFT,
        db_index=True,
    )
    total_amount = models.DecimalField(max_digits=14, decimal_places=2)
    amount_paid = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    payment_date = models.DateField(blank=True, null=True)
    expense_account = models.ForeignKey(
        "ledger.Account",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Overrides the default expense account when the bill is issued.",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-bill_date", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "bill_number"],
                name="unique_bill_number_per_tenant",
            )
        ]

    def __str__(self):
        return f"Bill {self.bill_number} ({self.vendor})"

    @property
    def balance(self) -> Decimal:
        return (self.total_amount or Decimal("0")) - (self.amount_paid or Decimal("0"))

    @property
    def document_number(self) -> str:
        return self.bill_number

    @property
    def counterparty_name(self) -> str:
        return self.vendor.name

    def transition_event(self, old_status, new_status, *, amount=None) -> DocumentTransition:
        return DocumentTransition(
            tenant_id=self.tenant_id,
            document_type=BILL,
            document_id=self.pk,
            document_number=self.bill_number,
            old_status=old_status,
            new_status=new_status,
            amount=self.total_amount if amount is None else amount,
            document_date=self.bill_date,
            payment_date=self.payment_date,
            due_date=self.due_date,
            counterparty_name=self.vendor.name,
            account_override_id=self.expense_account_id,
        )


class ExpenseClaim(models.Model):
    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        SUBMITTED = "SUBMITTED", "Submitted"
        APPROVED = "APPROVED", "Approved"
        REJECTED = "REJECTED", "Rejected"
        REIMBURSED = "REIMBURSED", "Reimbursed"

    tenant = models.ForeignKey(
        "ledger.Tenant",
        on_delete=models.CASCADE,
        related_name="expense_claims",
    )
    employee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="expense_claims",
    )
    title = models.CharField(max_length=255)
    status = models.CharField(
        max_length=12,
        choices=Status.choices,
        default=Status.DRAFT,
        db_index=True,
    )
    reimbursed_on = models.DateField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return self.title

    @property
    def total(self) -> Decimal:
        return sum((item.amount for item in self.items.all()), Decimal("0"))

    def transition_event(self, old_status, new_status, *, amount=None) -> DocumentTransition:
        items = list(self.items.all())
        first_spent = min((item.spent_on for item in items), default=None)
        return DocumentTransition(
            tenant_id=self.tenant_id,
            document_type=EXPENSE_CLAIM,
            document_id=self.pk,
            document_number=self.title,
            old_status=old_status,
            new_status=new_status,
            amount=sum((item.amount for item in items), Decimal("0")) if amount is None else amount,
            document_date=first_spent or self.created_at.date(),
            payment_date=self.reimbursed_on,
            counterparty_name=self.employee.get_username(),
            lines=tuple(
                ClaimLine(
                    account_id=item.account_id,
                    amount=item.amount,
                    tax_rate_id=item.tax_rate_id,
                    description=f"{item.merchant} {item.description}".strip(),
                )
                for item in items
            ),
        )


class ExpenseClaimItem(models.Model):
    claim = models.ForeignKey(
        ExpenseClaim,
        on_delete=models.CASCADE,
        related_name="items",
    )
    spent_on = models.DateField()
    merchant = models.CharField(max_length=255, blank=True)
    description = models.CharField(max_length=255, blank=True)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    account = models.ForeignKey(
        "ledger.Account",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )
    tax_rate = models.ForeignKey(
        "ledger.TaxRate",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        ordering = ["spent_on", "id"]

    def __str__(self):
        return f"{self.spent_on} {self.merchant} {self.amount}"
