"""
Status transitions for invoices, bills and expense claims.

A transition is written as a conditional update on the old status and then
handed to the journal generator inside the same transaction. Generation runs
in its own savepoint, so the status change commits even when no journal could
be derived; the reasons come back as ``TransitionResult.warnings``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from ledger.exceptions import InvalidTransition, TargetNotOpen
from ledger.features import LedgerFeatures
from ledger.journal_generator import generate_journal
from ledger.models import Journal

from .models import Bill, ExpenseClaim, Invoice

logger = logging.getLogger(__name__)

INVOICE_TRANSITIONS = {
    Invoice.Status.DRAFT: {Invoice.Status.PENDING, Invoice.Status.SENT, Invoice.Status.CANCELLED},
    Invoice.Status.PENDING: {Invoice.Status.SENT, Invoice.Status.CANCELLED},
    Invoice.Status.SENT: {Invoice.Status.PARTIAL, Invoice.Status.PAID},
    Invoice.Status.PARTIAL: {Invoice.Status.PAID},
    Invoice.Status.PAID: set(),
    Invoice.Status.CANCELLED: set(),
}

BILL_TRANSITIONS = {
    Bill.Status.DRAFT: {Bill.Status.ISSUED, Bill.Status.CANCELLED},
    Bill.Status.ISSUED: {Bill.Status.PARTIAL, Bill.Status.PAID},
    Bill.Status.PARTIAL: {Bill.Status.PAID},
    Bill.Status.PAID: set(),
    Bill.Status.CANCELLED: set(),
}

EXPENSE_CLAIM_TRANSITIONS = {
    ExpenseClaim.Status.DRAFT: {ExpenseClaim.Status.SUBMITTED},
    ExpenseClaim.Status.SUBMITTED: {ExpenseClaim.Status.APPROVED, ExpenseClaim.Status.REJECTED},
    ExpenseClaim.Status.REJECTED: {ExpenseClaim.Status.DRAFT},
    ExpenseClaim.Status.APPROVED: {ExpenseClaim.Status.REIMBURSED},
    ExpenseClaim.Status.REIMBURSED: set(),
}

# Statuses in which a document still accepts payments.
OPEN_FOR_PAYMENT = {
    Invoice: {Invoice.Status.SENT, Invoice.Status.PARTIAL},
    Bill: {Bill.Status.ISSUED, Bill.Status.PARTIAL},
}


@dataclass
class TransitionResult:
    document: object
    old_status: str
    new_status: str
    changed: bool
    journal: Optional[Journal] = None
    warnings: list[str] = field(default_factory=list)


def _check_allowed(table, label: str, old_status: str, new_status: str) -> None:
    if new_status not in table:
        raise InvalidTransition(f"Unknown {label} status: {new_status}.")
    if new_status not in table.get(old_status, set()):
        raise InvalidTransition(f"{label} cannot move from {old_status} to {new_status}.")


def _apply_transition(document, table, label, new_status, updates, *, amount=None, user=None, features=None):
    model = type(document)
    old_status = document.status
    if old_status == new_status:
        return TransitionResult(document, old_status, new_status, changed=False)
    _check_allowed(table, label, old_status, new_status)

    updated = model.objects.filter(pk=document.pk, status=old_status).update(
        status=new_status,
        updated_at=timezone.now(),
        **updates,
    )
    if not updated:
        # Someone else moved the document first; only a matching end state is benign.
        document.refresh_from_db()
        if document.status == new_status:
            return TransitionResult(document, new_status, new_status, changed=False)
        raise InvalidTransition(f"{label} cannot move from {document.status} to {new_status}.")

    document.status = new_status
    for name, value in updates.items():
        setattr(document, name, value)
    logger.info("%s %s moved %s -> %s", label, document.pk, old_status, new_status)

    event = document.transition_event(old_status, new_status, amount=amount)
    generated = generate_journal(
        event,
        tenant=document.tenant,
        features=features or LedgerFeatures.from_settings(),
        user=user,
    )
    return TransitionResult(
        document,
        old_status,
        new_status,
        changed=True,
        journal=generated.journal,
        warnings=generated.warnings,
    )


@transaction.atomic
def transition_invoice(
    invoice: Invoice,
    new_status: str,
    *,
    payment_date: date | None = None,
    amount: Decimal | None = None,
    user=None,
    features: LedgerFeatures | None = None,
) -> TransitionResult:
    """
    Move an invoice to ``new_status`` and derive its journal.

    ``amount`` overrides the journal amount of the payment template; by default
    a payment clears whatever is still outstanding.
    """
    updates = {}
    if new_status == Invoice.Status.PAID and invoice.status != new_status:
        if amount is None:
            amount = invoice.balance
        updates = {
            "amount_paid": invoice.total_amount,
            "payment_date": payment_date or invoice.payment_date or timezone.localdate(),
        }
    return _apply_transition(
        invoice, INVOICE_TRANSITIONS, "Invoice", new_status, updates, amount=amount, user=user, features=features
    )


@transaction.atomic
def transition_bill(
    bill: Bill,
    new_status: str,
    *,
    payment_date: date | None = None,
    amount: Decimal | None = None,
    user=None,
    features: LedgerFeatures | None = None,
) -> TransitionResult:
    updates = {}
    if new_status == Bill.Status.PAID and bill.status != new_status:
        if amount is None:
            amount = bill.balance
        updates = {
            "amount_paid": bill.total_amount,
            "payment_date": payment_date or bill.payment_date or timezone.localdate(),
        }
    return _apply_transition(
        bill, BILL_TRANSITIONS, "Bill", new_status, updates, amount=amount, user=user, features=features
    )


@transaction.atomic
def transition_expense_claim(
    claim: ExpenseClaim,
    new_status: str,
    *,
    reimbursed_on: date | None = None,
    user=None,
    features: LedgerFeatures | None = None,
) -> TransitionResult:
    updates = {}
    if new_status == ExpenseClaim.Status.REIMBURSED and claim.status != new_status:
        updates = {"reimbursed_on": reimbursed_on or claim.reimbursed_on or timezone.localdate()}
    return _apply_transition(
        claim, EXPENSE_CLAIM_TRANSITIONS, "Expense claim", new_status, updates, user=user, features=features
    )


def transition_document(document, new_status: str, **kwargs) -> TransitionResult:
    if isinstance(document, Invoice):
        return transition_invoice(document, new_status, **kwargs)
    if isinstance(document, Bill):
        return transition_bill(document, new_status, **kwargs)
    if isinstance(document, ExpenseClaim):
        if "payment_date" in kwargs:
            kwargs["reimbursed_on"] = kwargs.pop("payment_date")
        kwargs.pop("amount", None)
        return transition_expense_claim(document, new_status, **kwargs)
    raise TypeError(f"Unsupported document: {type(document).__name__}")


@transaction.atomic
def apply_payment(
    document,
    amount: Decimal,
    paid_on: date,
    *,
    user=None,
    features: LedgerFeatures | None = None,
) -> TransitionResult:
    """
    Record a payment against an open invoice or bill.

    A payment that clears the balance runs the ``-> PAID`` transition (and with
    it the payment template); a smaller one raises ``amount_paid`` and leaves
    the document PARTIAL without a derived journal.
    """
    model = type(document)
    open_statuses = OPEN_FOR_PAYMENT.get(model)
    if open_statuses is None:
        raise TypeError(f"Payments cannot be applied to {model.__name__}.")

    document = model.objects.select_for_update().get(pk=document.pk)
    if document.status not in open_statuses:
        raise TargetNotOpen(f"{model.__name__} {document.pk} is {document.get_status_display().lower()}.")
    if amount <= 0 or amount > document.balance:
        raise TargetNotOpen(
            f"Payment of {amount} exceeds the outstanding balance of {document.balance}."
        )

    if amount == document.balance:
        return transition_document(
            document, model.Status.PAID, payment_date=paid_on, amount=amount, user=user, features=features
        )

    model.objects.filter(pk=document.pk).update(
        amount_paid=F("amount_paid") + amount,
        payment_date=paid_on,
        updated_at=timezone.now(),
    )
    document.refresh_from_db()
    return transition_document(document, model.Status.PARTIAL, user=user, features=features)
