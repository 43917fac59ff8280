from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from documents.models import Bill, Invoice
from documents.services import OPEN_FOR_PAYMENT, apply_payment
from ledger.exceptions import (
    AlreadyMatched,
    DirectionMismatch,
    LedgerError,
    MissingAccount,
    TargetNotOpen,
)
from ledger.features import LedgerFeatures
from ledger.journal_generator import PostingContext, post_draft, settlement_draft
from ledger.models import Journal

from .models import BankRow, BankStatement

logger = logging.getLogger(__name__)

MATCH_TARGETS = {
    BankRow.TargetType.INVOICE: (Invoice, BankRow.Direction.IN),
    BankRow.TargetType.BILL: (Bill, BankRow.Direction.OUT),
}


@dataclass
class MatchConfirmation:
    bank_row: BankRow
    target_type: str
    target_id: int
    journal: Optional[Journal] = None
    warnings: list[str] = field(default_factory=list)


def _lock_row(tenant, bank_row_id) -> BankRow:
    return BankRow.objects.select_for_update().get(tenant=tenant, pk=bank_row_id)


def _settle(tenant, row: BankRow, target_type: str, document, *, user, features: LedgerFeatures):
    """Apply the payment and return (journal, warnings) for the settling entry."""
    payment = apply_payment(document, row.amount, row.txn_date, user=user, features=features)
    if payment.journal is not None or payment.warnings or not features.accounting_enabled:
        return payment.journal, list(payment.warnings)

    # Partial settlement: no document template fires, so post the payment entry for this row.
    try:
        draft = settlement_draft(
            target_type,
            bank_row_id=row.pk,
            amount=row.amount,
            paid_on=row.txn_date,
            document_number=document.document_number,
            counterparty_name=document.counterparty_name,
            context=PostingContext.for_tenant(tenant),
        )
    except MissingAccount as exc:
        logger.warning("Bank row %s matched without a settling journal: %s", row.pk, exc.reason)
        return None, [exc.reason]
    generated = post_draft(tenant, draft, user=user)
    return generated.journal, list(generated.warnings)


@transaction.atomic
def confirm_match(
    tenant,
    bank_row_id,
    target_type: str,
    target_id,
    *,
    user=None,
    features: LedgerFeatures | None = None,
) -> MatchConfirmation:
    """
    Mark a bank row as settling an invoice or bill, exactly once.

    The matched flag flips through a conditional update on ``matched = false``;
    a second confirmation, concurrent or not, gets ``AlreadyMatched``.
    """
    features = features or LedgerFeatures.from_settings()
    if target_type not in MATCH_TARGETS:
        raise LedgerError(f"Unknown match target: {target_type}.", code="invalid_target")
    model, direction = MATCH_TARGETS[target_type]

    row = _lock_row(tenant, bank_row_id)
    if row.matched:
        raise AlreadyMatched()
    if row.direction != direction:
        raise DirectionMismatch(
            f"A {row.get_direction_display().lower()} cannot settle a {model.__name__.lower()}."
        )

    document = model.objects.select_for_update().get(tenant=tenant, pk=target_id)
    if document.status not in OPEN_FOR_PAYMENT[model]:
        raise TargetNotOpen(f"{model.__name__} {document.pk} is {document.get_status_display().lower()}.")
    if row.amount > document.balance:
        raise TargetNotOpen(
            f"Bank amount {row.amount} exceeds the outstanding balance of {document.balance}."
        )

    updated = BankRow.objects.filter(tenant=tenant, pk=row.pk, matched=False).update(
        matched=True,
        matched_target_type=target_type,
        matched_target_id=document.pk,
        matched_at=timezone.now(),
    )
    if not updated:
        raise AlreadyMatched()
    BankStatement.objects.filter(pk=row.statement_id).update(matched_count=F("matched_count") + 1)

    journal, warnings = _settle(tenant, row, target_type, document, user=user, features=features)
    if journal is not None:
        BankRow.objects.filter(pk=row.pk).update(journal=journal)

    row.refresh_from_db()
    logger.info(
        "Bank row %s matched to %s %s for tenant %s (journal=%s)",
        row.pk,
        target_type,
        document.pk,
        tenant.pk,
        journal.pk if journal else None,
    )
    return MatchConfirmation(
        bank_row=row,
        target_type=target_type,
        target_id=document.pk,
        journal=journal,
        warnings=warnings,
    )
