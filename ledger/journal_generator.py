"""
Derived journals for business-document status transitions.

The document layer hands over a ``DocumentTransition``; ``build_journal_draft``
turns it into a balanced ``JournalDraft`` (or nothing) without touching the
database, and ``generate_journal`` posts that draft through the ledger
posting engine. Generation is best effort: the document transition is the
source of truth, so failures come back as warnings instead of exceptions.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Callable, Optional

from django.db import IntegrityError, transaction

from .accounting_defaults import configured_account_codes
from .exceptions import LedgerError, MissingAccount
from .features import LedgerFeatures
from .models import Account, Journal
from .posting import LineInput, create_journal

logger = logging.getLogger(__name__)

INVOICE = "invoice"
BILL = "bill"
EXPENSE_CLAIM = "expense_claim"

BANK_ROW_SETTLED = "bank_row.settled"


@dataclass(frozen=True)
class ClaimLine:
    account_id: Optional[int]
    amount: Decimal
    tax_rate_id: Optional[int] = None
    description: str = ""


@dataclass(frozen=True)
class DocumentTransition:
    tenant_id: int
    document_type: str
    document_id: int
    old_status: str
    new_status: str
    amount: Decimal
    document_date: date
    document_number: str = ""
    payment_date: Optional[date] = None
    due_date: Optional[date] = None
    counterparty_name: str = ""
    account_override_id: Optional[int] = None
    lines: tuple[ClaimLine, ...] = ()


@dataclass(frozen=True)
class JournalDraft:
    date: date
    memo: str
    source_type: str
    source_id: int
    source_event: str
    lines: tuple[LineInput, ...]

    @property
    def total(self) -> Decimal:
        return sum((line.debit for line in self.lines), Decimal("0"))


@dataclass(frozen=True)
class PostingContext:
    """Active account ids for the posting roles of one tenant."""

    accounts: dict
    codes: dict

    @classmethod
    def for_tenant(cls, tenant, codes: dict | None = None) -> "PostingContext":
        codes = dict(codes or configured_account_codes())
        by_code = dict(
            Account.objects.filter(
                tenant=tenant,
                code__in=list(codes.values()),
                is_active=True,
            ).values_list("code", "id")
        )
        accounts = {role: by_code[code] for role, code in codes.items() if code in by_code}
        return cls(accounts=accounts, codes=codes)

    def require(self, role: str) -> int:
        account_id = self.accounts.get(role)
        if account_id is None:
            raise MissingAccount(
                f"No active {role} account (code {self.codes.get(role, '?')}) is set up for posting."
            )
        return account_id


@dataclass
class GenerationResult:
    journal: Optional[Journal] = None
    created: bool = False
    warnings: list[str] = field(default_factory=list)


def _pair(debit_account: int, credit_account: int, amount: Decimal, debit_text: str, credit_text: str):
    return (
        LineInput(account_id=debit_account, debit=amount, description=debit_text[:255], line_number=1),
        LineInput(account_id=credit_account, credit=amount, description=credit_text[:255], line_number=2),
    )


def _invoice_sent(event: DocumentTransition, ctx: PostingContext) -> JournalDraft:
    revenue = event.account_override_id or ctx.require("revenue")
    return JournalDraft(
        date=event.document_date,
        memo=f"Invoice sent: {event.document_number}",
        source_type=Journal.SourceType.INVOICE,
        source_id=event.document_id,
        source_event="invoice.sent",
        lines=_pair(
            ctx.require("receivable"),
            revenue,
            event.amount,
            event.counterparty_name,
            event.counterparty_name,
        ),
    )


def _invoice_payment_lines(ctx: PostingContext, amount: Decimal, counterparty: str):
    return _pair(
        ctx.require("cash"),
        ctx.require("receivable"),
        amount,
        f"Payment from {counterparty}",
        f"Receivable cleared: {counterparty}",
    )


def _invoice_paid(event: DocumentTransition, ctx: PostingContext) -> JournalDraft:
    return JournalDraft(
        date=event.payment_date or event.document_date,
        memo=f"Invoice paid: {event.document_number}",
        source_type=Journal.SourceType.INVOICE,
        source_id=event.document_id,
        source_event="invoice.paid",
        lines=_invoice_payment_lines(ctx, event.amount, event.counterparty_name),
    )


def _bill_issued(event: DocumentTransition, ctx: PostingContext) -> JournalDraft:
    expense = event.account_override_id or ctx.require("expense")
    return JournalDraft(
        date=event.document_date,
        memo=f"Bill received: {event.document_number}",
        source_type=Journal.SourceType.BILL,
        source_id=event.document_id,
        source_event="bill.issued",
        lines=_pair(
            expense,
            ctx.require("payable"),
            event.amount,
            event.counterparty_name,
            event.counterparty_name,
        ),
    )


def _bill_payment_lines(ctx: PostingContext, amount: Decimal, counterparty: str):
    return _pair(
        ctx.require("payable"),
        ctx.require("cash"),
        amount,
        f"Payable cleared: {counterparty}",
        f"Payment to {counterparty}",
    )


def _bill_paid(event: DocumentTransition, ctx: PostingContext) -> JournalDraft:
    return JournalDraft(
        date=event.payment_date or event.document_date,
        memo=f"Bill paid: {event.document_number}",
        source_type=Journal.SourceType.BILL,
        source_id=event.document_id,
        source_event="bill.paid",
        lines=_bill_payment_lines(ctx, event.amount, event.counterparty_name),
    )


def _expense_reimbursed(event: DocumentTransition, ctx: PostingContext) -> JournalDraft | None:
    grouped: "OrderedDict[tuple, Decimal]" = OrderedDict()
    descriptions: dict[tuple, str] = {}
    for item in event.lines:
        if not item.amount:
            continue
        key = (item.account_id or ctx.require("expense"), item.tax_rate_id)
        grouped[key] = grouped.get(key, Decimal("0")) + item.amount
        descriptions.setdefault(key, item.description)

    if not grouped:
        return None

    lines = [
        LineInput(
            account_id=account_id,
            debit=amount,
            tax_rate_id=tax_rate_id,
            description=descriptions[(account_id, tax_rate_id)][:255],
            line_number=index,
        )
        for index, ((account_id, tax_rate_id), amount) in enumerate(grouped.items(), start=1)
    ]
    total = sum(grouped.values(), Decimal("0"))
    lines.append(
        LineInput(
            account_id=ctx.require("cash"),
            credit=total,
            description="Expense reimbursement",
            line_number=len(lines) + 1,
        )
    )
    return JournalDraft(
        date=event.payment_date or event.document_date,
        memo=f"Expense reimbursed: {event.document_number or event.counterparty_name}",
        source_type=Journal.SourceType.EXPENSE,
        source_id=event.document_id,
        source_event="expense_claim.reimbursed",
        lines=tuple(lines),
    )


@dataclass(frozen=True)
class _Template:
    build: Callable[[DocumentTransition, PostingContext], Optional[JournalDraft]]
    expense_journal: bool = False


TEMPLATES: dict[tuple[str, str, str], _Template] = {
    (INVOICE, "DRAFT", "SENT"): _Template(_invoice_sent),
    (INVOICE, "PENDING", "SENT"): _Template(_invoice_sent),
    (INVOICE, "SENT", "PAID"): _Template(_invoice_paid),
    (INVOICE, "PARTIAL", "PAID"): _Template(_invoice_paid),
    (BILL, "DRAFT", "ISSUED"): _Template(_bill_issued),
    (BILL, "ISSUED", "PAID"): _Template(_bill_paid),
    (BILL, "PARTIAL", "PAID"): _Template(_bill_paid),
    (EXPENSE_CLAIM, "APPROVED", "REIMBURSED"): _Template(_expense_reimbursed, expense_journal=True),
}


def build_journal_draft(
    event: DocumentTransition,
    context: PostingContext,
    features: LedgerFeatures | None = None,
) -> JournalDraft | None:
    """
    Pure translation of one status transition into a journal draft.

    Returns None when the transition has no template, repeats the current
    status, carries no value, or the relevant capability is switched off.
    Raises MissingAccount when a mapped account is not available.
    """
    features = features or LedgerFeatures()
    if event.old_status == event.new_status:
        return None
    if not features.accounting_enabled:
        return None

    template = TEMPLATES.get((event.document_type, event.old_status, event.new_status))
    if template is None:
        return None
    if template.expense_journal and not features.expense_journals_enabled:
        return None
    if event.amount is None or event.amount <= 0:
        return None
    return template.build(event, context)


def settlement_draft(
    document_type: str,
    *,
    bank_row_id: int,
    amount: Decimal,
    paid_on: date,
    document_number: str,
    counterparty_name: str,
    context: PostingContext,
) -> JournalDraft:
    """Payment template for a bank row that settles part of an invoice or bill."""
    if document_type == INVOICE:
        lines = _invoice_payment_lines(context, amount, counterparty_name)
        memo = f"Bank receipt for invoice {document_number}"
    else:
        lines = _bill_payment_lines(context, amount, counterparty_name)
        memo = f"Bank payment for bill {document_number}"
    return JournalDraft(
        date=paid_on,
        memo=memo,
        source_type=Journal.SourceType.BANK_TRANSACTION,
        source_id=bank_row_id,
        source_event=BANK_ROW_SETTLED,
        lines=lines,
    )


def _existing(tenant, draft: JournalDraft) -> Journal | None:
    return Journal.objects.filter(
        tenant=tenant,
        source_type=draft.source_type,
        source_id=draft.source_id,
        source_event=draft.source_event,
    ).first()


def post_draft(tenant, draft: JournalDraft, *, user=None) -> GenerationResult:
    """Post a draft once; a journal already derived from the same event is returned instead."""
    try:
        with transaction.atomic():
            existing = _existing(tenant, draft)
            if existing is not None:
                return GenerationResult(journal=existing, created=False)
            journal = create_journal(
                tenant,
                date=draft.date,
                memo=draft.memo,
                lines=list(draft.lines),
                source_type=draft.source_type,
                source_id=draft.source_id,
                source_event=draft.source_event,
                user=user,
            )
    except IntegrityError:
        # A concurrent request derived the same event first.
        return GenerationResult(journal=_existing(tenant, draft), created=False)
    except LedgerError as exc:
        logger.warning(
            "Derived journal %s for %s:%s was not posted: %s",
            draft.source_event,
            draft.source_type,
            draft.source_id,
            exc.reason,
        )
        return GenerationResult(warnings=[exc.reason])
    return GenerationResult(journal=journal, created=True)


def generate_journal(
    event: DocumentTransition,
    *,
    tenant,
    features: LedgerFeatures | None = None,
    context: PostingContext | None = None,
    user=None,
) -> GenerationResult:
    features = features or LedgerFeatures.from_settings()
    try:
        draft = build_journal_draft(event, context or PostingContext.for_tenant(tenant), features)
    except MissingAccount as exc:
        logger.warning(
            "No journal derived for %s %s (%s -> %s): %s",
            event.document_type,
            event.document_id,
            event.old_status,
            event.new_status,
            exc.reason,
        )
        return GenerationResult(warnings=[exc.reason])

    if draft is None:
        return GenerationResult()
    return post_draft(tenant, draft, user=user)
