"""
Reconciliation candidate scoring.

Deposits are matched against open invoices and withdrawals against open
bills of the same tenant. A candidate must agree on amount and fall inside
the date window, and the row may not exceed the outstanding balance; the
name comparison only ranks candidates that already qualify.

Score:
    amount equals total or outstanding balance     100
    closest of document / due date, per day off    50 - 5 * days (within the window)
    counterparty name inside the description       +30
    description inside the counterparty name       +20
    otherwise, share of name words found           10 * matched / words
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db.models import DecimalField, ExpressionWrapper, F, Q

from documents.models import Bill, Invoice
from documents.services import OPEN_FOR_PAYMENT

from .bank_import_services import normalize_description
from .models import BankRow

ZERO = Decimal("0")
_WORD_SPLIT = re.compile(r"[^\w]+")


@dataclass(frozen=True)
class MatchingConfig:
    AMOUNT_POINTS = 100
    DATE_POINTS = 50
    DATE_STEP = 5
    NAME_IN_DESCRIPTION_POINTS = 30
    DESCRIPTION_IN_NAME_POINTS = 20
    NAME_WORD_POINTS = 10

    date_tolerance_days: int = 7
    max_candidates: int = 5
    high_confidence_score: int = 150
    amount_tolerance: Decimal = Decimal("0.01")

    @classmethod
    def from_settings(cls) -> "MatchingConfig":
        values = getattr(settings, "RECONCILIATION_MATCHING", {}) or {}
        return cls(
            date_tolerance_days=int(values.get("DATE_TOLERANCE_DAYS", 7)),
            max_candidates=int(values.get("MAX_CANDIDATES", 5)),
            high_confidence_score=int(values.get("HIGH_CONFIDENCE_SCORE", 150)),
            amount_tolerance=Decimal(str(values.get("AMOUNT_TOLERANCE", "0.01"))),
        )


@dataclass(frozen=True)
class MatchCandidate:
    bank_row_id: int
    target_type: str
    target_id: int
    document_number: str
    counterparty_name: str
    document_date: date
    due_date: Optional[date]
    total_amount: Decimal
    balance: Decimal
    score: Decimal
    high_confidence: bool

    def as_dict(self) -> dict:
        return {
            "bank_row_id": self.bank_row_id,
            "target_type": self.target_type,
            "target_id": self.target_id,
            "document_number": self.document_number,
            "counterparty_name": self.counterparty_name,
            "document_date": self.document_date.isoformat(),
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "total_amount": str(self.total_amount),
            "balance": str(self.balance),
            "score": str(self.score),
            "high_confidence": self.high_confidence,
        }


@dataclass
class RowCandidates:
    row: BankRow
    candidates: list[MatchCandidate] = field(default_factory=list)


def _name_points(description: str, counterparty_name: str, config: MatchingConfig) -> Decimal:
    desc = normalize_description(description)
    name = normalize_description(counterparty_name)
    if not name or not desc:
        return ZERO
    if name in desc:
        return Decimal(config.NAME_IN_DESCRIPTION_POINTS)
    if desc in name:
        return Decimal(config.DESCRIPTION_IN_NAME_POINTS)
    folded = unicodedata.normalize("NFKC", counterparty_name).lower()
    words = [word for word in _WORD_SPLIT.split(folded) if len(word) > 1]
    if not words:
        return ZERO
    matched = sum(1 for word in words if word in desc)
    return Decimal(config.NAME_WORD_POINTS) * matched / len(words)


def score_candidate(
    row,
    *,
    amount: Decimal,
    document_date: date,
    counterparty_name: str,
    due_date: date | None = None,
    balance: Decimal | None = None,
    config: MatchingConfig | None = None,
) -> Decimal:
    """Score one bank row against one document; zero means "not a candidate"."""
    config = config or MatchingConfig()
    targets = [amount] if balance is None else [amount, balance]
    if not any(abs(row.amount - value) < config.amount_tolerance for value in targets):
        return ZERO

    days = min(abs((row.txn_date - d).days) for d in (document_date, due_date) if d)
    if days > config.date_tolerance_days:
        return ZERO

    score = Decimal(config.AMOUNT_POINTS) + max(0, config.DATE_POINTS - config.DATE_STEP * days)
    score += _name_points(row.description, counterparty_name, config)
    return score.quantize(Decimal("0.01"))


def _open_documents(row: BankRow, config: MatchingConfig):
    if row.direction == BankRow.Direction.IN:
        model, date_field, party = Invoice, "issue_date", "customer"
    else:
        model, date_field, party = Bill, "bill_date", "vendor"

    window = timedelta(days=config.date_tolerance_days)
    low, high = row.amount - config.amount_tolerance, row.amount + config.amount_tolerance
    date_range = (row.txn_date - window, row.txn_date + window)
    return (
        model.objects.filter(tenant_id=row.tenant_id, status__in=OPEN_FOR_PAYMENT[model])
        .annotate(
            balance_due=ExpressionWrapper(
                F("total_amount") - F("amount_paid"),
                output_field=DecimalField(max_digits=14, decimal_places=2),
            )
        )
        .filter(balance_due__gte=row.amount)
        .filter(Q(total_amount__range=(low, high)) | Q(balance_due__range=(low, high)))
        .filter(Q(**{f"{date_field}__range": date_range}) | Q(due_date__range=date_range))
        .select_related(party)
    )


def _candidate(row: BankRow, document, config: MatchingConfig) -> MatchCandidate | None:
    if isinstance(document, Invoice):
        target_type, document_date = "invoice", document.issue_date
    else:
        target_type, document_date = "bill", document.bill_date

    score = score_candidate(
        row,
        amount=document.total_amount,
        balance=document.balance,
        document_date=document_date,
        due_date=document.due_date,
        counterparty_name=document.counterparty_name,
        config=config,
    )
    if score <= 0 or row.amount > document.balance:
        return None
    return MatchCandidate(
        bank_row_id=row.pk,
        target_type=target_type,
        target_id=document.pk,
        document_number=document.document_number,
        counterparty_name=document.counterparty_name,
        document_date=document_date,
        due_date=document.due_date,
        total_amount=document.total_amount,
        balance=document.balance,
        score=score,
        high_confidence=score >= config.high_confidence_score,
    )


def find_candidates(row: BankRow, config: MatchingConfig | None = None) -> list[MatchCandidate]:
    if row.matched:
        return []
    config = config or MatchingConfig.from_settings()
    candidates = [
        candidate
        for candidate in (_candidate(row, document, config) for document in _open_documents(row, config))
        if candidate is not None
    ]
    candidates.sort(key=lambda c: (-c.score, c.document_date, c.target_id))
    return candidates[: config.max_candidates]


def statement_candidates(statement, config: MatchingConfig | None = None) -> list[RowCandidates]:
    """Every unmatched row of a statement with its candidates; an empty list is a valid outcome."""
    config = config or MatchingConfig.from_settings()
    rows = statement.rows.filter(matched=False).order_by("txn_date", "id")
    return [RowCandidates(row=row, candidates=find_candidates(row, config)) for row in rows]
