"""
Ledger posting engine.

All writes go through the four operations below. Each one runs inside a
single ``transaction.atomic`` block: the balance check, the lock-period check
and the row writes share the same transaction, so a rejected operation never
leaves a partial journal behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date as date_type
from decimal import Decimal
from typing import Sequence

from django.db import transaction
from django.utils import timezone

from .exceptions import (
    AlreadyApproved,
    EmptyJournal,
    InactiveAccount,
    InvalidJournalLine,
    InvalidTaxRate,
    JournalNotEditable,
    PeriodLocked,
    UnbalancedJournal,
    UnknownAccount,
)
from .models import Account, AccountingPeriod, Journal, JournalLine, TaxRate
from .periods import covering_periods, find_period

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def to_decimal(value, *, field: str = "amount") -> Decimal:
    amount = ZERO if value is None else Decimal(value)
    if not amount.is_finite():
        raise InvalidJournalLine(f"{field} is not a finite number: {value!r}")
    return amount


@dataclass
class LineInput:
    account_id: int
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    description: str = ""
    department: str = ""
    tax_rate_id: int | None = None
    line_number: int | None = None


def _check_line_amounts(lines: Sequence[LineInput]) -> tuple[Decimal, Decimal]:
    if not lines:
        raise EmptyJournal("A journal needs at least one line.")

    total_debit = ZERO
    total_credit = ZERO
    for index, line in enumerate(lines, start=1):
        debit = to_decimal(line.debit, field="debit")
        credit = to_decimal(line.credit, field="credit")
        if debit < 0 or credit < 0:
            raise InvalidJournalLine(f"Line {index}: debit and credit must not be negative.")
        if debit and credit:
            raise InvalidJournalLine(f"Line {index}: a line carries either a debit or a credit, not both.")
        if not debit and not credit:
            raise InvalidJournalLine(f"Line {index}: amount is zero.")
        total_debit += debit
        total_credit += credit

    if total_debit != total_credit:
        raise UnbalancedJournal(
            f"Total debits ({total_debit}) and total credits ({total_credit}) do not match."
        )
    if total_debit <= ZERO:
        raise EmptyJournal()
    return total_debit, total_credit


def _load_accounts(tenant, lines: Sequence[LineInput]) -> dict[int, Account]:
    ids = {line.account_id for line in lines}
    accounts = Account.objects.filter(tenant=tenant).in_bulk(ids)
    for account_id in ids:
        account = accounts.get(account_id)
        if account is None:
            raise UnknownAccount(f"Account {account_id} does not exist for this tenant.")
        if not account.is_active:
            raise InactiveAccount(f"Account {account.code} ({account.name}) is inactive.")
    return accounts


def _load_tax_rates(tenant, journal_date: date_type, lines: Sequence[LineInput]) -> dict[int, TaxRate]:
    ids = {line.tax_rate_id for line in lines if line.tax_rate_id}
    if not ids:
        return {}
    rates = TaxRate.objects.filter(tenant=tenant).in_bulk(ids)
    for rate_id in ids:
        rate = rates.get(rate_id)
        if rate is None:
            raise InvalidTaxRate(f"Tax rate {rate_id} does not exist for this tenant.")
        if not rate.is_effective_on(journal_date):
            raise InvalidTaxRate(f"Tax rate {rate.name} is not effective on {journal_date}.")
    return rates


def resolve_period(tenant, on_date: date_type) -> AccountingPeriod | None:
    """Return the period covering ``on_date``; reject when any covering period is locked."""
    locked = covering_periods(tenant, on_date).filter(status=AccountingPeriod.Status.LOCKED).first()
    if locked is not None:
        raise PeriodLocked(f"Accounting period {locked.name} is locked; {on_date} cannot be posted to.")
    return find_period(tenant, on_date)


def _prepare(tenant, journal_date: date_type, lines: Sequence[LineInput]):
    _check_line_amounts(lines)
    accounts = _load_accounts(tenant, lines)
    tax_rates = _load_tax_rates(tenant, journal_date, lines)
    return accounts, tax_rates


def _write_lines(journal: Journal, lines: Sequence[LineInput], accounts, tax_rates) -> None:
    JournalLine.objects.bulk_create(
        [
            JournalLine(
                journal=journal,
                line_number=line.line_number or index,
                account=accounts[line.account_id],
                debit=to_decimal(line.debit, field="debit"),
                credit=to_decimal(line.credit, field="credit"),
                tax_rate=tax_rates.get(line.tax_rate_id) if line.tax_rate_id else None,
                description=line.description or "",
                department=line.department or "",
            )
            for index, line in enumerate(lines, start=1)
        ]
    )


def _lock_journal(tenant, journal_id) -> Journal:
    return Journal.objects.select_for_update().get(tenant=tenant, pk=journal_id)


def _ensure_mutable(journal: Journal) -> None:
    if journal.is_approved:
        raise AlreadyApproved("Approved journals cannot be edited or deleted.")
    if not journal.is_manual:
        raise JournalNotEditable(
            f"Journals generated from {journal.get_source_type_display() or 'another source'} "
            "cannot be edited or deleted manually."
        )


@transaction.atomic
def create_journal(
    tenant,
    *,
    date: date_type,
    memo: str = "",
    lines: Sequence[LineInput],
    source_type: str | None = Journal.SourceType.MANUAL,
    source_id: int | None = None,
    source_event: str | None = None,
    user=None,
) -> Journal:
    accounts, tax_rates = _prepare(tenant, date, lines)
    period = resolve_period(tenant, date)

    journal = Journal.objects.create(
        tenant=tenant,
        date=date,
        memo=(memo or "")[:255],
        period=period,
        source_type=source_type,
        source_id=source_id,
        source_event=source_event,
        is_approved=False,
        created_by=user,
    )
    _write_lines(journal, lines, accounts, tax_rates)
    journal.check_balance()

    logger.info(
        "Journal %s created for tenant %s (source=%s:%s, lines=%s)",
        journal.pk,
        tenant.pk,
        source_type,
        source_id,
        len(lines),
    )
    return journal


@transaction.atomic
def update_journal(
    tenant,
    journal_id,
    *,
    date: date_type,
    memo: str = "",
    lines: Sequence[LineInput],
    user=None,
) -> Journal:
    journal = _lock_journal(tenant, journal_id)
    _ensure_mutable(journal)
    resolve_period(tenant, journal.date)

    accounts, tax_rates = _prepare(tenant, date, lines)
    period = resolve_period(tenant, date)

    journal.lines.all().delete()
    journal.date = date
    journal.memo = (memo or "")[:255]
    journal.period = period
    journal.save(update_fields=["date", "memo", "period", "updated_at"])
    _write_lines(journal, lines, accounts, tax_rates)
    journal.check_balance()

    logger.info("Journal %s updated for tenant %s (lines=%s)", journal.pk, tenant.pk, len(lines))
    return journal


@transaction.atomic
def delete_journal(tenant, journal_id, user=None) -> None:
    journal = _lock_journal(tenant, journal_id)
    _ensure_mutable(journal)
    resolve_period(tenant, journal.date)

    journal.delete()
    logger.info("Journal %s deleted for tenant %s", journal_id, tenant.pk)


@transaction.atomic
def approve_journal(tenant, journal_id, user=None) -> Journal:
    now = timezone.now()
    updated = Journal.objects.filter(tenant=tenant, pk=journal_id, is_approved=False).update(
        is_approved=True,
        approved_at=now,
        approved_by=user,
        updated_at=now,
    )
    journal = Journal.objects.get(tenant=tenant, pk=journal_id)
    if not updated:
        raise AlreadyApproved()

    logger.info("Journal %s approved for tenant %s", journal.pk, tenant.pk)
    return journal


def get_journal(tenant, journal_id) -> Journal:
    return (
        Journal.objects.select_related("period")
        .prefetch_related("lines__account", "lines__tax_rate")
        .get(tenant=tenant, pk=journal_id)
    )


def list_journals(
    tenant,
    *,
    period_id=None,
    date_from: date_type | None = None,
    date_to: date_type | None = None,
    source_type: str | None = None,
    approved: bool | None = None,
    limit: int = 100,
):
    qs = (
        Journal.objects.filter(tenant=tenant)
        .select_related("period")
        .prefetch_related("lines__account", "lines__tax_rate")
        .order_by("-date", "-created_at", "-id")
    )
    if period_id:
        qs = qs.filter(period_id=period_id)
    if date_from:
        qs = qs.filter(date__gte=date_from)
    if date_to:
        qs = qs.filter(date__lte=date_to)
    if source_type:
        qs = qs.filter(source_type=source_type)
    if approved is not None:
        qs = qs.filter(is_approved=approved)
    return list(qs[:limit])
