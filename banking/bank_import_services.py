"""
Bank statement import.

Parses a delimited export (comma or tab), normalizes each row, fingerprints it
with a SHA-256 content hash and inserts only rows whose hash the tenant has not
seen yet. Row-level problems are collected and reported; they never abort the
rest of the file.
"""

from __future__ import annotations

import csv
import hashlib
import io
import logging
import re
import unicodedata
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, Sequence, Union

from django.conf import settings
from django.db import IntegrityError, transaction

from ledger.exceptions import ImportRejected

from .models import BankRow, BankStatement

logger = logging.getLogger(__name__)

MAX_ERROR_SAMPLES = 10
NO_DESCRIPTION = "(no description)"
HASH_LOOKUP_CHUNK = 500
MAX_AMOUNT = Decimal("1e15")
CENT = Decimal("0.01")

ColumnRef = Union[int, str]

_DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%Y.%m.%d", "%Y%m%d", "%m/%d/%Y")
_JP_DATE = re.compile(r"^(\d{4})年(\d{1,2})月(\d{1,2})日$")
_AMOUNT_NOISE = str.maketrans("", "", "¥$円, 　")
_NEGATIVE_MARKS = ("△", "▲")
_INBOUND = {"in", "credit", "deposit", "入", "入金"}
_OUTBOUND = {"out", "debit", "withdrawal", "出", "出金"}


@dataclass(frozen=True)
class ColumnMapping:
    """Columns holding each field; zero-based indexes or header names."""

    date: ColumnRef
    description: ColumnRef
    amount: ColumnRef
    direction: Optional[ColumnRef] = None

    def resolve(self, header: Sequence[str] | None) -> dict[str, Optional[int]]:
        resolved = {}
        for name in ("date", "description", "amount", "direction"):
            ref = getattr(self, name)
            resolved[name] = None if ref in (None, "", -1) else _column_index(ref, header, name)
        return resolved


def _column_index(ref: ColumnRef, header, name: str) -> int:
    if isinstance(ref, int):
        return ref
    text = str(ref).strip()
    if text.lstrip("-").isdigit():
        return int(text)
    if header is not None:
        for index, cell in enumerate(header):
            if cell.strip().lower() == text.lower():
                return index
    raise ImportRejected(f"Column '{text}' for {name} is not in the header row.")


@dataclass
class ImportResult:
    statement_id: int
    total_rows: int
    success_count: int
    duplicate_count: int
    error_count: int
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "statement_id": self.statement_id,
            "total_rows": self.total_rows,
            "success_count": self.success_count,
            "duplicate_count": self.duplicate_count,
            "error_count": self.error_count,
            "errors": list(self.errors),
        }


def decode_statement(raw: bytes) -> str:
    """Decode an uploaded export; Japanese bank downloads are often Shift_JIS."""
    for encoding in ("utf-8-sig", "cp932"):
        try:
            return raw.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise ImportRejected("The file is not UTF-8 or Shift_JIS text.")


def detect_delimiter(content: str) -> str:
    first_line = content.splitlines()[0] if content else ""
    return "\t" if "\t" in first_line else ","


def parse_delimited(content: str, delimiter: str = ",") -> list[list[str]]:
    reader = csv.reader(io.StringIO(content.lstrip("\ufeff")), delimiter=delimiter)
    rows = []
    for cells in reader:
        cells = [cell.strip() for cell in cells]
        if any(cells):
            rows.append(cells)
    return rows


def parse_txn_date(raw: str) -> date:
    text = unicodedata.normalize("NFKC", raw or "").strip()
    match = _JP_DATE.match(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return date(year, month, day)
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"unrecognised date format: {raw}")


def parse_amount(raw: str) -> Decimal:
    """Signed amount from bank-export text: separators, currency marks, (1,000) and 1,000- handled."""
    text = unicodedata.normalize("NFKC", raw or "").strip().replace("−", "-")
    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative, text = True, text[1:-1]
    if text.endswith("-"):
        negative, text = True, text[:-1]
    text = text.translate(_AMOUNT_NOISE)
    if text[:1] in _NEGATIVE_MARKS:
        negative, text = True, text[1:]
    if not text:
        raise ValueError(f"unrecognised amount: {raw}")
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"unrecognised amount: {raw}") from None
    if not amount.is_finite():
        raise ValueError(f"unrecognised amount: {raw}")
    return -amount if negative else amount


def resolve_direction(raw_type: str | None, signed_amount: Decimal) -> str:
    token = unicodedata.normalize("NFKC", raw_type or "").strip().lower()
    if token:
        if "入金" in token or token in _INBOUND:
            return BankRow.Direction.IN
        if "出金" in token or token in _OUTBOUND:
            return BankRow.Direction.OUT
    return BankRow.Direction.IN if signed_amount >= 0 else BankRow.Direction.OUT


def normalize_description(text: str) -> str:
    """NFKC fold (full-width to half-width), drop all whitespace, lower-case."""
    folded = unicodedata.normalize("NFKC", text or "")
    return "".join(folded.split()).lower()


def compute_row_hash(txn_date: date, amount: Decimal, description: str, direction: str) -> str:
    raw = "|".join(
        [
            txn_date.isoformat(),
            str(abs(amount).quantize(CENT)),
            normalize_description(description),
            str(direction).lower(),
        ]
    )
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def _cell(cells: Sequence[str], index: Optional[int]) -> str:
    if index is None or index < 0 or index >= len(cells):
        return ""
    return cells[index].strip()


def _build_row(tenant, statement, cells, columns) -> BankRow:
    date_raw = _cell(cells, columns["date"])
    amount_raw = _cell(cells, columns["amount"])
    if not date_raw or not amount_raw:
        raise ValueError("date or amount is missing")

    txn_date = parse_txn_date(date_raw)
    signed = parse_amount(amount_raw)
    if signed == 0:
        raise ValueError("amount is zero")
    if abs(signed) >= MAX_AMOUNT:
        raise ValueError(f"amount is out of range: {amount_raw}")
    if signed != signed.quantize(CENT):
        raise ValueError(f"amount has more than two decimal places: {amount_raw}")

    description = _cell(cells, columns["description"]) or NO_DESCRIPTION
    direction = resolve_direction(_cell(cells, columns["direction"]), signed)
    amount = abs(signed)
    return BankRow(
        tenant=tenant,
        statement=statement,
        txn_date=txn_date,
        description=description[:500],
        amount=amount,
        direction=direction,
        hash=compute_row_hash(txn_date, amount, description, direction),
    )


def _known_hashes(tenant, hashes) -> set[str]:
    hashes = list(hashes)
    known: set[str] = set()
    for start in range(0, len(hashes), HASH_LOOKUP_CHUNK):
        chunk = hashes[start : start + HASH_LOOKUP_CHUNK]
        known.update(BankRow.objects.filter(tenant=tenant, hash__in=chunk).values_list("hash", flat=True))
    return known


def _insert_rows(rows: list[BankRow]) -> int:
    """Insert staged rows; a (tenant, hash) violation counts the row as a duplicate."""
    if not rows:
        return 0
    try:
        with transaction.atomic():
            BankRow.objects.bulk_create(rows)
        return len(rows)
    except IntegrityError:
        logger.info("Bulk insert of %s bank rows hit a duplicate hash; inserting row by row", len(rows))

    inserted = 0
    for row in rows:
        row.pk = None
        try:
            with transaction.atomic():
                row.save(force_insert=True)
        except IntegrityError:
            continue
        inserted += 1
    return inserted


@transaction.atomic
def import_bank_statement(
    tenant,
    *,
    content: str,
    mapping: ColumnMapping,
    has_header: bool = False,
    account_name: str = "",
    file_name: str = "",
    user=None,
) -> ImportResult:
    rows = parse_delimited(content, detect_delimiter(content))
    if not rows:
        raise ImportRejected("The file is empty.")
    data_rows = rows[1:] if has_header else rows
    if not data_rows:
        raise ImportRejected("The file has no data rows.")
    columns = mapping.resolve(rows[0] if has_header else None)

    statement = BankStatement.objects.create(
        tenant=tenant,
        account_name=account_name[:255],
        file_name=file_name[:255],
        created_by=user,
    )

    staged: list[BankRow] = []
    seen: set[str] = set()
    errors: list[str] = []
    duplicate_count = 0
    for number, cells in enumerate(data_rows, start=1):
        try:
            row = _build_row(tenant, statement, cells, columns)
        except (ValueError, ArithmeticError) as exc:
            errors.append(f"Row {number}: {exc}")
            continue
        if row.hash in seen:
            duplicate_count += 1
            continue
        seen.add(row.hash)
        staged.append(row)

    known = _known_hashes(tenant, seen)
    fresh = [row for row in staged if row.hash not in known]
    duplicate_count += len(staged) - len(fresh)

    inserted = _insert_rows(fresh)
    duplicate_count += len(fresh) - inserted

    statement.row_count = inserted
    statement.save(update_fields=["row_count"])

    max_samples = getattr(settings, "BANK_IMPORT_MAX_ERROR_SAMPLES", MAX_ERROR_SAMPLES)
    result = ImportResult(
        statement_id=statement.pk,
        total_rows=len(data_rows),
        success_count=inserted,
        duplicate_count=duplicate_count,
        error_count=len(errors),
        errors=errors[:max_samples],
    )
    logger.info(
        "Bank statement %s imported for tenant %s: total=%s inserted=%s duplicates=%s errors=%s",
        statement.pk,
        tenant.pk,
        result.total_rows,
        result.success_count,
        result.duplicate_count,
        result.error_count,
    )
    if errors:
        logger.warning("Bank statement %s skipped %s unparsable rows", statement.pk, len(errors))
    return result
