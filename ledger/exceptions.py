"""
Typed rejection reasons for the bookkeeping core.

Every error is a django ``ValidationError`` so callers that already catch
``ValidationError`` keep working; ``code`` is the stable machine reason and
``conflict`` marks state-conflict signals (retrying will never succeed) as
opposed to plain validation failures.
"""

from django.core.exceptions import ValidationError


class LedgerError(ValidationError):
    default_message = "The operation was rejected."
    default_code = "rejected"
    conflict = False

    def __init__(self, message=None, *, code=None, params=None):
        super().__init__(message or self.default_message, code=code or self.default_code, params=params)

    @property
    def reason(self) -> str:
        return self.messages[0] if self.messages else self.default_message


# --- validation errors -----------------------------------------------------

class UnbalancedJournal(LedgerError):
    default_message = "Journal is unbalanced: total debits must equal total credits."
    default_code = "unbalanced"


class EmptyJournal(LedgerError):
    default_message = "Journal has no value: total debits and credits are zero."
    default_code = "zero_total"


class InvalidJournalLine(LedgerError):
    default_message = "Journal line is invalid."
    default_code = "invalid_line"


class UnknownAccount(LedgerError):
    default_message = "Account does not exist for this tenant."
    default_code = "unknown_account"


class InactiveAccount(LedgerError):
    default_message = "Account is inactive."
    default_code = "inactive_account"


class InvalidTaxRate(LedgerError):
    default_message = "Tax rate is unknown or not effective on the journal date."
    default_code = "invalid_tax_rate"


class PeriodLocked(LedgerError):
    default_message = "The accounting period for this date is locked."
    default_code = "period_locked"


class MissingAccount(LedgerError):
    default_message = "A required posting account is not configured."
    default_code = "missing_account"


class ImportRejected(LedgerError):
    default_message = "The bank statement could not be imported."
    default_code = "import_rejected"


class DirectionMismatch(LedgerError):
    default_message = "Invoices match deposits only and bills match withdrawals only."
    default_code = "direction_mismatch"


# --- state conflicts -------------------------------------------------------

class JournalNotEditable(LedgerError):
    default_message = "Only unapproved manual journals can be edited or deleted."
    default_code = "not_manual"
    conflict = True


class AlreadyApproved(LedgerError):
    default_message = "Journal is already approved."
    default_code = "already_approved"
    conflict = True


class PeriodStateConflict(LedgerError):
    default_message = "The accounting period is not in a state that allows this change."
    default_code = "period_state_conflict"
    conflict = True


class InvalidTransition(LedgerError):
    default_message = "This status change is not allowed."
    default_code = "invalid_transition"
    conflict = True


class AlreadyMatched(LedgerError):
    default_message = "This bank transaction is already matched."
    default_code = "already_matched"
    conflict = True


class TargetNotOpen(LedgerError):
    default_message = "The target document is not open for settlement."
    default_code = "target_not_open"
    conflict = True
