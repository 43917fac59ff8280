from dataclasses import dataclass

from django.conf import settings


@dataclass(frozen=True)
class LedgerFeatures:
    """Capability flags handed to the journal generator and the bank views."""

    accounting_enabled: bool = True
    expense_journals_enabled: bool = True
    bank_import_enabled: bool = True

    @classmethod
    def from_settings(cls) -> "LedgerFeatures":
        flags = getattr(settings, "LEDGER_FEATURES", {}) or {}
        return cls(
            accounting_enabled=bool(flags.get("accounting", True)),
            expense_journals_enabled=bool(flags.get("expense_journals", True)),
            bank_import_enabled=bool(flags.get("bank_import", True)),
        )
