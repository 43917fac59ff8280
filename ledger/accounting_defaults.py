from datetime import date
from decimal import Decimal

from django.conf import settings
from django.db import transaction

from .models import Account, TaxRate

# (role, code, name, type); role keys match settings.LEDGER_ACCOUNT_CODES.
DEFAULT_ACCOUNTS = [
    ("cash", "1101", "Cash and Bank", Account.AccountType.ASSET),
    ("receivable", "1110", "Accounts Receivable", Account.AccountType.ASSET),
    (None, "1300", "Tax Receivable", Account.AccountType.ASSET),
    ("payable", "2110", "Accounts Payable", Account.AccountType.LIABILITY),
    (None, "2200", "Consumption Tax Payable", Account.AccountType.LIABILITY),
    (None, "3100", "Capital", Account.AccountType.EQUITY),
    ("revenue", "4100", "Sales", Account.AccountType.REVENUE),
    ("expense", "5100", "Operating Expenses", Account.AccountType.EXPENSE),
]

DEFAULT_TAX_RATES = [
    ("Standard 10%", Decimal("10.00"), TaxRate.Category.STANDARD),
    ("Reduced 8%", Decimal("8.00"), TaxRate.Category.REDUCED),
    ("Exempt", Decimal("0.00"), TaxRate.Category.EXEMPT),
    ("Non-taxable", Decimal("0.00"), TaxRate.Category.NON_TAXABLE),
]

DEFAULT_TAX_RATES_FROM = date(2019, 10, 1)


def configured_account_codes() -> dict:
    codes = {role: code for role, code, _name, _type in DEFAULT_ACCOUNTS if role}
    codes.update(getattr(settings, "LEDGER_ACCOUNT_CODES", {}) or {})
    return codes


@transaction.atomic
def ensure_default_accounts(tenant):
    """Ensure the baseline chart of accounts exists for a tenant and return a role mapping."""
    codes = configured_account_codes()
    accounts = {}
    for order, (role, code, name, type_) in enumerate(DEFAULT_ACCOUNTS):
        code = codes.get(role, code) if role else code
        acc, _ = Account.objects.get_or_create(
            tenant=tenant,
            code=code,
            defaults={
                "name": name,
                "type": type_,
                "sort_order": order,
            },
        )
        if role:
            accounts[role] = acc

    for name, rate, category in DEFAULT_TAX_RATES:
        TaxRate.objects.get_or_create(
            tenant=tenant,
            name=name,
            defaults={
                "rate": rate,
                "category": category,
                "applies_from": DEFAULT_TAX_RATES_FROM,
            },
        )
    return accounts
