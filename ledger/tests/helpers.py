from django.contrib.auth import get_user_model

from ledger.accounting_defaults import ensure_default_accounts
from ledger.models import Tenant
from ledger.posting import LineInput

User = get_user_model()


def make_tenant(username="owner", name=None):
    """Create a user, their tenant and the default chart; returns (user, tenant, role accounts)."""
    user = User.objects.create_user(username=username, password="testpass123")
    tenant = Tenant.objects.create(name=name or f"{username} books", owner_user=user)
    accounts = ensure_default_accounts(tenant)
    return user, tenant, accounts


def pair(debit_account, credit_account, amount, credit_amount=None):
    return [
        LineInput(account_id=debit_account.pk, debit=amount),
        LineInput(account_id=credit_account.pk, credit=amount if credit_amount is None else credit_amount),
    ]
