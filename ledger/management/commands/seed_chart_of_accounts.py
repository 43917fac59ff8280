"""
Seed the baseline chart of accounts and tax rates for a tenant.

USAGE:
    python manage.py seed_chart_of_accounts <tenant_id>

Idempotent: existing codes and tax rate names are left untouched.
"""
from django.core.management.base import BaseCommand, CommandError

from ledger.accounting_defaults import ensure_default_accounts
from ledger.models import Account, TaxRate, Tenant


class Command(BaseCommand):
    help = "Create the default accounts and tax rates for a tenant."

    def add_arguments(self, parser):
        parser.add_argument("tenant_id", type=int)

    def handle(self, *args, **options):
        try:
            tenant = Tenant.objects.get(pk=options["tenant_id"])
        except Tenant.DoesNotExist:
            raise CommandError(f"Tenant {options['tenant_id']} does not exist.")

        roles = ensure_default_accounts(tenant)
        account_count = Account.objects.filter(tenant=tenant).count()
        tax_rate_count = TaxRate.objects.filter(tenant=tenant).count()

        self.stdout.write(
            self.style.SUCCESS(
                f"Tenant '{tenant.name}': {account_count} accounts, {tax_rate_count} tax rates."
            )
        )
        for role, account in sorted(roles.items()):
            self.stdout.write(f"   • {role}: {account.code} {account.name}")
