from datetime import date
from decimal import Decimal

from banking.bank_import_services import ColumnMapping, import_bank_statement
from banking.models import BankStatement
from documents.models import Bill, Customer, Invoice, Vendor

DEFAULT_MAPPING = ColumnMapping(date=0, description=1, amount=2)

ACME_STATEMENT = "2024-01-10,Acme Corp payment,50000\n2024-01-11,Office rent,-80000\n"
ACME_INVOICE_DATE = date(2024, 1, 8)


def import_csv(tenant, content, mapping=DEFAULT_MAPPING, **kwargs):
    """Import ``content`` and return (result, statement)."""
    result = import_bank_statement(tenant, content=content, mapping=mapping, **kwargs)
    return result, BankStatement.objects.get(pk=result.statement_id)


def make_invoice(tenant, number, amount, issued_on, *, customer="Acme Corp", status=Invoice.Status.SENT, **extra):
    customer_obj, _ = Customer.objects.get_or_create(tenant=tenant, name=customer)
    return Invoice.objects.create(
        tenant=tenant,
        customer=customer_obj,
        invoice_number=number,
        issue_date=issued_on,
        total_amount=Decimal(amount),
        status=status,
        **extra,
    )


def make_bill(tenant, number, amount, billed_on, *, vendor="Paper Supply KK", status=Bill.Status.ISSUED, **extra):
    vendor_obj, _ = Vendor.objects.get_or_create(tenant=tenant, name=vendor)
    return Bill.objects.create(
        tenant=tenant,
        vendor=vendor_obj,
        bill_number=number,
        bill_date=billed_on,
        total_amount=Decimal(amount),
        status=status,
        **extra,
    )
