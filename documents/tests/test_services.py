from datetime import date
from decimal import Decimal

from django.test import TestCase

from documents.models import Bill, Customer, ExpenseClaim, ExpenseClaimItem, Invoice, Vendor
from documents.services import (
    apply_payment,
    transition_bill,
    transition_expense_claim,
    transition_invoice,
)
from ledger.exceptions import InvalidTransition, TargetNotOpen
from ledger.features import LedgerFeatures
from ledger.models import Journal
from ledger.tests.helpers import make_tenant


class InvoiceTransitionTests(TestCase):
    def setUp(self):
        self.user, self.tenant, self.accounts = make_tenant()
        self.customer = Customer.objects.create(tenant=self.tenant, name="Acme Corp")
        self.invoice = Invoice.objects.create(
            tenant=self.tenant,
            customer=self.customer,
            invoice_number="INV-001",
            issue_date=date(2024, 4, 1),
            total_amount=Decimal("50000"),
            status=Invoice.Status.PENDING,
        )
        self.features = LedgerFeatures()

    def test_sending_twice_yields_one_journal(self):
        first = transition_invoice(self.invoice, Invoice.Status.SENT, features=self.features)
        second = transition_invoice(self.invoice, Invoice.Status.SENT, features=self.features)

        self.assertTrue(first.changed)
        self.assertIsNotNone(first.journal)
        self.assertFalse(second.changed)
        self.assertIsNone(second.journal)
        journals = Journal.objects.filter(source_type=Journal.SourceType.INVOICE, source_id=self.invoice.pk)
        self.assertEqual(journals.count(), 1)

        journal = journals.get()
        self.assertEqual(journal.memo, "Invoice sent: INV-001")
        self.assertEqual(journal.date, date(2024, 4, 1))
        receivable_line = journal.lines.get(account=self.accounts["receivable"])
        revenue_line = journal.lines.get(account=self.accounts["revenue"])
        self.assertEqual(receivable_line.debit, Decimal("50000"))
        self.assertEqual(revenue_line.credit, Decimal("50000"))

    def test_stale_instance_does_not_fire_template_again(self):
        stale = Invoice.objects.get(pk=self.invoice.pk)
        transition_invoice(self.invoice, Invoice.Status.SENT, features=self.features)

        # stale copy still believes the invoice is PENDING
        result = transition_invoice(stale, Invoice.Status.SENT, features=self.features)

        self.assertFalse(result.changed)
        self.assertEqual(Journal.objects.count(), 1)

    def test_paid_posts_cash_against_receivable(self):
        transition_invoice(self.invoice, Invoice.Status.SENT, features=self.features)
        result = transition_invoice(
            self.invoice, Invoice.Status.PAID, payment_date=date(2024, 4, 25), features=self.features
        )

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.amount_paid, Decimal("50000"))
        self.assertEqual(self.invoice.payment_date, date(2024, 4, 25))
        self.assertEqual(result.journal.source_event, "invoice.paid")
        self.assertEqual(result.journal.date, date(2024, 4, 25))
        self.assertEqual(result.journal.lines.get(account=self.accounts["cash"]).debit, Decimal("50000"))

    def test_illegal_transition_is_rejected(self):
        with self.assertRaises(InvalidTransition):
            transition_invoice(self.invoice, Invoice.Status.PAID, features=self.features)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, Invoice.Status.PENDING)

    def test_generation_failure_keeps_transition(self):
        self.accounts["receivable"].deactivate()

        result = transition_invoice(self.invoice, Invoice.Status.SENT, features=self.features)

        self.assertTrue(result.changed)
        self.assertIsNone(result.journal)
        self.assertEqual(len(result.warnings), 1)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, Invoice.Status.SENT)
        self.assertFalse(Journal.objects.exists())

    def test_accounting_disabled_changes_status_only(self):
        result = transition_invoice(
            self.invoice, Invoice.Status.SENT, features=LedgerFeatures(accounting_enabled=False)
        )
        self.assertTrue(result.changed)
        self.assertIsNone(result.journal)
        self.assertFalse(Journal.objects.exists())


class PaymentTests(TestCase):
    def setUp(self):
        self.user, self.tenant, self.accounts = make_tenant()
        customer = Customer.objects.create(tenant=self.tenant, name="Acme Corp")
        self.invoice = Invoice.objects.create(
            tenant=self.tenant,
            customer=customer,
            invoice_number="INV-002",
            issue_date=date(2024, 4, 1),
            total_amount=Decimal("30000"),
            status=Invoice.Status.SENT,
        )
        self.features = LedgerFeatures()

    def test_partial_then_full_payment(self):
        partial = apply_payment(self.invoice, Decimal("10000"), date(2024, 4, 10), features=self.features)
        self.assertEqual(partial.new_status, Invoice.Status.PARTIAL)
        self.assertIsNone(partial.journal)

        invoice = Invoice.objects.get(pk=self.invoice.pk)
        self.assertEqual(invoice.amount_paid, Decimal("10000"))
        self.assertEqual(invoice.balance, Decimal("20000"))

        full = apply_payment(invoice, Decimal("20000"), date(2024, 4, 20), features=self.features)
        self.assertEqual(full.new_status, Invoice.Status.PAID)
        self.assertEqual(full.journal.source_event, "invoice.paid")
        self.assertEqual(full.journal.totals(), (Decimal("20000"), Decimal("20000")))

    def test_overpayment_is_rejected(self):
        with self.assertRaises(TargetNotOpen):
            apply_payment(self.invoice, Decimal("30000.01"), date(2024, 4, 10), features=self.features)

    def test_draft_invoice_does_not_accept_payments(self):
        Invoice.objects.filter(pk=self.invoice.pk).update(status=Invoice.Status.DRAFT)
        with self.assertRaises(TargetNotOpen):
            apply_payment(self.invoice, Decimal("100"), date(2024, 4, 10), features=self.features)


class BillAndClaimTransitionTests(TestCase):
    def setUp(self):
        self.user, self.tenant, self.accounts = make_tenant()
        self.features = LedgerFeatures()

    def test_bill_issue_and_payment(self):
        vendor = Vendor.objects.create(tenant=self.tenant, name="Paper Supply KK")
        bill = Bill.objects.create(
            tenant=self.tenant,
            vendor=vendor,
            bill_number="B-100",
            bill_date=date(2024, 4, 2),
            total_amount=Decimal("12000"),
        )

        issued = transition_bill(bill, Bill.Status.ISSUED, features=self.features)
        paid = transition_bill(bill, Bill.Status.PAID, payment_date=date(2024, 4, 30), features=self.features)

        self.assertEqual(issued.journal.lines.get(account=self.accounts["expense"]).debit, Decimal("12000"))
        self.assertEqual(issued.journal.lines.get(account=self.accounts["payable"]).credit, Decimal("12000"))
        self.assertEqual(paid.journal.lines.get(account=self.accounts["payable"]).debit, Decimal("12000"))
        self.assertEqual(paid.journal.lines.get(account=self.accounts["cash"]).credit, Decimal("12000"))

    def _claim(self):
        claim = ExpenseClaim.objects.create(
            tenant=self.tenant,
            employee=self.user,
            title="Tokyo trip",
            status=ExpenseClaim.Status.APPROVED,
        )
        ExpenseClaimItem.objects.create(
            claim=claim, spent_on=date(2024, 4, 3), merchant="JR East", amount=Decimal("1500")
        )
        ExpenseClaimItem.objects.create(
            claim=claim, spent_on=date(2024, 4, 4), merchant="Hotel", amount=Decimal("8000")
        )
        return claim

    def test_expense_claim_reimbursement_credits_cash(self):
        claim = self._claim()

        result = transition_expense_claim(
            claim, ExpenseClaim.Status.REIMBURSED, reimbursed_on=date(2024, 4, 12), features=self.features
        )

        journal = result.journal
        self.assertEqual(journal.source_type, Journal.SourceType.EXPENSE)
        self.assertEqual(journal.date, date(2024, 4, 12))
        self.assertEqual(journal.lines.get(account=self.accounts["expense"]).debit, Decimal("9500"))
        self.assertEqual(journal.lines.get(account=self.accounts["cash"]).credit, Decimal("9500"))

    def test_expense_claim_must_be_approved_first(self):
        claim = self._claim()
        ExpenseClaim.objects.filter(pk=claim.pk).update(status=ExpenseClaim.Status.SUBMITTED)
        claim.refresh_from_db()

        with self.assertRaises(InvalidTransition):
            transition_expense_claim(claim, ExpenseClaim.Status.REIMBURSED, features=self.features)

    def test_expense_journals_switched_off(self):
        claim = self._claim()
        result = transition_expense_claim(
            claim,
            ExpenseClaim.Status.REIMBURSED,
            features=LedgerFeatures(expense_journals_enabled=False),
        )
        self.assertTrue(result.changed)
        self.assertIsNone(result.journal)
