from datetime import date
from decimal import Decimal

from django.test import TestCase

from ledger.exceptions import (
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
from ledger.models import AccountingPeriod, Journal, JournalLine, TaxRate
from ledger.periods import close_period, lock_period
from ledger.posting import (
    LineInput,
    approve_journal,
    create_journal,
    delete_journal,
    list_journals,
    update_journal,
)

from .helpers import make_tenant, pair


class CreateJournalTests(TestCase):
    def setUp(self):
        self.user, self.tenant, self.accounts = make_tenant()
        self.cash = self.accounts["cash"]
        self.revenue = self.accounts["revenue"]

    def test_balanced_journal_is_persisted_unapproved(self):
        journal = create_journal(
            self.tenant,
            date=date(2024, 4, 1),
            memo="Cash sale",
            lines=pair(self.cash, self.revenue, Decimal("1000")),
            user=self.user,
        )

        journal.refresh_from_db()
        self.assertFalse(journal.is_approved)
        self.assertEqual(journal.source_type, Journal.SourceType.MANUAL)
        self.assertEqual(journal.lines.count(), 2)
        total_debit, total_credit = journal.totals()
        self.assertEqual(total_debit, Decimal("1000"))
        self.assertEqual(total_credit, Decimal("1000"))
        self.assertEqual(journal.created_by, self.user)

    def test_unbalanced_journal_is_rejected_and_nothing_is_written(self):
        with self.assertRaises(UnbalancedJournal) as ctx:
            create_journal(
                self.tenant,
                date=date(2024, 4, 1),
                lines=pair(self.cash, self.revenue, Decimal("1000"), credit_amount=Decimal("900")),
            )

        self.assertIn("do not match", ctx.exception.reason)
        self.assertEqual(ctx.exception.code, "unbalanced")
        self.assertFalse(Journal.objects.exists())
        self.assertFalse(JournalLine.objects.exists())

    def test_zero_total_and_empty_journals_are_rejected(self):
        with self.assertRaises(EmptyJournal):
            create_journal(self.tenant, date=date(2024, 4, 1), lines=[])
        with self.assertRaises(InvalidJournalLine):
            create_journal(
                self.tenant,
                date=date(2024, 4, 1),
                lines=[
                    LineInput(account_id=self.cash.pk),
                    LineInput(account_id=self.revenue.pk),
                ],
            )
        self.assertFalse(Journal.objects.exists())

    def test_negative_and_two_sided_lines_are_rejected(self):
        with self.assertRaises(InvalidJournalLine):
            create_journal(
                self.tenant,
                date=date(2024, 4, 1),
                lines=[
                    LineInput(account_id=self.cash.pk, debit=Decimal("-10")),
                    LineInput(account_id=self.revenue.pk, credit=Decimal("-10")),
                ],
            )
        with self.assertRaises(InvalidJournalLine):
            create_journal(
                self.tenant,
                date=date(2024, 4, 1),
                lines=[
                    LineInput(account_id=self.cash.pk, debit=Decimal("10"), credit=Decimal("10")),
                    LineInput(account_id=self.revenue.pk, credit=Decimal("10"), debit=Decimal("10")),
                ],
            )

    def test_accounts_must_belong_to_tenant_and_be_active(self):
        _other_user, _other_tenant, other_accounts = make_tenant("other")
        with self.assertRaises(UnknownAccount):
            create_journal(
                self.tenant,
                date=date(2024, 4, 1),
                lines=pair(other_accounts["cash"], self.revenue, Decimal("50")),
            )

        self.cash.deactivate()
        with self.assertRaises(InactiveAccount):
            create_journal(
                self.tenant,
                date=date(2024, 4, 1),
                lines=pair(self.cash, self.revenue, Decimal("50")),
            )

    def test_tax_rate_must_be_effective_on_journal_date(self):
        rate = TaxRate.objects.get(tenant=self.tenant, name="Standard 10%")
        lines = [
            LineInput(account_id=self.cash.pk, debit=Decimal("110")),
            LineInput(account_id=self.revenue.pk, credit=Decimal("110"), tax_rate_id=rate.pk),
        ]
        with self.assertRaises(InvalidTaxRate):
            create_journal(self.tenant, date=date(2019, 9, 30), lines=lines)

        journal = create_journal(self.tenant, date=date(2019, 10, 1), lines=lines)
        self.assertEqual(journal.lines.get(line_number=2).tax_rate, rate)

    def test_period_is_resolved_from_the_date(self):
        period = AccountingPeriod.objects.create(
            tenant=self.tenant, name="FY2024 Q1", start_date=date(2024, 4, 1), end_date=date(2024, 6, 30)
        )
        journal = create_journal(
            self.tenant, date=date(2024, 5, 10), lines=pair(self.cash, self.revenue, Decimal("5"))
        )
        self.assertEqual(journal.period, period)

    def test_locked_period_rejects_postings_but_closed_period_accepts_them(self):
        period = AccountingPeriod.objects.create(
            tenant=self.tenant, name="April", start_date=date(2024, 4, 1), end_date=date(2024, 4, 30)
        )
        close_period(self.tenant, period.pk)
        create_journal(self.tenant, date=date(2024, 4, 15), lines=pair(self.cash, self.revenue, Decimal("5")))

        lock_period(self.tenant, period.pk)
        with self.assertRaises(PeriodLocked):
            create_journal(
                self.tenant, date=date(2024, 4, 20), lines=pair(self.cash, self.revenue, Decimal("5"))
            )
        self.assertEqual(Journal.objects.count(), 1)

        # dates outside the locked window still post
        create_journal(self.tenant, date=date(2024, 5, 1), lines=pair(self.cash, self.revenue, Decimal("5")))
        self.assertEqual(Journal.objects.count(), 2)

    def test_locked_month_inside_open_quarter_still_blocks(self):
        quarter = AccountingPeriod.objects.create(
            tenant=self.tenant, name="FY2024 Q1", start_date=date(2024, 4, 1), end_date=date(2024, 6, 30)
        )
        month = AccountingPeriod.objects.create(
            tenant=self.tenant, name="April", start_date=date(2024, 4, 1), end_date=date(2024, 4, 30)
        )
        close_period(self.tenant, month.pk)
        lock_period(self.tenant, month.pk)

        with self.assertRaises(PeriodLocked):
            create_journal(
                self.tenant, date=date(2024, 4, 20), lines=pair(self.cash, self.revenue, Decimal("5"))
            )
        journal = create_journal(
            self.tenant, date=date(2024, 5, 10), lines=pair(self.cash, self.revenue, Decimal("5"))
        )
        self.assertEqual(journal.period, quarter)

    def test_non_finite_amount_is_rejected(self):
        with self.assertRaises(InvalidJournalLine):
            create_journal(
                self.tenant,
                date=date(2024, 4, 1),
                lines=pair(self.cash, self.revenue, Decimal("NaN")),
            )
        self.assertFalse(Journal.objects.exists())


class UpdateAndDeleteJournalTests(TestCase):
    def setUp(self):
        self.user, self.tenant, self.accounts = make_tenant()
        self.cash = self.accounts["cash"]
        self.revenue = self.accounts["revenue"]
        self.expense = self.accounts["expense"]
        self.journal = create_journal(
            self.tenant,
            date=date(2024, 4, 1),
            memo="Original",
            lines=pair(self.cash, self.revenue, Decimal("1000")),
        )

    def test_update_replaces_the_whole_line_set(self):
        update_journal(
            self.tenant,
            self.journal.pk,
            date=date(2024, 4, 2),
            memo="Corrected",
            lines=[
                LineInput(account_id=self.expense.pk, debit=Decimal("300")),
                LineInput(account_id=self.expense.pk, debit=Decimal("200")),
                LineInput(account_id=self.cash.pk, credit=Decimal("500")),
            ],
        )

        self.journal.refresh_from_db()
        self.assertEqual(self.journal.memo, "Corrected")
        self.assertEqual(self.journal.date, date(2024, 4, 2))
        self.assertEqual(self.journal.lines.count(), 3)
        self.assertEqual(self.journal.totals(), (Decimal("500"), Decimal("500")))

    def test_rejected_update_keeps_previous_lines(self):
        with self.assertRaises(UnbalancedJournal):
            update_journal(
                self.tenant,
                self.journal.pk,
                date=date(2024, 4, 1),
                lines=pair(self.cash, self.revenue, Decimal("1000"), credit_amount=Decimal("900")),
            )
        self.journal.refresh_from_db()
        self.assertEqual(self.journal.memo, "Original")
        self.assertEqual(self.journal.totals(), (Decimal("1000"), Decimal("1000")))

    def test_approved_journal_cannot_be_deleted(self):
        approve_journal(self.tenant, self.journal.pk, user=self.user)

        with self.assertRaises(AlreadyApproved):
            delete_journal(self.tenant, self.journal.pk)
        with self.assertRaises(AlreadyApproved):
            update_journal(
                self.tenant,
                self.journal.pk,
                date=date(2024, 4, 1),
                lines=pair(self.cash, self.revenue, Decimal("1")),
            )
        self.assertTrue(Journal.objects.filter(pk=self.journal.pk).exists())
        self.assertEqual(self.journal.lines.count(), 2)

    def test_derived_journal_is_not_manually_editable(self):
        derived = create_journal(
            self.tenant,
            date=date(2024, 4, 1),
            lines=pair(self.accounts["receivable"], self.revenue, Decimal("10")),
            source_type=Journal.SourceType.INVOICE,
            source_id=7,
            source_event="invoice.sent",
        )
        with self.assertRaises(JournalNotEditable):
            update_journal(
                self.tenant, derived.pk, date=date(2024, 4, 1), lines=pair(self.cash, self.revenue, Decimal("1"))
            )
        with self.assertRaises(JournalNotEditable):
            delete_journal(self.tenant, derived.pk)
        self.assertTrue(Journal.objects.filter(pk=derived.pk).exists())

    def test_delete_removes_journal_and_lines(self):
        delete_journal(self.tenant, self.journal.pk)
        self.assertFalse(Journal.objects.filter(pk=self.journal.pk).exists())
        self.assertFalse(JournalLine.objects.filter(journal_id=self.journal.pk).exists())

    def test_journal_in_locked_period_cannot_be_changed_or_moved_there(self):
        period = AccountingPeriod.objects.create(
            tenant=self.tenant, name="April", start_date=date(2024, 4, 1), end_date=date(2024, 4, 30)
        )
        close_period(self.tenant, period.pk)
        lock_period(self.tenant, period.pk)

        with self.assertRaises(PeriodLocked):
            delete_journal(self.tenant, self.journal.pk)
        with self.assertRaises(PeriodLocked):
            update_journal(
                self.tenant, self.journal.pk, date=date(2024, 5, 1), lines=pair(self.cash, self.revenue, Decimal("1"))
            )

        other = create_journal(self.tenant, date=date(2024, 5, 1), lines=pair(self.cash, self.revenue, Decimal("1")))
        with self.assertRaises(PeriodLocked):
            update_journal(
                self.tenant, other.pk, date=date(2024, 4, 5), lines=pair(self.cash, self.revenue, Decimal("1"))
            )

    def test_other_tenant_cannot_touch_journal(self):
        _user, other_tenant, _accounts = make_tenant("intruder")
        with self.assertRaises(Journal.DoesNotExist):
            delete_journal(other_tenant, self.journal.pk)


class ApproveJournalTests(TestCase):
    def setUp(self):
        self.user, self.tenant, self.accounts = make_tenant()
        self.journal = create_journal(
            self.tenant,
            date=date(2024, 4, 1),
            lines=pair(self.accounts["cash"], self.accounts["revenue"], Decimal("100")),
        )

    def test_approve_sets_flag_and_audit_fields(self):
        journal = approve_journal(self.tenant, self.journal.pk, user=self.user)
        self.assertTrue(journal.is_approved)
        self.assertEqual(journal.approved_by, self.user)
        self.assertIsNotNone(journal.approved_at)

    def test_second_approve_is_a_conflict(self):
        approve_journal(self.tenant, self.journal.pk, user=self.user)
        with self.assertRaises(AlreadyApproved) as ctx:
            approve_journal(self.tenant, self.journal.pk, user=self.user)
        self.assertTrue(ctx.exception.conflict)

    def test_list_filters_by_approval(self):
        other = create_journal(
            self.tenant,
            date=date(2024, 4, 2),
            lines=pair(self.accounts["cash"], self.accounts["revenue"], Decimal("5")),
        )
        approve_journal(self.tenant, self.journal.pk)

        self.assertEqual([j.pk for j in list_journals(self.tenant, approved=True)], [self.journal.pk])
        self.assertEqual([j.pk for j in list_journals(self.tenant, approved=False)], [other.pk])
        self.assertEqual(len(list_journals(self.tenant, date_from=date(2024, 4, 2))), 1)
