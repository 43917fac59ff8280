from datetime import date
from decimal import Decimal

from django.test import TestCase
from rest_framework.test import APIClient

from ledger.models import AccountingPeriod, Journal
from ledger.posting import create_journal

from .helpers import make_tenant, pair


class JournalApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user, self.tenant, self.accounts = make_tenant()
        self.client.force_authenticate(user=self.user)

    def _payload(self, debit="1000", credit="1000"):
        return {
            "date": "2024-04-01",
            "memo": "Office supplies",
            "lines": [
                {"account_id": self.accounts["expense"].pk, "debit": debit},
                {"account_id": self.accounts["cash"].pk, "credit": credit},
            ],
        }

    def test_create_and_fetch_journal(self):
        resp = self.client.post("/api/journals/", self._payload(), format="json")
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertEqual(body["memo"], "Office supplies")
        self.assertEqual(body["source_type"], "manual")
        self.assertFalse(body["is_approved"])
        self.assertEqual(len(body["lines"]), 2)
        self.assertEqual(Decimal(body["total_debit"]), Decimal("1000"))

        detail = self.client.get(f"/api/journals/{body['id']}/")
        self.assertEqual(detail.status_code, 200)
        self.assertEqual(detail.json()["lines"][0]["account_code"], "5100")

        listing = self.client.get("/api/journals/")
        self.assertEqual(len(listing.json()["journals"]), 1)

    def test_unbalanced_journal_is_400_with_reason(self):
        resp = self.client.post("/api/journals/", self._payload(credit="900"), format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "unbalanced")
        self.assertFalse(Journal.objects.exists())

    def test_update_and_delete_manual_journal(self):
        journal = create_journal(
            self.tenant, date=date(2024, 4, 1), lines=pair(self.accounts["cash"], self.accounts["revenue"], Decimal("10"))
        )
        resp = self.client.put(f"/api/journals/{journal.pk}/", self._payload("20", "20"), format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(Decimal(resp.json()["total_credit"]), Decimal("20"))

        resp = self.client.delete(f"/api/journals/{journal.pk}/")
        self.assertEqual(resp.status_code, 204)
        self.assertFalse(Journal.objects.filter(pk=journal.pk).exists())

    def test_approve_twice_is_409(self):
        journal = create_journal(
            self.tenant, date=date(2024, 4, 1), lines=pair(self.accounts["cash"], self.accounts["revenue"], Decimal("10"))
        )
        first = self.client.post(f"/api/journals/{journal.pk}/approve/")
        second = self.client.post(f"/api/journals/{journal.pk}/approve/")

        self.assertEqual(first.status_code, 200)
        self.assertTrue(first.json()["is_approved"])
        self.assertEqual(second.status_code, 409)
        self.assertEqual(second.json()["code"], "already_approved")

        delete = self.client.delete(f"/api/journals/{journal.pk}/")
        self.assertEqual(delete.status_code, 409)

    def test_other_tenant_journal_is_404(self):
        other_user, other_tenant, other_accounts = make_tenant("other")
        journal = create_journal(
            other_tenant, date=date(2024, 4, 1), lines=pair(other_accounts["cash"], other_accounts["revenue"], Decimal("10"))
        )
        resp = self.client.get(f"/api/journals/{journal.pk}/")
        self.assertEqual(resp.status_code, 404)

    def test_period_close_and_lock(self):
        period = AccountingPeriod.objects.create(
            tenant=self.tenant, name="2024-04", start_date=date(2024, 4, 1), end_date=date(2024, 4, 30)
        )
        early_lock = self.client.post(f"/api/periods/{period.pk}/lock/")
        self.assertEqual(early_lock.status_code, 409)

        self.assertEqual(self.client.post(f"/api/periods/{period.pk}/close/").json()["status"], "CLOSED")
        self.assertEqual(self.client.post(f"/api/periods/{period.pk}/lock/").json()["status"], "LOCKED")

        resp = self.client.post("/api/journals/", self._payload(), format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "period_locked")

    def test_bad_list_filters_are_400(self):
        for params in ({"period": "april"}, {"date_from": "2024-13-45"}, {"limit": "many"}):
            with self.subTest(params=params):
                resp = self.client.get("/api/journals/", params)
                self.assertEqual(resp.status_code, 400)

    def test_list_filters_by_period(self):
        period = AccountingPeriod.objects.create(
            tenant=self.tenant, name="2024-04", start_date=date(2024, 4, 1), end_date=date(2024, 4, 30)
        )
        self.client.post("/api/journals/", self._payload(), format="json")

        resp = self.client.get("/api/journals/", {"period": str(period.pk)})

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.json()["journals"]), 1)

    def test_user_without_tenant_is_rejected(self):
        from django.contrib.auth import get_user_model

        loner = get_user_model().objects.create_user(username="loner", password="x")
        self.client.force_authenticate(user=loner)
        self.assertEqual(self.client.get("/api/journals/").status_code, 403)
