import logging

from django.db import transaction
from django.utils import timezone

from .exceptions import PeriodStateConflict
from .models import AccountingPeriod

logger = logging.getLogger(__name__)


def covering_periods(tenant, on_date):
    """Periods whose range includes ``on_date``, latest start first."""
    return AccountingPeriod.objects.filter(
        tenant=tenant, start_date__lte=on_date, end_date__gte=on_date
    ).order_by("-start_date")


def find_period(tenant, on_date):
    return covering_periods(tenant, on_date).first()


@transaction.atomic
def close_period(tenant, period_id) -> AccountingPeriod:
    """OPEN -> CLOSED. Closing twice is a conflict, not a second close."""
    updated = AccountingPeriod.objects.filter(
        tenant=tenant,
        pk=period_id,
        status=AccountingPeriod.Status.OPEN,
    ).update(status=AccountingPeriod.Status.CLOSED, closed_at=timezone.now())
    period = AccountingPeriod.objects.get(tenant=tenant, pk=period_id)
    if not updated:
        raise PeriodStateConflict(f"Period {period.name} is already {period.get_status_display().lower()}.")
    logger.info("Accounting period %s closed for tenant %s", period.pk, tenant.pk)
    return period


@transaction.atomic
def lock_period(tenant, period_id) -> AccountingPeriod:
    """CLOSED -> LOCKED. Locking is one-way; journals dated inside become immutable."""
    updated = AccountingPeriod.objects.filter(
        tenant=tenant,
        pk=period_id,
        status=AccountingPeriod.Status.CLOSED,
    ).update(status=AccountingPeriod.Status.LOCKED, locked_at=timezone.now())
    period = AccountingPeriod.objects.get(tenant=tenant, pk=period_id)
    if not updated:
        if period.status == AccountingPeriod.Status.LOCKED:
            raise PeriodStateConflict(f"Period {period.name} is already locked.")
        raise PeriodStateConflict(f"Period {period.name} must be closed before it can be locked.")
    logger.info("Accounting period %s locked for tenant %s", period.pk, tenant.pk)
    return period
