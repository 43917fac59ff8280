from django.utils.dateparse import parse_date
from rest_framework import status
from rest_framework.response import Response

from .api import TenantAPIView, json_error
from .periods import close_period, lock_period
from .posting import (
    approve_journal,
    create_journal,
    delete_journal,
    get_journal,
    list_journals,
    update_journal,
)
from .serializers import AccountingPeriodSerializer, JournalSerializer, JournalWriteSerializer


def _parse_bool(value):
    if value is None or value == "":
        return None
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


class JournalListCreateView(TenantAPIView):
    def get(self, request, *args, **kwargs):
        params = request.query_params
        date_from = params.get("date_from")
        date_to = params.get("date_to")
        try:
            parsed_from = parse_date(date_from) if date_from else None
            parsed_to = parse_date(date_to) if date_to else None
        except ValueError:
            parsed_from = parsed_to = None
        if (date_from and parsed_from is None) or (date_to and parsed_to is None):
            return json_error("Dates must use YYYY-MM-DD.", code="invalid_date")
        try:
            limit = min(max(int(params.get("limit", 100)), 1), 500)
        except ValueError:
            return json_error("limit must be an integer.", code="invalid_limit")
        period = params.get("period") or None
        if period is not None and not period.isdigit():
            return json_error("period must be an integer.", code="invalid_period")

        journals = list_journals(
            self.tenant,
            period_id=int(period) if period else None,
            date_from=parsed_from,
            date_to=parsed_to,
            source_type=params.get("source_type") or None,
            approved=_parse_bool(params.get("approved")),
            limit=limit,
        )
        return Response({"journals": JournalSerializer(journals, many=True).data})

    def post(self, request, *args, **kwargs):
        serializer = JournalWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        journal = create_journal(
            self.tenant,
            date=serializer.validated_data["date"],
            memo=serializer.validated_data.get("memo", ""),
            lines=serializer.line_inputs(),
            user=request.user,
        )
        journal = get_journal(self.tenant, journal.pk)
        return Response(JournalSerializer(journal).data, status=status.HTTP_201_CREATED)


class JournalDetailView(TenantAPIView):
    def get(self, request, pk, *args, **kwargs):
        return Response(JournalSerializer(get_journal(self.tenant, pk)).data)

    def put(self, request, pk, *args, **kwargs):
        serializer = JournalWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        update_journal(
            self.tenant,
            pk,
            date=serializer.validated_data["date"],
            memo=serializer.validated_data.get("memo", ""),
            lines=serializer.line_inputs(),
            user=request.user,
        )
        return Response(JournalSerializer(get_journal(self.tenant, pk)).data)

    def delete(self, request, pk, *args, **kwargs):
        delete_journal(self.tenant, pk, user=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)


class JournalApproveView(TenantAPIView):
    def post(self, request, pk, *args, **kwargs):
        journal = approve_journal(self.tenant, pk, user=request.user)
        return Response(JournalSerializer(get_journal(self.tenant, journal.pk)).data)


class PeriodCloseView(TenantAPIView):
    def post(self, request, pk, *args, **kwargs):
        period = close_period(self.tenant, pk)
        return Response(AccountingPeriodSerializer(period).data)


class PeriodLockView(TenantAPIView):
    def post(self, request, pk, *args, **kwargs):
        period = lock_period(self.tenant, pk)
        return Response(AccountingPeriodSerializer(period).data)
