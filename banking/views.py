import logging

from rest_framework import status
from rest_framework.exceptions import NotFound
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response

from ledger.api import TenantAPIView, json_error
from ledger.features import LedgerFeatures

from .bank_import_services import decode_statement, import_bank_statement
from .matching import statement_candidates
from .models import BankStatement
from .reconciliation import confirm_match
from .serializers import (
    BankRowSerializer,
    BankStatementSerializer,
    ConfirmMatchSerializer,
    ImportRequestSerializer,
)

logger = logging.getLogger(__name__)

RECENT_STATEMENTS = 50


class BankFeatureMixin:
    """Bank import and reconciliation disappear entirely when the feature is switched off."""

    def initial(self, request, *args, **kwargs):
        if not LedgerFeatures.from_settings().bank_import_enabled:
            raise NotFound("Bank import is not enabled.")
        super().initial(request, *args, **kwargs)


class BankImportView(BankFeatureMixin, TenantAPIView):
    parser_classes = [MultiPartParser, FormParser]

    def get(self, request, *args, **kwargs):
        statement_id = request.query_params.get("statement_id")
        if statement_id:
            if not statement_id.isdigit():
                return json_error("statement_id must be an integer.")
            statement = BankStatement.objects.get(tenant=self.tenant, pk=int(statement_id))
            return Response({"statement": BankStatementSerializer(statement).data})
        statements = BankStatement.objects.filter(tenant=self.tenant)[:RECENT_STATEMENTS]
        return Response({"statements": BankStatementSerializer(statements, many=True).data})

    def post(self, request, *args, **kwargs):
        serializer = ImportRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        upload = serializer.validated_data["file"]

        result = import_bank_statement(
            self.tenant,
            content=decode_statement(upload.read()),
            mapping=serializer.mapping(),
            has_header=serializer.validated_data["has_header"],
            account_name=serializer.validated_data["account_name"],
            file_name=upload.name or "",
            user=request.user,
        )
        payload = {"success": True, **result.as_dict()}
        return Response(payload, status=status.HTTP_201_CREATED)


class ReconcileView(BankFeatureMixin, TenantAPIView):
    """Unmatched rows of one statement with their ranked candidates."""

    def get(self, request, *args, **kwargs):
        statement_id = request.query_params.get("statement_id")
        if not statement_id:
            return json_error("statement_id is required.")
        if not statement_id.isdigit():
            return json_error("statement_id must be an integer.")
        statement = BankStatement.objects.get(tenant=self.tenant, pk=int(statement_id))

        unmatched = []
        for entry in statement_candidates(statement):
            row = BankRowSerializer(entry.row).data
            row["matches"] = [candidate.as_dict() for candidate in entry.candidates]
            unmatched.append(row)
        return Response(
            {
                "statement": BankStatementSerializer(statement).data,
                "unmatched_rows": unmatched,
                "total_unmatched": len(unmatched),
            }
        )


class ReconcileConfirmView(BankFeatureMixin, TenantAPIView):
    parser_classes = [JSONParser, FormParser]

    def post(self, request, *args, **kwargs):
        serializer = ConfirmMatchSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        confirmation = confirm_match(
            self.tenant,
            data["bank_row_id"],
            data["target_type"],
            data["target_id"],
            user=request.user,
        )
        if confirmation.warnings:
            logger.warning(
                "Match for bank row %s confirmed with warnings: %s",
                confirmation.bank_row.pk,
                "; ".join(confirmation.warnings),
            )
        return Response(
            {
                "success": True,
                "bank_row": BankRowSerializer(confirmation.bank_row).data,
                "journal_id": confirmation.journal.pk if confirmation.journal else None,
                "warnings": confirmation.warnings,
            }
        )
