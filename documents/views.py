from rest_framework.exceptions import NotFound
from rest_framework.response import Response

from ledger.api import TenantAPIView

from .models import Bill, ExpenseClaim, Invoice
from .serializers import StatusChangeSerializer, transition_payload
from .services import transition_document

DOCUMENT_MODELS = {
    "invoice": Invoice,
    "bill": Bill,
    "expense_claim": ExpenseClaim,
}


class DocumentStatusView(TenantAPIView):
    """POST {"status": "SENT", "payment_date": "2024-04-30"} to move a document."""

    def post(self, request, document_type, pk, *args, **kwargs):
        model = DOCUMENT_MODELS.get(document_type)
        if model is None:
            raise NotFound(f"Unknown document type: {document_type}")
        document = model.objects.get(tenant=self.tenant, pk=pk)

        serializer = StatusChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = transition_document(
            document,
            serializer.validated_data["status"],
            payment_date=serializer.validated_data.get("payment_date"),
            user=request.user,
        )
        return Response(transition_payload(document_type, result))
