from django.core.exceptions import ObjectDoesNotExist
from rest_framework import permissions, status
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework.response import Response
from rest_framework.views import APIView

from .exceptions import LedgerError
from .utils import get_current_tenant


def json_error(message: str, status_code: int = status.HTTP_400_BAD_REQUEST, code: str | None = None) -> Response:
    payload = {"detail": message, "error": message}
    if code:
        payload["code"] = code
    return Response(payload, status=status_code)


def ledger_error_response(exc: LedgerError) -> Response:
    """Validation failures are 400, state conflicts are 409."""
    status_code = status.HTTP_409_CONFLICT if exc.conflict else status.HTTP_400_BAD_REQUEST
    return json_error(exc.reason, status_code, getattr(exc, "code", None))


class TenantAPIView(APIView):
    """APIView scoped to the requesting user's tenant, available as ``self.tenant``."""

    permission_classes = [permissions.IsAuthenticated]

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        self.tenant = get_current_tenant(request.user)
        if self.tenant is None:
            raise PermissionDenied("No tenant is set up for this user.")

    def handle_exception(self, exc):
        if isinstance(exc, LedgerError):
            return ledger_error_response(exc)
        if isinstance(exc, ObjectDoesNotExist):
            exc = NotFound(str(exc) or "Not found.")
        return super().handle_exception(exc)
