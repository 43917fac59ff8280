from django.urls import path

from .views import BankImportView, ReconcileConfirmView, ReconcileView

urlpatterns = [
    path("import/", BankImportView.as_view(), name="bank-import"),
    path("reconcile/", ReconcileView.as_view(), name="bank-reconcile"),
    path("reconcile/confirm/", ReconcileConfirmView.as_view(), name="bank-reconcile-confirm"),
]
