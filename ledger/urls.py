from django.urls import path

from .views import (
    JournalApproveView,
    JournalDetailView,
    JournalListCreateView,
    PeriodCloseView,
    PeriodLockView,
)

urlpatterns = [
    path("journals/", JournalListCreateView.as_view(), name="ledger-journals"),
    path("journals/<int:pk>/", JournalDetailView.as_view(), name="ledger-journal-detail"),
    path("journals/<int:pk>/approve/", JournalApproveView.as_view(), name="ledger-journal-approve"),
    path("periods/<int:pk>/close/", PeriodCloseView.as_view(), name="ledger-period-close"),
    path("periods/<int:pk>/lock/", PeriodLockView.as_view(), name="ledger-period-lock"),
]
