from django.urls import path

from .views import DocumentStatusView

urlpatterns = [
    path(
        "documents/<str:document_type>/<int:pk>/status/",
        DocumentStatusView.as_view(),
        name="document-status",
    ),
]
