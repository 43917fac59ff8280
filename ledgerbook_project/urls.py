from django.conf import settings
from django.contrib import admin
from django.urls import include, path


def _build_urlpatterns():
    patterns = [
        path("api/", include("ledger.urls")),
        path("api/", include("documents.urls")),
        path("api/bank/", include("banking.urls")),
    ]

    if settings.DEBUG:
        patterns.insert(0, path("admin/", admin.site.urls))

    return patterns


urlpatterns = _build_urlpatterns()
