"""
URL configuration for the Django application.

The `urlpatterns` list routes URLs to views. This is the root URL configuration
that includes all app-specific routes.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/auth/                  - Authentication endpoints
        token/                     - Obtain JWT pair (email + password)
        token/refresh/             - Refresh access token
        me/                        - Current user
    /api/v1/fees/                  - Fee ledger (students pay the college)
    /api/v1/salaries/              - Salary ledger (the college pays staff)
        set-due/                   - Set or replace one payer's due
        record-payment/            - Record one payment
        bulk-set-due/              - Set the same due for many payers
        bulk-record-payment/       - Record the same payment for many payers
        accounts/                  - List accounts (?status=)
        accounts/me/               - Caller's own account
        accounts/{payer_id}/       - One payer's account
        installments/{payer_id}/   - Installment history (?limit=&before=)

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check
from ledger import urls as ledger_urls
from ledger.models import LedgerKind

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    # Authentication (JWT)
    path("auth/", include("authentication.urls")),
    # Ledgers: same views, the kind is passed to every view
    path(
        "fees/",
        include((ledger_urls.urlpatterns, ledger_urls.app_name), namespace="fees"),
        {"kind": LedgerKind.FEE.value},
    ),
    path(
        "salaries/",
        include((ledger_urls.urlpatterns, ledger_urls.app_name), namespace="salaries"),
        {"kind": LedgerKind.SALARY.value},
    ),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "College Ledger Admin"
admin.site.site_title = "Ledger Admin"
admin.site.index_title = "Fees and Salaries"
