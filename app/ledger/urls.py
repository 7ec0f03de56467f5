"""
URL configuration for the ledger app.

The same routes serve both ledgers. config/urls.py includes them twice,
once per ledger, passing the ledger kind to every view:

    path("fees/", include((urlpatterns, "ledger"), namespace="fees"), {"kind": "fee"})
    path("salaries/", include(..., namespace="salaries"), {"kind": "salary"})

Routes:
    - POST set-due/
    - POST record-payment/
    - POST bulk-set-due/
    - POST bulk-record-payment/
    - GET  accounts/
    - GET  accounts/me/
    - GET  accounts/<payer_id>/
    - GET  installments/<payer_id>/

Reverse with the ledger namespace, e.g. ``reverse("salaries:account-list")``.
"""

from django.urls import path

from ledger import views

app_name = "ledger"

urlpatterns = [
    path("set-due/", views.SetDueView.as_view(), name="set-due"),
    path("record-payment/", views.RecordPaymentView.as_view(), name="record-payment"),
    path("bulk-set-due/", views.BulkSetDueView.as_view(), name="bulk-set-due"),
    path(
        "bulk-record-payment/",
        views.BulkRecordPaymentView.as_view(),
        name="bulk-record-payment",
    ),
    path("accounts/", views.AccountListView.as_view(), name="account-list"),
    path("accounts/me/", views.MyAccountView.as_view(), name="account-me"),
    path(
        "accounts/<uuid:payer_id>/",
        views.AccountDetailView.as_view(),
        name="account-detail",
    ),
    path(
        "installments/<uuid:payer_id>/",
        views.InstallmentListView.as_view(),
        name="installment-list",
    ),
]
