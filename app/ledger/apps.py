"""
Ledger app configuration.

This app provides the fee and salary ledgers:
- Accounts with derived payment status
- Append-only installment history
- Bulk dues and payments across many payers
"""

from django.apps import AppConfig


class LedgerConfig(AppConfig):
    """Configuration for the ledger application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "ledger"
    verbose_name = "Fee & Salary Ledger"
