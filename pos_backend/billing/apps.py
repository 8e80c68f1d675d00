# billing/apps.py

"""
BILLING APP CONFIG

Fiscal documents and receivables:
- Invoices (sale invoices + credit-note documents)
- Invoice lines
- Accounts receivable entries mirroring invoice balances
- Standalone customer credit notes + their numbering sequence
"""

from django.apps import AppConfig


class BillingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "billing"
    verbose_name = "Billing"
