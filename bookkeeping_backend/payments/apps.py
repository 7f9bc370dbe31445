# payments/apps.py

"""
PAYMENTS APP CONFIG

Outstanding entries, payment allocation, cash discounts and the
official-channel receipt selector.
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments & Outstanding"
