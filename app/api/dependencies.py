"""
app/api/dependencies.py

Shared FastAPI dependencies.
"""

from __future__ import annotations

from app.config import PaymentSettings, get_payment_settings


def get_payment_settings_dependency() -> PaymentSettings:
    """
    Payment confirmation settings, overridable in tests.
    """

    return get_payment_settings()
