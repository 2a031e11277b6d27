"""Storefront checkout service: checkout attempts and abandoned cart reminders."""

__version__ = "1.0.0"
