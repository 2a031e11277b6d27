"""Celery worker sending abandoned cart reminder emails."""
