"""Email worker tasks."""
