"""Celery workers module - imports task modules for autodiscovery."""

from a11y_insights.features.analytics.workers import tasks  # noqa: F401
