"""Celery tasks and task lifecycle hooks."""
