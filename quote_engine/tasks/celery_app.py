"""Celery application bootstrap."""

from __future__ import annotations

from celery import Celery

from quote_engine.core.config import get_config

config = get_config()

celery_app = Celery(
    "quote_engine",
    broker=config.CELERY_BROKER_URL,
    backend=config.CELERY_RESULT_BACKEND,
    include=["quote_engine.tasks.penalty_tasks"],
)
celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
)

if config.PENALTY_SCHEDULER_MODE == "celery":
    celery_app.conf.beat_schedule = {
        "penalties-run-check": {
            "task": "penalties.run_check",
            "schedule": float(config.PENALTY_CHECK_INTERVAL_SECONDS),
            "kwargs": {"trigger": "celery_beat"},
        }
    }
