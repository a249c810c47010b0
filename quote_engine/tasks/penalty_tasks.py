from __future__ import annotations

import logging
import uuid
from typing import Any

from quote_engine.orchestration.penalty_scheduler import get_penalty_runner
from quote_engine.tasks.celery_app import celery_app
from quote_engine.tasks.hooks import after_task, before_task

logger = logging.getLogger(__name__)

TASK_NAME = "penalties.run_check"


@celery_app.task(bind=True, name=TASK_NAME)
def run_penalty_check(self, trigger: str = "celery") -> dict[str, Any]:
    """Run one SLA pass through the same runner the API and the thread scheduler use."""
    context = {"trigger": trigger, "trace_id": getattr(self.request, "id", None) or uuid.uuid4().hex}
    logger.info("task.start", extra=before_task(TASK_NAME, context))
    try:
        summary = get_penalty_runner().run_once(trigger=trigger)
    except Exception:
        logger.exception("task.failed", extra=after_task(TASK_NAME, context, status="failed"))
        raise
    status = "skipped" if summary.get("skipped") else "succeeded"
    logger.info(
        "task.finish",
        extra=after_task(TASK_NAME, {**context, "run_id": summary.get("run_id")}, status=status),
    )
    return summary
