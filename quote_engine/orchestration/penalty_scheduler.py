"""Periodic SLA check: one ``run_once`` shared by the timer, Celery and admins."""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime
from typing import Any, Callable

from sqlalchemy.orm import Session

from quote_engine.core.config import Config, get_config
from quote_engine.core.logging import LogContext, build_log_event
from quote_engine.database import db as database
from quote_engine.orchestration.run_manager import RunManager
from quote_engine.services.penalty_service import PenaltyService

logger = logging.getLogger(__name__)


class PenaltyCheckRunner:
    """Detects late installations and applies automatic penalties.

    Only one pass runs at a time per runner; an overlapping call returns
    immediately with ``skipped`` set instead of waiting.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] | None = None,
        config: Config | None = None,
        run_manager: RunManager | None = None,
    ) -> None:
        self.session_factory = session_factory or database.new_session
        self.config = config or get_config()
        self.runs = run_manager or RunManager()
        self._pass_lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._pass_lock.locked()

    def run_once(self, trigger: str = "manual", now: datetime | None = None) -> dict[str, Any]:
        if not self._pass_lock.acquire(blocking=False):
            logger.warning("penalty_check.skipped", extra={"event": "penalty_check.skipped", "trigger": trigger})
            return {"skipped": True, "trigger": trigger}
        try:
            return self._run(trigger, now)
        finally:
            self._pass_lock.release()

    def _run(self, trigger: str, now: datetime | None) -> dict[str, Any]:
        run = self.runs.create_run(trigger)
        context = LogContext(run_id=run.run_id, task_name="penalties.run_check", trigger=trigger)
        logger.info("penalty_check.started", extra=build_log_event("penalty_check.started", context))
        started = time.perf_counter()
        summary: dict[str, Any] = {
            "run_id": run.run_id,
            "trigger": trigger,
            "violations_detected": 0,
            "penalties_applied": 0,
            "errors": [],
        }

        session = self.session_factory()
        service = PenaltyService(db=session, config=self.config)
        try:
            detected = service.detect_violations(now)
            summary["violations_detected"] = len(detected)
            for violation in detected:
                try:
                    _, outcome = service.apply_detected(violation)
                except Exception as exc:
                    session.rollback()
                    logger.exception(
                        "penalty_check.violation_failed",
                        extra={
                            "event": "penalty_check.violation_failed",
                            "run_id": run.run_id,
                            "fingerprint": violation.fingerprint,
                        },
                    )
                    summary["errors"].append({"fingerprint": violation.fingerprint, "error": str(exc)})
                    continue
                if outcome is not None and outcome.created:
                    summary["penalties_applied"] += 1
        except Exception as exc:
            session.rollback()
            logger.exception("penalty_check.failed", extra={"event": "penalty_check.failed", "run_id": run.run_id})
            summary["errors"].append({"error": str(exc)})
        finally:
            session.close()

        summary["duration_ms"] = int((time.perf_counter() - started) * 1000)
        status = "failed" if summary["errors"] else "completed"
        self.runs.mark_status(run.run_id, status, summary)
        logger.info(
            "penalty_check.completed",
            extra=build_log_event(
                "penalty_check.completed",
                context,
                status=status,
                violations_detected=summary["violations_detected"],
                penalties_applied=summary["penalties_applied"],
                error_count=len(summary["errors"]),
                duration_ms=summary["duration_ms"],
            ),
        )
        return summary

    def status(self) -> dict[str, Any]:
        latest = self.runs.latest()
        return {
            "running": self.running,
            "interval_seconds": self.config.PENALTY_CHECK_INTERVAL_SECONDS,
            "mode": self.config.PENALTY_SCHEDULER_MODE,
            "last_run": latest.as_dict() if latest else None,
            "recent_runs": [run.as_dict() for run in self.runs.recent()],
        }


class PenaltyScheduler:
    """Daemon thread calling ``runner.run_once`` every interval."""

    def __init__(self, runner: PenaltyCheckRunner, interval_seconds: int | None = None) -> None:
        self.runner = runner
        self.interval_seconds = interval_seconds or runner.config.PENALTY_CHECK_INTERVAL_SECONDS
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_alive:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="penalty-scheduler", daemon=True)
        self._thread.start()
        logger.info(
            "penalty_scheduler.started",
            extra={"event": "penalty_scheduler.started", "interval_seconds": self.interval_seconds},
        )

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
        self._thread = None
        logger.info("penalty_scheduler.stopped", extra={"event": "penalty_scheduler.stopped"})

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            try:
                self.runner.run_once(trigger="scheduler")
            except Exception:
                # A failed tick is retried on the next interval.
                logger.exception("penalty_scheduler.tick_failed", extra={"event": "penalty_scheduler.tick_failed"})


_runner: PenaltyCheckRunner | None = None
_runner_lock = threading.Lock()


def get_penalty_runner() -> PenaltyCheckRunner:
    """Process-wide runner so the timer and the admin endpoint share one overlap guard."""
    global _runner
    with _runner_lock:
        if _runner is None:
            _runner = PenaltyCheckRunner()
        return _runner
