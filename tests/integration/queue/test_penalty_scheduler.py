from __future__ import annotations

import threading
from datetime import timedelta
from decimal import Decimal

from quote_engine.models import Penalty, SLAViolation, ViolationStatus, utcnow
from quote_engine.orchestration.penalty_scheduler import PenaltyCheckRunner, PenaltyScheduler
from quote_engine.orchestration.run_manager import RunManager
from quote_engine.services.penalty_service import PenaltyService
from quote_engine.tasks import hooks


def _overdue_request(lifecycle, session, days_late=5):
    request, (quotation,) = lifecycle.approved_quotations({101: "22700"})
    lifecycle.select(quotation)
    request.installation_deadline = utcnow() - timedelta(days=days_late, hours=1)
    session.commit()
    return request


def test_run_detects_and_applies_once(lifecycle, session, session_factory):
    request = _overdue_request(lifecycle, session)
    runner = PenaltyCheckRunner(session_factory=session_factory)

    first = runner.run_once(trigger="manual")
    assert first["violations_detected"] == 1
    assert first["penalties_applied"] == 1
    assert first["errors"] == []

    second = runner.run_once(trigger="manual")
    assert second["violations_detected"] == 0
    assert second["penalties_applied"] == 0

    penalty = session.query(Penalty).one()
    assert penalty.request_id == request.id
    assert penalty.is_automatic is True
    assert penalty.amount == Decimal("500.00")
    violation = session.query(SLAViolation).one()
    assert violation.status == ViolationStatus.PENALIZED
    assert violation.days_overdue == 5


def test_open_violation_is_reported_until_settled(lifecycle, session):
    request = _overdue_request(lifecycle, session)
    service = PenaltyService(db=session)

    (detected,) = service.detect_violations()
    violation = service.record_violation(detected)
    session.commit()
    assert violation.status == ViolationStatus.OPEN
    assert [item.request_id for item in service.detect_violations()] == [request.id]

    violation.status = ViolationStatus.DISMISSED
    session.commit()
    assert service.detect_violations() == []


def test_completed_installations_are_not_flagged(lifecycle, session, session_factory):
    request = _overdue_request(lifecycle, session)
    request.installation_completed_at = utcnow()
    session.commit()
    summary = PenaltyCheckRunner(session_factory=session_factory).run_once()
    assert summary["violations_detected"] == 0


def test_within_grace_period_is_not_flagged(lifecycle, session, session_factory):
    request, (quotation,) = lifecycle.approved_quotations({101: "22700"})
    lifecycle.select(quotation)
    request.installation_deadline = utcnow() - timedelta(hours=12)
    session.commit()
    assert PenaltyCheckRunner(session_factory=session_factory).run_once()["violations_detected"] == 0


def test_overlapping_run_is_skipped(session_factory):
    runner = PenaltyCheckRunner(session_factory=session_factory)
    entered = threading.Event()
    release = threading.Event()
    original = runner._run

    def _slow_run(trigger, now):
        entered.set()
        release.wait(5)
        return original(trigger, now)

    runner._run = _slow_run
    worker = threading.Thread(target=runner.run_once, kwargs={"trigger": "scheduler"})
    worker.start()
    assert entered.wait(5)
    try:
        assert runner.running is True
        assert runner.run_once(trigger="manual") == {"skipped": True, "trigger": "manual"}
    finally:
        release.set()
        worker.join(5)
    assert runner.running is False


def test_status_reports_recent_runs(session_factory):
    runner = PenaltyCheckRunner(session_factory=session_factory, run_manager=RunManager(history=2))
    for _ in range(3):
        runner.run_once(trigger="manual")
    status = runner.status()
    assert status["running"] is False
    assert status["last_run"]["status"] == "completed"
    assert len(status["recent_runs"]) == 2


def test_scheduler_thread_starts_and_stops(session_factory):
    runner = PenaltyCheckRunner(session_factory=session_factory)
    scheduler = PenaltyScheduler(runner, interval_seconds=3600)
    scheduler.start()
    assert scheduler.is_alive
    scheduler.stop(timeout=2)
    assert not scheduler.is_alive


def test_task_hooks_build_structured_events():
    started = hooks.before_task("penalties.run_check", {"run_id": "abc", "trigger": "celery"})
    assert started["event"] == "task.start"
    assert started["task_name"] == "penalties.run_check"


def test_celery_task_runs_shared_runner(lifecycle, session, session_factory, monkeypatch):
    from quote_engine.tasks import penalty_tasks

    _overdue_request(lifecycle, session)
    runner = PenaltyCheckRunner(session_factory=session_factory)
    monkeypatch.setattr(penalty_tasks, "get_penalty_runner", lambda: runner)

    summary = penalty_tasks.run_penalty_check.apply(kwargs={"trigger": "celery"}).get()
    assert summary["trigger"] == "celery"
    assert summary["penalties_applied"] == 1
    assert runner.status()["last_run"]["run_id"] == summary["run_id"]
