"""Run manager for allocating and tracking penalty-check run identifiers."""

from __future__ import annotations

import uuid
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Any


@dataclass
class ManagedRun:
    run_id: str
    trigger: str
    created_at: str
    status: str = "running"
    finished_at: str | None = None
    summary: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


class RunManager:
    """Thread-safe registry of recent runs, newest last."""

    def __init__(self, history: int = 50) -> None:
        self._runs: dict[str, ManagedRun] = {}
        self._order: deque[str] = deque(maxlen=history)
        self._lock = Lock()

    def create_run(self, trigger: str) -> ManagedRun:
        with self._lock:
            run = ManagedRun(
                run_id=str(uuid.uuid4()),
                trigger=trigger,
                created_at=datetime.now(timezone.utc).isoformat(),
            )
            if len(self._order) == self._order.maxlen:
                self._runs.pop(self._order[0], None)
            self._order.append(run.run_id)
            self._runs[run.run_id] = run
            return run

    def mark_status(self, run_id: str, status: str, summary: dict[str, Any] | None = None) -> ManagedRun | None:
        with self._lock:
            run = self._runs.get(run_id)
            if run is None:
                return None
            run.status = status
            run.finished_at = datetime.now(timezone.utc).isoformat()
            if summary is not None:
                run.summary = dict(summary)
            return run

    def get_run(self, run_id: str) -> ManagedRun | None:
        with self._lock:
            return self._runs.get(run_id)

    def latest(self) -> ManagedRun | None:
        with self._lock:
            return self._runs[self._order[-1]] if self._order else None

    def recent(self, limit: int = 10) -> list[ManagedRun]:
        with self._lock:
            ids = list(self._order)[-limit:]
            return [self._runs[run_id] for run_id in reversed(ids)]
