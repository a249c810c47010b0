"""Client for the external Contractor Service.

The engine only asks two questions of it: are these contractors eligible for
assignment, and what are their display names. Eligibility is authorization
critical, so failures propagate as ``DependencyError``. Display names are
enrichment, so failures degrade to an empty mapping.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Iterable

import requests

from quote_engine.core.config import Config, get_config
from quote_engine.core.exceptions import DependencyError

logger = logging.getLogger(__name__)


class StaticContractorDirectory:
    """Directory used when no Contractor Service is configured.

    The caller's candidate list has already been filtered upstream, so every
    id is accepted.
    """

    def check_eligibility(self, contractor_ids: Iterable[int]) -> dict[int, bool]:
        return {int(cid): True for cid in contractor_ids}

    def display_names(self, contractor_ids: Iterable[int]) -> dict[int, str]:
        return {}


class HttpContractorDirectory:
    """HTTP client with bounded retries and linear backoff."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: int = 5,
        max_retries: int = 2,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.session = session or requests.Session()

    def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        total_attempts = self.max_retries + 1
        last_error: Exception | None = None

        for attempt in range(1, total_attempts + 1):
            try:
                response = self.session.get(url, params=params, timeout=(2, self.timeout_seconds))
                if 400 <= response.status_code < 500:
                    raise DependencyError(f"Contractor Service rejected request: HTTP {response.status_code}")
                response.raise_for_status()
                return response.json()
            except (requests.exceptions.RequestException, ValueError) as exc:
                last_error = exc
                logger.warning(
                    "contractor_service.call.failed",
                    extra={
                        "event": "contractor_service.call.failed",
                        "path": path,
                        "attempt": attempt,
                        "attempts_total": total_attempts,
                        "error": str(exc),
                    },
                )
                if attempt < total_attempts:
                    time.sleep(min(2 * attempt, 5))

        raise DependencyError(f"Contractor Service unavailable: {last_error}")

    def _lookup(self, contractor_ids: Iterable[int]) -> list[dict[str, Any]]:
        ids = sorted({int(cid) for cid in contractor_ids})
        if not ids:
            return []
        body = self._get("/contractors/lookup", {"ids": ",".join(str(cid) for cid in ids)})
        return list(body.get("contractors", []))

    def check_eligibility(self, contractor_ids: Iterable[int]) -> dict[int, bool]:
        ids = [int(cid) for cid in contractor_ids]
        found = {int(item["id"]): bool(item.get("eligible", False)) for item in self._lookup(ids)}
        return {cid: found.get(cid, False) for cid in ids}

    def display_names(self, contractor_ids: Iterable[int]) -> dict[int, str]:
        try:
            records = self._lookup(contractor_ids)
        except DependencyError:
            logger.warning(
                "contractor_service.enrichment.degraded",
                extra={"event": "contractor_service.enrichment.degraded"},
            )
            return {}
        return {int(item["id"]): str(item["name"]) for item in records if item.get("name")}


def get_contractor_directory(config: Config | None = None):
    """Return the directory implementation selected by configuration."""
    cfg = config or get_config()
    if not cfg.CONTRACTOR_SERVICE_URL:
        return StaticContractorDirectory()
    return HttpContractorDirectory(
        base_url=cfg.CONTRACTOR_SERVICE_URL,
        timeout_seconds=cfg.CONTRACTOR_SERVICE_TIMEOUT_SECONDS,
        max_retries=cfg.CONTRACTOR_SERVICE_MAX_RETRIES,
    )
