from __future__ import annotations

import pytest
import requests

from quote_engine.core.exceptions import DependencyError
from quote_engine.services import contractor_directory
from quote_engine.services.contractor_directory import HttpContractorDirectory, StaticContractorDirectory


class _Response:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body or {}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"HTTP {self.status_code}")

    def json(self):
        return self._body


class _Session:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        outcome = self.responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture(autouse=True)
def _no_backoff(monkeypatch):
    monkeypatch.setattr(contractor_directory.time, "sleep", lambda seconds: None)


def test_static_directory_accepts_all():
    directory = StaticContractorDirectory()
    assert directory.check_eligibility([1, 2]) == {1: True, 2: True}
    assert directory.display_names([1]) == {}


def test_eligibility_retries_transient_failures():
    session = _Session(
        [
            requests.exceptions.ConnectionError("reset"),
            _Response(200, {"contractors": [{"id": 101, "eligible": True}, {"id": 102, "eligible": False}]}),
        ]
    )
    directory = HttpContractorDirectory("http://contractors.local/", max_retries=2, session=session)
    assert directory.check_eligibility([101, 102, 103]) == {101: True, 102: False, 103: False}
    assert len(session.calls) == 2
    assert session.calls[0][0] == "http://contractors.local/contractors/lookup"


def test_eligibility_fails_closed_when_service_is_down():
    session = _Session([_Response(503)] * 3)
    directory = HttpContractorDirectory("http://contractors.local", max_retries=2, session=session)
    with pytest.raises(DependencyError):
        directory.check_eligibility([101])
    assert len(session.calls) == 3


def test_client_errors_are_not_retried():
    session = _Session([_Response(404)])
    directory = HttpContractorDirectory("http://contractors.local", max_retries=2, session=session)
    with pytest.raises(DependencyError):
        directory.check_eligibility([101])
    assert len(session.calls) == 1


def test_display_names_degrade_to_empty():
    session = _Session([requests.exceptions.Timeout("slow")] * 2)
    directory = HttpContractorDirectory("http://contractors.local", max_retries=1, session=session)
    assert directory.display_names([101]) == {}


def test_display_names_maps_ids():
    session = _Session([_Response(200, {"contractors": [{"id": 101, "name": "Bright Roofs"}]})])
    directory = HttpContractorDirectory("http://contractors.local", session=session)
    assert directory.display_names([101]) == {101: "Bright Roofs"}
