from __future__ import annotations

from decimal import Decimal
from typing import Any

import pytest
from sqlalchemy.orm import sessionmaker

from quote_engine.auth.ownership import Principal
from quote_engine.database.db import build_engine
from quote_engine.models import AssignmentStatus, Base, QuotationStatus
from quote_engine.services.assignment_service import AssignmentService
from quote_engine.services.contractor_directory import StaticContractorDirectory
from quote_engine.services.penalty_rules import PenaltyRuleService
from quote_engine.services.quotation_service import QuotationService
from quote_engine.services.quote_request_service import QuoteRequestService
from quote_engine.services.selection_service import SelectionService

ADMIN_ID = 1
USER_ID = 10


def quotation_payload(request_id: int, unit_price: Any = "22700", units: int = 1, timeline_days: int = 30) -> dict:
    return {
        "request_id": request_id,
        "installation_timeline_days": timeline_days,
        "system_specs": {"capacity_kwp": "12", "battery_included": False},
        "warranty_terms": "25 year panel warranty, 10 year workmanship",
        "maintenance_terms": "Annual inspection for 5 years",
        "line_items": [{"name": "Turnkey PV system", "units": units, "unit_price": str(unit_price)}],
        "panel_brand": "SunCell",
        "panel_quantity": 24,
    }


class Lifecycle:
    """Drives a request through the service layer for tests."""

    def __init__(self, db) -> None:
        self.db = db
        self.directory = StaticContractorDirectory()
        self.admin = Principal(user_id=ADMIN_ID, role="admin")

    def user(self, user_id: int = USER_ID) -> Principal:
        return Principal(user_id=user_id, role="user")

    def contractor(self, contractor_id: int) -> Principal:
        return Principal(user_id=contractor_id, role="contractor")

    def seed_rules(self):
        return PenaltyRuleService(db=self.db).seed_default_rules()

    def create_request(self, contractor_ids=(101, 102), user_id: int = USER_ID, size: str = "12"):
        data = {
            "property_details": {"property_type": "detached_house", "roof_type": "pitched"},
            "electricity_consumption": {"average_monthly_kwh": "850"},
            "location": {"address": "12 Solar Way"},
            "system_size_kwp": size,
            "contractor_ids": list(contractor_ids),
        }
        return QuoteRequestService(db=self.db).create_request(self.user(user_id), data)

    def respond(self, request, contractor_id: int, response=AssignmentStatus.ACCEPTED):
        assignment = next(item for item in request.assignments if item.contractor_id == contractor_id)
        return AssignmentService(db=self.db, directory=self.directory).respond(
            assignment.id, self.contractor(contractor_id), response
        )

    def submit(self, request, contractor_id: int, unit_price: Any = "22700", timeline_days: int = 30):
        payload = quotation_payload(request.id, unit_price=unit_price, timeline_days=timeline_days)
        return QuotationService(db=self.db, directory=self.directory).submit_quotation(
            self.contractor(contractor_id), payload
        )

    def review(self, quotation, decision=QuotationStatus.APPROVED, notes=None, price_override=None):
        return QuotationService(db=self.db, directory=self.directory).review_quotation(
            quotation.id, ADMIN_ID, decision, notes=notes, price_override=price_override
        )

    def approved_quotations(self, prices: dict[int, Any], user_id: int = USER_ID):
        """Create a request with one approved quotation per contractor."""
        request = self.create_request(contractor_ids=tuple(prices), user_id=user_id)
        quotations = []
        for contractor_id, price in prices.items():
            self.respond(request, contractor_id)
            quotations.append(self.review(self.submit(request, contractor_id, unit_price=price)))
        return request, quotations

    def select(self, quotation, user_id: int = USER_ID):
        return SelectionService(db=self.db).select_quotation(quotation.id, self.user(user_id))


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'quote_engine_test.db'}"


@pytest.fixture
def session_factory(database_url):
    engine = build_engine(database_url)
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    yield factory
    engine.dispose()


@pytest.fixture
def session(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def lifecycle(session):
    flow = Lifecycle(session)
    flow.seed_rules()
    return flow


@pytest.fixture
def money():
    return lambda value: Decimal(str(value)).quantize(Decimal("0.01"))
