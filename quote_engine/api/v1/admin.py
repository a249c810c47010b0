"""Admin-only configuration, oversight and scheduler endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Query, status
from sqlalchemy.orm import Session

from quote_engine.api.v1._authz import page, require_principal
from quote_engine.api.v1.quotations import quotation_out
from quote_engine.core.dependencies import get_db_session
from quote_engine.models import QuotationStatus
from quote_engine.orchestration.penalty_scheduler import get_penalty_runner
from quote_engine.schemas.penalties import PenaltyRuleCreateRequest, PenaltyRuleResponse, PenaltyRuleUpdateRequest
from quote_engine.schemas.pricing import PricingConfigResponse, PricingConfigUpdateRequest
from quote_engine.schemas.quotations import QuotationResponse, ReverseSelectionRequest
from quote_engine.services.penalty_rules import PenaltyRuleService
from quote_engine.services.pricing_service import PricingService
from quote_engine.services.quotation_service import QuotationService
from quote_engine.services.selection_service import SelectionService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/pricing-config")
def get_pricing_config(
    include_history: bool = Query(default=False),
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> dict:
    require_principal(authorization, ["pricing.read"])
    service = PricingService(db=db)
    active = service.get_active()
    service.commit()
    body = {"active": PricingConfigResponse.model_validate(active).model_dump(mode="json")}
    if include_history:
        body["history"] = [
            PricingConfigResponse.model_validate(item).model_dump(mode="json") for item in service.list_versions()
        ]
    return body


@router.put("/pricing-config", response_model=PricingConfigResponse)
def update_pricing_config(
    payload: PricingConfigUpdateRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> PricingConfigResponse:
    principal = require_principal(authorization, ["pricing.manage"])
    changes = payload.model_dump(exclude_none=True, exclude={"notes"})
    record = PricingService(db=db).update(changes, actor_id=principal.user_id, notes=payload.notes)
    return PricingConfigResponse.model_validate(record)


@router.post("/penalty-rules", response_model=PenaltyRuleResponse, status_code=status.HTTP_201_CREATED)
def create_penalty_rule(
    payload: PenaltyRuleCreateRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> PenaltyRuleResponse:
    principal = require_principal(authorization, ["penalty_rules.manage"])
    rule = PenaltyRuleService(db=db).create_rule(payload.model_dump(), actor_id=principal.user_id)
    return PenaltyRuleResponse.model_validate(rule)


@router.put("/penalty-rules/{rule_id}", response_model=PenaltyRuleResponse)
def update_penalty_rule(
    rule_id: int,
    payload: PenaltyRuleUpdateRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> PenaltyRuleResponse:
    principal = require_principal(authorization, ["penalty_rules.manage"])
    rule = PenaltyRuleService(db=db).update_rule(
        rule_id, payload.model_dump(exclude_unset=True), actor_id=principal.user_id
    )
    return PenaltyRuleResponse.model_validate(rule)


@router.delete("/penalty-rules/{rule_id}", response_model=PenaltyRuleResponse)
def deactivate_penalty_rule(
    rule_id: int,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> PenaltyRuleResponse:
    principal = require_principal(authorization, ["penalty_rules.manage"])
    return PenaltyRuleResponse.model_validate(PenaltyRuleService(db=db).deactivate_rule(rule_id, principal.user_id))


@router.post("/penalty-check/run")
def run_penalty_check(authorization: str | None = Header(default=None, alias="Authorization")) -> dict:
    require_principal(authorization, ["penalty_checks.run"])
    return get_penalty_runner().run_once(trigger="admin")


@router.get("/penalty-check/status")
def penalty_check_status(authorization: str | None = Header(default=None, alias="Authorization")) -> dict:
    require_principal(authorization, ["penalty_checks.read"])
    return get_penalty_runner().status()


@router.get("/quotations")
def list_quotations(
    status_filter: QuotationStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> dict:
    require_principal(authorization, ["quotations.review"])
    service = QuotationService(db=db)
    items, total = service.list_for_admin(status_filter, limit, offset)
    names = service.contractor_names(items)
    return page(
        [
            QuotationResponse.model_validate(item)
            .model_copy(update={"contractor_name": names.get(item.contractor_id)})
            .model_dump(mode="json")
            for item in items
        ],
        total,
        limit,
        offset,
    )


@router.post("/quotations/{quotation_id}/reverse-selection", response_model=QuotationResponse)
def reverse_selection(
    quotation_id: int,
    payload: ReverseSelectionRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> QuotationResponse:
    principal = require_principal(authorization, ["quotations.override"])
    quotation = SelectionService(db=db).reverse_selection(quotation_id, principal.user_id, payload.reason)
    return quotation_out(QuotationService(db=db), quotation)
