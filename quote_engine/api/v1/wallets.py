"""Contractor wallet endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Query, status
from sqlalchemy.orm import Session

from quote_engine.api.v1._authz import page, require_principal
from quote_engine.auth.ownership import Principal, enforce_owner
from quote_engine.core.dependencies import get_db_session
from quote_engine.schemas.wallets import PayoutRequest, WalletResponse, WalletTransactionResponse
from quote_engine.services.wallet_service import WalletService

router = APIRouter(tags=["wallets"])


def _wallet_principal(authorization: str | None, contractor_id: int) -> Principal:
    principal = require_principal(authorization, ["wallets.read_own"])
    enforce_owner(contractor_id, principal, "Wallet", contractor_id)
    return principal


@router.get("/wallets/me", response_model=WalletResponse)
def get_my_wallet(
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> WalletResponse:
    principal = require_principal(authorization, ["wallets.read_own"])
    service = WalletService(db=db)
    wallet = service.get_or_create_wallet(principal.user_id)
    service.commit()
    return WalletResponse.model_validate(wallet)


@router.get("/wallets/{contractor_id}", response_model=WalletResponse)
def get_wallet(
    contractor_id: int,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> WalletResponse:
    _wallet_principal(authorization, contractor_id)
    return WalletResponse.model_validate(WalletService(db=db).get_wallet(contractor_id))


@router.get("/wallets/{contractor_id}/transactions")
def list_wallet_transactions(
    contractor_id: int,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> dict:
    _wallet_principal(authorization, contractor_id)
    items, total = WalletService(db=db).list_transactions(contractor_id, limit, offset)
    return page(
        [WalletTransactionResponse.model_validate(item).model_dump(mode="json") for item in items],
        total,
        limit,
        offset,
    )


@router.get("/wallets/{contractor_id}/integrity")
def verify_wallet_integrity(
    contractor_id: int,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> dict:
    require_principal(authorization, ["wallets.audit"])
    return WalletService(db=db).verify_integrity(contractor_id)


@router.post(
    "/wallets/{contractor_id}/payouts",
    response_model=WalletTransactionResponse,
    status_code=status.HTTP_201_CREATED,
)
def request_payout(
    contractor_id: int,
    payload: PayoutRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> WalletTransactionResponse:
    principal = require_principal(authorization, ["wallets.payout"])
    entry = WalletService(db=db).request_payout(contractor_id, payload.amount, principal.user_id, payload.note)
    return WalletTransactionResponse.model_validate(entry)
