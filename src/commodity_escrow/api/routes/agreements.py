"""Agreement REST API routes.

These endpoints provide the HTTP interface for creating agreements,
paying, settling, disputing and withdrawing. The MCP tools in
mcp_server/tools.py call the same ledger, ensuring consistency.

Every mutating route requires the X-Caller-Address header; it is the
identity the ledger authorizes against.

Routes:
    POST   /api/v1/agreements/native                           — Create (native currency)
    POST   /api/v1/agreements/token                            — Create (token)
    GET    /api/v1/agreements                                  — Ledger index
    GET    /api/v1/agreements/{id}                             — Agreement record
    GET    /api/v1/agreements/{id}/status                      — Status + allowed actions
    GET    /api/v1/agreements/{id}/events                      — Emitted events
    POST   /api/v1/agreements/{id}/pay                         — Buyer pays
    POST   /api/v1/agreements/{id}/close                       — Party closes before payment
    POST   /api/v1/agreements/{id}/confirm-receival            — Buyer confirms delivery
    POST   /api/v1/agreements/{id}/refund                      — Seller refunds buyer
    POST   /api/v1/agreements/{id}/dispute                     — Party raises dispute
    POST   /api/v1/agreements/{id}/arbitrator/confirm-receival — Arbitrator sides with seller
    POST   /api/v1/agreements/{id}/arbitrator/refund           — Arbitrator sides with buyer
    POST   /api/v1/agreements/{id}/withdraw/seller             — Seller withdraws custody
    POST   /api/v1/agreements/{id}/withdraw/buyer              — Buyer withdraws custody
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends

from commodity_escrow.api.deps import get_caller, get_ledger, get_optional_caller
from commodity_escrow.schemas.agreement import (
    AgreementResponse,
    AgreementStatusResponse,
    CreateNativeAgreementRequest,
    CreateTokenAgreementRequest,
    EscrowEventResponse,
    LedgerIndexResponse,
    OperationResponse,
    PayRequest,
)
from commodity_escrow.services.escrow_service import EscrowLedger

if TYPE_CHECKING:
    from commodity_escrow.domain.models import Agreement, OperationResult

router = APIRouter(prefix="/api/v1/agreements", tags=["Agreements"])


def _agreement_response(agreement: Agreement) -> AgreementResponse:
    return AgreementResponse.model_validate(agreement.to_dict())


def _operation_response(result: OperationResult) -> OperationResponse:
    return OperationResponse(
        agreement=_agreement_response(result.agreement),
        events=[EscrowEventResponse.model_validate(e.to_dict()) for e in result.events],
    )


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


@router.post(
    "/native",
    response_model=OperationResponse,
    status_code=201,
    summary="Create an agreement priced in native currency",
)
async def create_native_agreement(
    request: CreateNativeAgreementRequest,
    caller: str = Depends(get_caller),
    ledger: EscrowLedger = Depends(get_ledger),
) -> OperationResponse:
    """The caller becomes the seller. The agreement starts Open."""
    result = ledger.create_native_agreement(
        caller,
        buyer=request.buyer,
        arbitrator=request.arbitrator,
        price=request.price,
        memo=request.memo,
    )
    return _operation_response(result)


@router.post(
    "/token",
    response_model=OperationResponse,
    status_code=201,
    summary="Create an agreement priced in a fungible token",
)
async def create_token_agreement(
    request: CreateTokenAgreementRequest,
    caller: str = Depends(get_caller),
    ledger: EscrowLedger = Depends(get_ledger),
) -> OperationResponse:
    """The caller becomes the seller. The agreement starts Open."""
    result = ledger.create_token_agreement(
        caller,
        buyer=request.buyer,
        arbitrator=request.arbitrator,
        token_id=request.token_id,
        price=request.price,
        memo=request.memo,
    )
    return _operation_response(result)


# ---------------------------------------------------------------------------
# Payment & closing
# ---------------------------------------------------------------------------


@router.post(
    "/{agreement_id}/pay",
    response_model=OperationResponse,
    summary="Pay the agreement price into custody",
)
async def pay(
    agreement_id: int,
    request: PayRequest | None = None,
    caller: str = Depends(get_caller),
    ledger: EscrowLedger = Depends(get_ledger),
) -> OperationResponse:
    """Open -> Paid. Native agreements need ``value`` equal to the price."""
    value = request.value if request is not None else 0
    return _operation_response(ledger.pay(caller, agreement_id, value=value))


@router.post(
    "/{agreement_id}/close",
    response_model=OperationResponse,
    summary="Close an unpaid agreement",
)
async def close_agreement(
    agreement_id: int,
    caller: str = Depends(get_caller),
    ledger: EscrowLedger = Depends(get_ledger),
) -> OperationResponse:
    """Open -> Closed."""
    return _operation_response(ledger.close_agreement(caller, agreement_id))


# ---------------------------------------------------------------------------
# Settlement
# ---------------------------------------------------------------------------


@router.post(
    "/{agreement_id}/confirm-receival",
    response_model=OperationResponse,
    summary="Buyer confirms the commodity was received",
)
async def confirm_commodity_receival(
    agreement_id: int,
    caller: str = Depends(get_caller),
    ledger: EscrowLedger = Depends(get_ledger),
) -> OperationResponse:
    """Paid -> Settled (CommodityReceivedByBuyer)."""
    return _operation_response(ledger.confirm_commodity_receival(caller, agreement_id))


@router.post(
    "/{agreement_id}/refund",
    response_model=OperationResponse,
    summary="Seller refunds the buyer",
)
async def seller_refund_buyer(
    agreement_id: int,
    caller: str = Depends(get_caller),
    ledger: EscrowLedger = Depends(get_ledger),
) -> OperationResponse:
    """Paid -> Settled (BuyerRefundedBySeller)."""
    return _operation_response(ledger.seller_refund_buyer(caller, agreement_id))


# ---------------------------------------------------------------------------
# Dispute
# ---------------------------------------------------------------------------


@router.post(
    "/{agreement_id}/dispute",
    response_model=OperationResponse,
    summary="Raise a dispute",
)
async def raise_dispute(
    agreement_id: int,
    caller: str = Depends(get_caller),
    ledger: EscrowLedger = Depends(get_ledger),
) -> OperationResponse:
    """Paid -> InDispute. Either party may raise it."""
    return _operation_response(ledger.raise_dispute(caller, agreement_id))


@router.post(
    "/{agreement_id}/arbitrator/confirm-receival",
    response_model=OperationResponse,
    summary="Arbitrator confirms the commodity was received",
)
async def arbitrator_confirm_commodity_receival(
    agreement_id: int,
    caller: str = Depends(get_caller),
    ledger: EscrowLedger = Depends(get_ledger),
) -> OperationResponse:
    """InDispute -> Settled (CommodityReceivedConfirmedByArbitrator)."""
    return _operation_response(
        ledger.arbitrator_confirm_commodity_receival(caller, agreement_id)
    )


@router.post(
    "/{agreement_id}/arbitrator/refund",
    response_model=OperationResponse,
    summary="Arbitrator refunds the buyer",
)
async def arbitrator_perform_refund(
    agreement_id: int,
    caller: str = Depends(get_caller),
    ledger: EscrowLedger = Depends(get_ledger),
) -> OperationResponse:
    """InDispute -> Settled (BuyerRefundedByArbitrator)."""
    return _operation_response(ledger.arbitrator_perform_refund(caller, agreement_id))


# ---------------------------------------------------------------------------
# Withdrawal
# ---------------------------------------------------------------------------


@router.post(
    "/{agreement_id}/withdraw/seller",
    response_model=OperationResponse,
    summary="Seller withdraws custody funds",
)
async def seller_withdraw_funds(
    agreement_id: int,
    caller: str = Depends(get_caller),
    ledger: EscrowLedger = Depends(get_ledger),
) -> OperationResponse:
    return _operation_response(ledger.seller_withdraw_funds(caller, agreement_id))


@router.post(
    "/{agreement_id}/withdraw/buyer",
    response_model=OperationResponse,
    summary="Buyer withdraws custody funds",
)
async def buyer_withdraw_funds(
    agreement_id: int,
    caller: str = Depends(get_caller),
    ledger: EscrowLedger = Depends(get_ledger),
) -> OperationResponse:
    return _operation_response(ledger.buyer_withdraw_funds(caller, agreement_id))


# ---------------------------------------------------------------------------
# Read endpoints
# ---------------------------------------------------------------------------


@router.get(
    "",
    response_model=LedgerIndexResponse,
    summary="Ledger index",
)
async def list_agreements(
    party: str | None = None,
    ledger: EscrowLedger = Depends(get_ledger),
) -> LedgerIndexResponse:
    """Return ``next_id`` and the agreements, optionally filtered by party."""
    return LedgerIndexResponse(
        next_id=ledger.next_id,
        agreements=[_agreement_response(a) for a in ledger.list_agreements(party)],
    )


@router.get(
    "/{agreement_id}",
    response_model=AgreementResponse,
    summary="Get agreement details",
)
async def get_agreement(
    agreement_id: int,
    ledger: EscrowLedger = Depends(get_ledger),
) -> AgreementResponse:
    return _agreement_response(ledger.get_agreement(agreement_id))


@router.get(
    "/{agreement_id}/status",
    response_model=AgreementStatusResponse,
    summary="Get lightweight status check",
)
async def get_status(
    agreement_id: int,
    caller: str | None = Depends(get_optional_caller),
    ledger: EscrowLedger = Depends(get_ledger),
) -> AgreementStatusResponse:
    """Return the current status and the operations that may succeed next."""
    return AgreementStatusResponse(**ledger.get_status(agreement_id, caller=caller))


@router.get(
    "/{agreement_id}/events",
    response_model=list[EscrowEventResponse],
    summary="Get emitted events",
)
async def get_events(
    agreement_id: int,
    ledger: EscrowLedger = Depends(get_ledger),
) -> list[EscrowEventResponse]:
    events = ledger.get_events(agreement_id)
    return [EscrowEventResponse.model_validate(e.to_dict()) for e in events]
