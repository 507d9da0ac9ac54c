"""Pydantic API schemas."""

from commodity_escrow.schemas.agreement import (
    AgreementResponse,
    AgreementStatusResponse,
    AssetResponse,
    CreateNativeAgreementRequest,
    CreateTokenAgreementRequest,
    EscrowEventResponse,
    HealthResponse,
    LedgerIndexResponse,
    OperationResponse,
    PayRequest,
)
from commodity_escrow.schemas.funding import (
    AllowanceResponse,
    ApproveRequest,
    BalanceResponse,
    MintRequest,
)

__all__ = [
    "AgreementResponse",
    "AgreementStatusResponse",
    "AllowanceResponse",
    "ApproveRequest",
    "AssetResponse",
    "BalanceResponse",
    "CreateNativeAgreementRequest",
    "CreateTokenAgreementRequest",
    "EscrowEventResponse",
    "HealthResponse",
    "LedgerIndexResponse",
    "MintRequest",
    "OperationResponse",
    "PayRequest",
]
