"""Pydantic schemas for the Agreement API.

These schemas define the request/response shapes for the REST API and
MCP tools. They are separate from the domain dataclasses to keep the
ledger free of transport concerns. Business validation (distinct parties,
positive price) stays in the ledger so every surface reports the same
reasons.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class CreateNativeAgreementRequest(BaseModel):
    """Request body for opening an agreement priced in native currency."""

    buyer: str = Field(
        ...,
        description="Identity of the buyer (the caller becomes the seller)",
        examples=["0x742d35Cc6634C0532925a3b844Bc9e7595f2bD18"],
    )
    arbitrator: str = Field(
        ...,
        description="Identity of the arbitrator; must not be a party",
    )
    price: Decimal = Field(
        ...,
        description="Price in native currency units",
        examples=["0.25"],
    )
    memo: str = Field(
        default="",
        max_length=5000,
        description="Free-form description of the trade",
        examples=["Order no: 3919314"],
    )


class CreateTokenAgreementRequest(CreateNativeAgreementRequest):
    """Request body for opening an agreement priced in a fungible token."""

    token_id: str = Field(
        ...,
        description="Identifier of the token contract the price is denominated in",
        examples=["TEST"],
    )


class PayRequest(BaseModel):
    """Request body for paying an agreement."""

    value: Decimal = Field(
        default=Decimal(0),
        description=(
            "Native value attached to the payment. Must equal the price for "
            "native agreements and be zero for token agreements."
        ),
    )


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class AssetResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    kind: str
    token_id: str | None = None


class AgreementResponse(BaseModel):
    """Response schema for an agreement record."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    seller: str
    buyer: str
    arbitrator: str
    price: Decimal
    asset: AssetResponse
    memo: str
    paid: bool
    withdrawn: bool
    agreement_status: str
    settlement_status: str


class EscrowEventResponse(BaseModel):
    """Response schema for an emitted event."""

    model_config = ConfigDict(from_attributes=True)

    sequence: int
    type: str
    agreement_id: int
    payload: dict[str, Any]


class OperationResponse(BaseModel):
    """Result of a mutating operation: the new record and its events."""

    model_config = ConfigDict(from_attributes=True)

    agreement: AgreementResponse
    events: list[EscrowEventResponse]


class AgreementStatusResponse(BaseModel):
    """Lightweight status check response."""

    agreement_id: int
    agreement_status: str
    settlement_status: str
    paid: bool
    withdrawn: bool
    allowed_actions: list[str] = Field(
        description="Operations that can succeed now (for the caller, if one was given)"
    )


class LedgerIndexResponse(BaseModel):
    """Number of agreements ever created and, optionally, a filtered listing."""

    next_id: int
    agreements: list[AgreementResponse] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    environment: str = "development"
    agreements: int = 0
    assets: list[str] = Field(default_factory=list)
