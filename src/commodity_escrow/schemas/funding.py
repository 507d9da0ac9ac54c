"""Pydantic schemas for the development funding routes."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field


class MintRequest(BaseModel):
    """Request body for crediting an account on a simulated asset ledger."""

    account: str = Field(..., min_length=1, description="Account to credit")
    amount: Decimal = Field(..., gt=0, examples=["1"])


class ApproveRequest(BaseModel):
    """Request body for granting an allowance. The caller is the owner."""

    amount: Decimal = Field(..., ge=0, examples=["0.25"])
    spender: str | None = Field(
        default=None,
        description="Account allowed to pull funds. Defaults to the custody account.",
    )


class BalanceResponse(BaseModel):
    asset: str
    account: str
    balance: Decimal


class AllowanceResponse(BaseModel):
    asset: str
    owner: str
    spender: str
    allowance: Decimal
