"""Development funding routes for the simulated asset ledgers.

A freshly started app has no balances, so these routes are how a local
buyer gets funds to pay with. They exist only when APP_ENV is development;
elsewhere every path answers 404.

``{asset}`` is ``native``, ``token:<id>`` or a bare token id.

Routes:
    POST   /api/v1/assets/{asset}/mint                Credit an account
    POST   /api/v1/assets/{asset}/approve             Caller grants custody an allowance
    GET    /api/v1/assets/{asset}/balance/{account}   Account balance
    GET    /api/v1/assets/{asset}/allowance/{owner}   Allowance granted to custody
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from commodity_escrow.api.deps import get_caller, get_funding, require_development
from commodity_escrow.schemas.funding import (
    AllowanceResponse,
    ApproveRequest,
    BalanceResponse,
    MintRequest,
)
from commodity_escrow.services.funding import SimulatedFunding, parse_asset

router = APIRouter(
    prefix="/api/v1/assets",
    tags=["Development Funding"],
    dependencies=[Depends(require_development)],
)


@router.post(
    "/{asset}/mint",
    response_model=BalanceResponse,
    summary="Credit an account on a simulated asset ledger",
)
async def mint(
    asset: str,
    request: MintRequest,
    funding: SimulatedFunding = Depends(get_funding),
) -> BalanceResponse:
    balance = funding.mint(asset, request.account, request.amount)
    return BalanceResponse(
        asset=str(parse_asset(asset)), account=request.account, balance=balance
    )


@router.post(
    "/{asset}/approve",
    response_model=AllowanceResponse,
    summary="Grant an allowance on a simulated token",
)
async def approve(
    asset: str,
    request: ApproveRequest,
    caller: str = Depends(get_caller),
    funding: SimulatedFunding = Depends(get_funding),
) -> AllowanceResponse:
    """The caller is the owner. The spender defaults to the custody account."""
    allowance = funding.approve(asset, caller, request.amount, spender=request.spender)
    return AllowanceResponse(
        asset=str(parse_asset(asset)),
        owner=caller,
        spender=request.spender or funding.custody_account(asset),
        allowance=allowance,
    )


@router.get(
    "/{asset}/balance/{account}",
    response_model=BalanceResponse,
    summary="Read a balance",
)
async def get_balance(
    asset: str,
    account: str,
    funding: SimulatedFunding = Depends(get_funding),
) -> BalanceResponse:
    balance = funding.balance_of(asset, account)
    return BalanceResponse(asset=str(parse_asset(asset)), account=account, balance=balance)


@router.get(
    "/{asset}/allowance/{owner}",
    response_model=AllowanceResponse,
    summary="Read the allowance an owner granted to custody",
)
async def get_allowance(
    asset: str,
    owner: str,
    funding: SimulatedFunding = Depends(get_funding),
) -> AllowanceResponse:
    allowance = funding.allowance(asset, owner)
    return AllowanceResponse(
        asset=str(parse_asset(asset)),
        owner=owner,
        spender=funding.custody_account(asset),
        allowance=allowance,
    )
