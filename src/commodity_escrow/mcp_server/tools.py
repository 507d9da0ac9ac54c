"""MCP Tool definitions for the Commodity Trade Escrow.

These tools expose the escrow ledger via the Model Context Protocol,
allowing trading agents to discover and call them programmatically.

Tools:
    - create_native_agreement / create_token_agreement
    - pay, close_agreement
    - confirm_commodity_receival, seller_refund_buyer
    - raise_dispute, arbitrator_confirm_commodity_receival, arbitrator_perform_refund
    - seller_withdraw_funds, buyer_withdraw_funds
    - check_status, get_agreement
    - fund_account, approve_custody, get_balance (development only)

The MCP server is mounted into FastAPI at /mcp via app.mount() and shares
the application's ledger (see ``bind_ledger``). Agents pass their own
identity as ``caller``; the ledger authorizes against it exactly as it does
for the X-Caller-Address header.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from mcp.server.fastmcp import FastMCP

from commodity_escrow.config import get_settings
from commodity_escrow.domain.exceptions import EscrowError
from commodity_escrow.logging_config import get_logger
from commodity_escrow.services.funding import SimulatedFunding, parse_asset

if TYPE_CHECKING:
    from collections.abc import Callable

    from commodity_escrow.domain.models import OperationResult
    from commodity_escrow.services.escrow_service import EscrowLedger

logger = get_logger(__name__)

mcp = FastMCP(
    "Commodity Trade Escrow",
    json_response=True,
)

_ledger: EscrowLedger | None = None


def bind_ledger(ledger: EscrowLedger) -> None:
    """Point the tools at a ledger. Called by the app factory."""
    global _ledger
    _ledger = ledger


def get_ledger() -> EscrowLedger:
    """Return the bound ledger. Must call bind_ledger() first."""
    if _ledger is None:
        raise RuntimeError("Ledger not bound. Call bind_ledger() first.")
    return _ledger


def _run(tool: str, operation: Callable[[], OperationResult], next_step: str = "") -> dict:
    try:
        result = operation()
    except EscrowError as exc:
        logger.warning("mcp.tool_rejected", tool=tool, code=exc.code, reason=exc.message)
        return {"error": exc.code, "message": exc.message}

    response: dict[str, Any] = {
        "agreement": result.agreement.to_dict(),
        "events": [e.to_dict() for e in result.events],
    }
    if next_step:
        response["message"] = next_step
    return response


@mcp.tool()
async def create_native_agreement(
    caller: str,
    buyer: str,
    arbitrator: str,
    price: str,
    memo: str = "",
) -> dict:
    """Open a trade agreement priced in native currency. You become the seller.

    Args:
        caller: Your identity (the seller).
        buyer: Identity of the buyer.
        arbitrator: Identity of the third party who settles disputes.
        price: Price as a decimal string, e.g. "0.25".
        memo: Free-form description of the trade.

    Returns:
        The new agreement, including the agreement id needed for later calls.
    """
    ledger = get_ledger()
    return _run(
        "create_native_agreement",
        lambda: ledger.create_native_agreement(caller, buyer, arbitrator, price, memo),
        next_step="Agreement created. Next step: the buyer pays.",
    )


@mcp.tool()
async def create_token_agreement(
    caller: str,
    buyer: str,
    arbitrator: str,
    token_id: str,
    price: str,
    memo: str = "",
) -> dict:
    """Open a trade agreement priced in a fungible token. You become the seller.

    Args:
        caller: Your identity (the seller).
        buyer: Identity of the buyer.
        arbitrator: Identity of the third party who settles disputes.
        token_id: Token the price is denominated in.
        price: Price as a decimal string.
        memo: Free-form description of the trade.
    """
    ledger = get_ledger()
    return _run(
        "create_token_agreement",
        lambda: ledger.create_token_agreement(caller, buyer, arbitrator, token_id, price, memo),
        next_step="Agreement created. Next step: the buyer approves custody and pays.",
    )


@mcp.tool()
async def pay(caller: str, agreement_id: int, value: str = "0") -> dict:
    """Pay an Open agreement as its buyer.

    Args:
        caller: Your identity (the buyer).
        agreement_id: Agreement to pay.
        value: Native value attached. Equal to the price for native agreements,
               "0" for token agreements (the price is pulled from your allowance).
    """
    ledger = get_ledger()
    return _run(
        "pay",
        lambda: ledger.pay(caller, agreement_id, value=value),
        next_step="Paid. Confirm receival, refund, or raise a dispute.",
    )


@mcp.tool()
async def close_agreement(caller: str, agreement_id: int) -> dict:
    """Close an agreement that has not been paid yet (buyer or seller)."""
    ledger = get_ledger()
    return _run("close_agreement", lambda: ledger.close_agreement(caller, agreement_id))


@mcp.tool()
async def confirm_commodity_receival(caller: str, agreement_id: int) -> dict:
    """As the buyer, confirm the commodity arrived. Releases custody to the seller."""
    ledger = get_ledger()
    return _run(
        "confirm_commodity_receival",
        lambda: ledger.confirm_commodity_receival(caller, agreement_id),
        next_step="Settled. The seller may now withdraw the funds.",
    )


@mcp.tool()
async def seller_refund_buyer(caller: str, agreement_id: int) -> dict:
    """As the seller, refund the buyer. Releases custody to the buyer."""
    ledger = get_ledger()
    return _run(
        "seller_refund_buyer",
        lambda: ledger.seller_refund_buyer(caller, agreement_id),
        next_step="Settled. The buyer may now withdraw the funds.",
    )


@mcp.tool()
async def raise_dispute(caller: str, agreement_id: int) -> dict:
    """Hand a paid agreement to its arbitrator (buyer or seller)."""
    ledger = get_ledger()
    return _run(
        "raise_dispute",
        lambda: ledger.raise_dispute(caller, agreement_id),
        next_step="In dispute. Only the arbitrator can settle it now.",
    )


@mcp.tool()
async def arbitrator_confirm_commodity_receival(caller: str, agreement_id: int) -> dict:
    """As the arbitrator, rule that the commodity was delivered."""
    ledger = get_ledger()
    return _run(
        "arbitrator_confirm_commodity_receival",
        lambda: ledger.arbitrator_confirm_commodity_receival(caller, agreement_id),
    )


@mcp.tool()
async def arbitrator_perform_refund(caller: str, agreement_id: int) -> dict:
    """As the arbitrator, rule that the buyer is refunded."""
    ledger = get_ledger()
    return _run(
        "arbitrator_perform_refund",
        lambda: ledger.arbitrator_perform_refund(caller, agreement_id),
    )


@mcp.tool()
async def seller_withdraw_funds(caller: str, agreement_id: int) -> dict:
    """As the seller, withdraw custody after a settlement in your favor."""
    ledger = get_ledger()
    return _run("seller_withdraw_funds", lambda: ledger.seller_withdraw_funds(caller, agreement_id))


@mcp.tool()
async def buyer_withdraw_funds(caller: str, agreement_id: int) -> dict:
    """As the buyer, withdraw custody after a refund."""
    ledger = get_ledger()
    return _run("buyer_withdraw_funds", lambda: ledger.buyer_withdraw_funds(caller, agreement_id))


@mcp.tool()
async def check_status(agreement_id: int, caller: str = "") -> dict:
    """Check an agreement's status and which operations you can perform next."""
    ledger = get_ledger()
    try:
        return ledger.get_status(agreement_id, caller=caller or None)
    except EscrowError as exc:
        return {"error": exc.code, "message": exc.message}


@mcp.tool()
async def get_agreement(agreement_id: int) -> dict:
    """Fetch the full agreement record."""
    ledger = get_ledger()
    try:
        return ledger.get_agreement(agreement_id).to_dict()
    except EscrowError as exc:
        return {"error": exc.code, "message": exc.message}


# ---------------------------------------------------------------------------
# Development funding
# ---------------------------------------------------------------------------


def _funding() -> SimulatedFunding | None:
    if not get_settings().is_development:
        return None
    return SimulatedFunding(get_ledger().assets)


_FUNDING_DISABLED = {
    "error": "FUNDING_DISABLED",
    "message": "funding is only available in development",
}


@mcp.tool()
async def fund_account(account: str, amount: str, asset: str = "native") -> dict:
    """Credit an account on a simulated asset ledger (development only).

    Args:
        account: Identity to credit, typically the buyer.
        amount: Amount as a decimal string.
        asset: "native", or a token id such as "TEST".
    """
    funding = _funding()
    if funding is None:
        return dict(_FUNDING_DISABLED)
    try:
        balance = funding.mint(asset, account, amount)
    except EscrowError as exc:
        logger.warning("mcp.tool_rejected", tool="fund_account", code=exc.code, reason=exc.message)
        return {"error": exc.code, "message": exc.message}
    return {"asset": str(parse_asset(asset)), "account": account, "balance": str(balance)}


@mcp.tool()
async def approve_custody(caller: str, token_id: str, amount: str) -> dict:
    """Allow custody to pull up to ``amount`` of your tokens (development only).

    Token agreements are paid from this allowance, so approve at least the
    price before calling pay.
    """
    funding = _funding()
    if funding is None:
        return dict(_FUNDING_DISABLED)
    try:
        allowance = funding.approve(token_id, caller, amount)
    except EscrowError as exc:
        logger.warning(
            "mcp.tool_rejected", tool="approve_custody", code=exc.code, reason=exc.message
        )
        return {"error": exc.code, "message": exc.message}
    return {
        "asset": str(parse_asset(token_id)),
        "owner": caller,
        "allowance": str(allowance),
        "message": "Allowance set. The buyer can now pay the token agreement.",
    }


@mcp.tool()
async def get_balance(account: str, asset: str = "native") -> dict:
    """Read an account's balance on a simulated asset ledger (development only)."""
    funding = _funding()
    if funding is None:
        return dict(_FUNDING_DISABLED)
    try:
        balance = funding.balance_of(asset, account)
    except EscrowError as exc:
        return {"error": exc.code, "message": exc.message}
    return {"asset": str(parse_asset(asset)), "account": account, "balance": str(balance)}
