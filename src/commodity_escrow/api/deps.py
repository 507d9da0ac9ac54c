"""FastAPI dependency injection providers.

These are used with Depends() in route handlers to inject the ledger,
the authenticated caller, configuration and the development funding
service.
"""

from __future__ import annotations

from fastapi import Depends, Header, HTTPException, Request

from commodity_escrow.config import Settings, get_settings
from commodity_escrow.services.escrow_service import EscrowLedger
from commodity_escrow.services.funding import SimulatedFunding

CALLER_HEADER = "X-Caller-Address"


def get_ledger(request: Request) -> EscrowLedger:
    """Provide the ledger owned by the running application."""
    return request.app.state.ledger


def get_caller(
    x_caller_address: str | None = Header(default=None, alias=CALLER_HEADER),
) -> str:
    """Provide the authenticated caller identity. Required on every mutation."""
    if not x_caller_address:
        raise HTTPException(status_code=401, detail=f"{CALLER_HEADER} header required")
    return x_caller_address


def get_optional_caller(
    x_caller_address: str | None = Header(default=None, alias=CALLER_HEADER),
) -> str | None:
    """Caller identity for read endpoints, where it only narrows the view."""
    return x_caller_address or None


def get_app_settings() -> Settings:
    """Provide the application settings."""
    return get_settings()


def require_development(settings: Settings = Depends(get_app_settings)) -> None:
    """Hide development-only routes outside development."""
    if not settings.is_development:
        raise HTTPException(status_code=404, detail="Not Found")


def get_funding(ledger: EscrowLedger = Depends(get_ledger)) -> SimulatedFunding:
    """Provide funding over the asset ledgers the running ledger uses."""
    return SimulatedFunding(ledger.assets)
