"""Health check endpoint.

Reports ledger size and the assets the custody registry can move.
Used by container healthchecks and load balancers.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from commodity_escrow import __version__
from commodity_escrow.api.deps import get_app_settings, get_ledger
from commodity_escrow.config import Settings
from commodity_escrow.schemas.agreement import HealthResponse
from commodity_escrow.services.escrow_service import EscrowLedger

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns the application status and the size of the ledger.",
)
async def health_check(
    ledger: EscrowLedger = Depends(get_ledger),
    settings: Settings = Depends(get_app_settings),
) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=__version__,
        environment=settings.app_env,
        agreements=ledger.next_id,
        assets=ledger.supported_assets(),
    )
