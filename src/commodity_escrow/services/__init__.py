"""Application services."""

from commodity_escrow.services.escrow_service import EscrowLedger
from commodity_escrow.services.funding import SimulatedFunding
from commodity_escrow.services.reentrancy import NonReentrantGuard

__all__ = ["EscrowLedger", "NonReentrantGuard", "SimulatedFunding"]
