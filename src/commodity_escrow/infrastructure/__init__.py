"""Infrastructure — ledger storage and simulated asset ledgers."""

from commodity_escrow.infrastructure.assets import (
    AssetRegistry,
    InMemoryNativeBank,
    InMemoryToken,
    build_simulated_registry,
)
from commodity_escrow.infrastructure.ledger_store import AgreementStore, EventLog

__all__ = [
    "AgreementStore",
    "AssetRegistry",
    "EventLog",
    "InMemoryNativeBank",
    "InMemoryToken",
    "build_simulated_registry",
]
