"""Shared test fixtures for the Commodity Trade Escrow test suite.

Provides:
    - Party identities (seller, buyer, arbitrator, outsider)
    - A ledger bound to in-memory native and token asset ledgers
    - Agreements pre-driven into each lifecycle state
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from commodity_escrow.domain.models import Asset
from commodity_escrow.infrastructure.assets import (
    AssetRegistry,
    InMemoryNativeBank,
    InMemoryToken,
    build_simulated_registry,
)
from commodity_escrow.services.escrow_service import EscrowLedger

CUSTODY = "0x" + "E5" * 20
SELLER = "0x" + "5" * 40
BUYER = "0x" + "B" * 40
ARBITRATOR = "0x" + "A" * 40
OUTSIDER = "0x" + "0" * 39 + "1"
TOKEN_ID = "TEST"

PRICE = Decimal("0.25")
INITIAL_MINT = Decimal("1")


# ---------------------------------------------------------------------------
# Asset Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def registry() -> AssetRegistry:
    """Registry with the native bank and one token, buyer funded in both."""
    registry = build_simulated_registry(CUSTODY, token_ids=[TOKEN_ID])
    registry.native.mint(BUYER, INITIAL_MINT)
    registry.resolve(Asset.token(TOKEN_ID)).mint(BUYER, INITIAL_MINT)
    return registry


@pytest.fixture
def native(registry: AssetRegistry) -> InMemoryNativeBank:
    return registry.native


@pytest.fixture
def token(registry: AssetRegistry) -> InMemoryToken:
    return registry.resolve(Asset.token(TOKEN_ID))


# ---------------------------------------------------------------------------
# Ledger Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def ledger(registry: AssetRegistry) -> EscrowLedger:
    return EscrowLedger(registry)


@pytest.fixture
def native_agreement(ledger: EscrowLedger) -> int:
    """An Open agreement in native currency. Returns its id."""
    result = ledger.create_native_agreement(SELLER, BUYER, ARBITRATOR, PRICE, "Agreement in ETH")
    return result.agreement.id


@pytest.fixture
def token_agreement(ledger: EscrowLedger) -> int:
    """An Open agreement in tokens. Returns its id."""
    result = ledger.create_token_agreement(
        SELLER, BUYER, ARBITRATOR, TOKEN_ID, PRICE, "Agreement in Tokens"
    )
    return result.agreement.id


@pytest.fixture
def paid_native_agreement(ledger: EscrowLedger, native_agreement: int) -> int:
    ledger.pay(BUYER, native_agreement, value=PRICE)
    return native_agreement


@pytest.fixture
def paid_token_agreement(
    ledger: EscrowLedger, token: InMemoryToken, token_agreement: int
) -> int:
    token.approve(BUYER, CUSTODY, PRICE)
    ledger.pay(BUYER, token_agreement)
    return token_agreement


@pytest.fixture
def disputed_agreement(ledger: EscrowLedger, paid_native_agreement: int) -> int:
    ledger.raise_dispute(BUYER, paid_native_agreement)
    return paid_native_agreement
