"""Funding for the simulated asset ledgers.

A freshly started app holds no balances, so nothing could ever be paid.
In development the REST routes and MCP tools expose this service to mint
balances, grant custody an allowance and read balances back. It only
works against the in-memory ledgers; a registry backed by anything else
rejects every request.

Asset names are ``"native"``, ``"token:<id>"`` or a bare token id.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from commodity_escrow.domain.exceptions import AssetOperationError, UnknownAssetError
from commodity_escrow.domain.models import Asset
from commodity_escrow.infrastructure.assets import InMemoryBalances, InMemoryToken
from commodity_escrow.logging_config import get_logger
from commodity_escrow.services.escrow_service import Amount, to_amount

if TYPE_CHECKING:
    from commodity_escrow.infrastructure.assets import AssetRegistry

logger = get_logger(__name__)


def parse_asset(name: str) -> Asset:
    """Turn an asset name into an Asset or raise AssetOperationError."""
    name = (name or "").strip()
    if name == "native":
        return Asset.native()
    token_id = name.removeprefix("token:").strip()
    if not token_id:
        raise AssetOperationError("asset not set", name)
    return Asset.token(token_id)


class SimulatedFunding:
    """Mint, approve and balance reads over a registry of in-memory ledgers."""

    def __init__(self, assets: AssetRegistry) -> None:
        self._assets = assets

    def mint(self, asset_name: str, account: str, amount: Amount) -> Decimal:
        """Credit ``account`` and return its new balance."""
        asset, ledger = self._ledger(asset_name)
        value = self._positive(amount, asset)
        if not account:
            raise AssetOperationError("account not set", str(asset))
        ledger.mint(account, value)
        balance = ledger.balance_of(account)
        logger.info("funding.minted", asset=str(asset), account=account, amount=value)
        return balance

    def approve(
        self, asset_name: str, owner: str, amount: Amount, spender: str | None = None
    ) -> Decimal:
        """Set ``owner``'s allowance for ``spender`` (custody by default)."""
        asset, ledger = self._ledger(asset_name)
        if not isinstance(ledger, InMemoryToken):
            raise AssetOperationError("native currency has no allowances", str(asset))
        value = to_amount(amount)
        if value < 0:
            raise AssetOperationError("allowance cannot be negative", str(asset))
        spender = spender or ledger.custody_account
        ledger.approve(owner, spender, value)
        logger.info(
            "funding.approved", asset=str(asset), owner=owner, spender=spender, amount=value
        )
        return ledger.allowance(owner, spender)

    def balance_of(self, asset_name: str, account: str) -> Decimal:
        _, ledger = self._ledger(asset_name)
        return ledger.balance_of(account)

    def allowance(self, asset_name: str, owner: str, spender: str | None = None) -> Decimal:
        asset, ledger = self._ledger(asset_name)
        if not isinstance(ledger, InMemoryToken):
            raise AssetOperationError("native currency has no allowances", str(asset))
        return ledger.allowance(owner, spender or ledger.custody_account)

    def custody_account(self, asset_name: str) -> str:
        _, ledger = self._ledger(asset_name)
        return ledger.custody_account

    def _ledger(self, asset_name: str) -> tuple[Asset, InMemoryBalances]:
        asset = parse_asset(asset_name)
        try:
            mover = self._assets.resolve(asset)
        except UnknownAssetError as err:
            raise AssetOperationError(err.message, str(asset)) from err
        if not isinstance(mover, InMemoryBalances):
            raise AssetOperationError("asset is not simulated", str(asset))
        return asset, mover

    @staticmethod
    def _positive(amount: Amount, asset: Asset) -> Decimal:
        value = to_amount(amount)
        if value <= 0:
            raise AssetOperationError("amount must be positive", str(asset))
        return value
