"""Simulated asset ledgers for native currency and fungible tokens in memory.

These stand in for the chain's value-transfer primitives and for external
token contracts. They implement the AssetTransfer protocol, so the escrow
ledger cannot tell them apart from a real settlement backend.

Token semantics follow the usual fungible-token contract: balances,
``approve`` / ``allowance``, ``transfer`` and ``transfer_from``. Custody
pulls the buyer's payment through an allowance granted to the custody
account.
"""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from typing import TYPE_CHECKING

from commodity_escrow.domain.exceptions import InsufficientFundsError, UnknownAssetError
from commodity_escrow.logging_config import get_logger

if TYPE_CHECKING:
    from commodity_escrow.domain.models import Asset
    from commodity_escrow.domain.transfer_protocol import (
        AssetTransfer,
        NativeValueMover,
        TokenMover,
    )

logger = get_logger(__name__)

ZERO = Decimal(0)


class InMemoryBalances:
    """Balance sheet shared by both simulated asset kinds."""

    def __init__(self, custody_account: str) -> None:
        self.custody_account = custody_account
        self._balances: defaultdict[str, Decimal] = defaultdict(Decimal)

    def balance_of(self, account: str) -> Decimal:
        return self._balances.get(account, ZERO)

    def mint(self, account: str, amount: Decimal) -> None:
        """Credit ``amount`` out of thin air (test and simulation funding)."""
        if amount <= 0:
            raise ValueError("mint amount must be positive")
        self._balances[account] += amount
        logger.debug("assets.minted", account=account, amount=str(amount))

    def _move(self, source: str, destination: str, amount: Decimal) -> None:
        if amount <= 0:
            raise ValueError("transfer amount must be positive")
        available = self.balance_of(source)
        if available < amount:
            raise InsufficientFundsError(source, str(amount), str(available))
        self._balances[source] -= amount
        self._balances[destination] += amount


class InMemoryNativeBank(InMemoryBalances):
    """Native currency. ``transfer_in`` moves the value a buyer attached."""

    def __init__(self, custody_account: str, symbol: str = "ETH") -> None:
        super().__init__(custody_account)
        self.symbol = symbol

    def transfer_in(self, sender: str, amount: Decimal) -> bool:
        self._move(sender, self.custody_account, amount)
        logger.debug("native.transfer_in", sender=sender, amount=str(amount))
        return True

    def transfer_out(self, recipient: str, amount: Decimal) -> bool:
        self._move(self.custody_account, recipient, amount)
        logger.debug("native.transfer_out", recipient=recipient, amount=str(amount))
        return True


class InMemoryToken(InMemoryBalances):
    """A fungible token contract."""

    def __init__(self, token_id: str, custody_account: str) -> None:
        super().__init__(custody_account)
        self.token_id = token_id
        self._allowances: defaultdict[tuple[str, str], Decimal] = defaultdict(Decimal)

    def approve(self, owner: str, spender: str, amount: Decimal) -> bool:
        if amount < 0:
            raise ValueError("allowance cannot be negative")
        self._allowances[(owner, spender)] = amount
        logger.debug(
            "token.approved", token=self.token_id, owner=owner, spender=spender, amount=str(amount)
        )
        return True

    def allowance(self, owner: str, spender: str) -> Decimal:
        return self._allowances.get((owner, spender), ZERO)

    def transfer(self, sender: str, recipient: str, amount: Decimal) -> bool:
        self._move(sender, recipient, amount)
        return True

    def transfer_from(
        self, spender: str, owner: str, recipient: str, amount: Decimal
    ) -> bool:
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise InsufficientFundsError(f"allowance {owner}->{spender}", str(amount), str(allowed))
        self._move(owner, recipient, amount)
        self._allowances[(owner, spender)] = allowed - amount
        return True

    # --- AssetTransfer ---

    def transfer_in(self, sender: str, amount: Decimal) -> bool:
        ok = self.transfer_from(self.custody_account, sender, self.custody_account, amount)
        logger.debug("token.transfer_in", token=self.token_id, sender=sender, amount=str(amount))
        return ok

    def transfer_out(self, recipient: str, amount: Decimal) -> bool:
        ok = self.transfer(self.custody_account, recipient, amount)
        logger.debug(
            "token.transfer_out", token=self.token_id, recipient=recipient, amount=str(amount)
        )
        return ok


class AssetRegistry:
    """Resolves an agreement's Asset to the mover that handles it."""

    def __init__(self, native: NativeValueMover) -> None:
        self._native = native
        self._tokens: dict[str, TokenMover] = {}

    @property
    def native(self) -> NativeValueMover:
        return self._native

    @property
    def token_ids(self) -> list[str]:
        return sorted(self._tokens)

    def register_token(self, token_id: str, mover: TokenMover) -> None:
        self._tokens[token_id] = mover
        logger.info("assets.token_registered", token=token_id)

    def resolve(self, asset: Asset) -> AssetTransfer:
        """Return the mover for ``asset`` or raise UnknownAssetError."""
        if asset.is_native:
            return self._native
        mover = self._tokens.get(asset.token_id or "")
        if mover is None:
            raise UnknownAssetError(asset.token_id or "")
        return mover


def build_simulated_registry(
    custody_account: str,
    native_symbol: str = "ETH",
    token_ids: list[str] | None = None,
) -> AssetRegistry:
    """Registry backed entirely by in-memory ledgers (dev, simulation, tests)."""
    registry = AssetRegistry(InMemoryNativeBank(custody_account, symbol=native_symbol))
    for token_id in token_ids or []:
        registry.register_token(token_id, InMemoryToken(token_id, custody_account))
    return registry
