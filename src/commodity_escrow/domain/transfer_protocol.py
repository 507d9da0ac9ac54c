"""Asset Transfer Protocol.

Defines the interface the ledger uses to move value in and out of custody.
This is a Protocol (structural subtyping) so concrete asset ledgers don't need
to inherit from a base class; they just need to match the shape.

Two capability variants exist: a native-value mover (the buyer's attached
value) and a token mover (pull-transfer from an allowance). The domain layer
treats both identically and assumes any call may re-enter the ledger.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, Protocol, runtime_checkable

if TYPE_CHECKING:
    from decimal import Decimal

    from commodity_escrow.domain.models import Asset


@dataclass(frozen=True)
class TransferRequest:
    """A single custody movement, kept for logs and error context.

    Attributes:
        agreement_id: Agreement the funds belong to.
        asset: Asset being moved.
        direction: "in" (party -> custody) or "out" (custody -> party).
        counterparty: The party paying in or being paid out.
        amount: Exact amount, always the agreement price.
    """

    agreement_id: int
    asset: Asset
    direction: Literal["in", "out"]
    counterparty: str
    amount: Decimal

    def to_dict(self) -> dict:
        return {
            "agreement_id": self.agreement_id,
            "asset": str(self.asset),
            "direction": self.direction,
            "counterparty": self.counterparty,
            "amount": str(self.amount),
        }


@runtime_checkable
class AssetTransfer(Protocol):
    """Protocol that all asset movers must satisfy.

    Concrete implementations:
        - infrastructure/assets.py InMemoryNativeBank (native currency)
        - infrastructure/assets.py InMemoryToken      (fungible token)

    Both transfer methods must either move exactly ``amount`` and return a
    truthy value, or raise / return a falsy value. The ledger treats a falsy
    return as a declined transfer and rolls the whole operation back.
    """

    def transfer_in(self, sender: str, amount: Decimal) -> bool:
        """Pull ``amount`` from ``sender`` into custody."""
        ...

    def transfer_out(self, recipient: str, amount: Decimal) -> bool:
        """Push ``amount`` from custody to ``recipient``."""
        ...

    def balance_of(self, account: str) -> Decimal:
        """Read-only balance lookup."""
        ...


@runtime_checkable
class NativeValueMover(AssetTransfer, Protocol):
    """Mover for the native currency; payment value arrives attached to the call."""

    symbol: str


@runtime_checkable
class TokenMover(AssetTransfer, Protocol):
    """Mover for a fungible token; payment is pulled from an allowance."""

    token_id: str
