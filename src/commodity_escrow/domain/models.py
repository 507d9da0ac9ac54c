"""Agreement data model.

Plain dataclasses, no framework imports. The ledger owns ``Agreement``
instances and mutates them in place; everything handed back to callers is a
copy (see ``Agreement.snapshot``) so outside code can never bypass the
state machine.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from commodity_escrow.domain.enums import (
    AgreementStatus,
    AssetKind,
    EventType,
    SettlementStatus,
)

if TYPE_CHECKING:
    from decimal import Decimal


@dataclass(frozen=True)
class Asset:
    """What an agreement is denominated in: native currency or one token.

    Always build through ``Asset.native()`` or ``Asset.token(token_id)``.
    A token asset without an identifier cannot be constructed.
    """

    kind: AssetKind
    token_id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", AssetKind(self.kind))
        if self.kind is AssetKind.NATIVE and self.token_id is not None:
            raise ValueError("native asset cannot carry a token id")
        if self.kind is AssetKind.TOKEN and not self.token_id:
            raise ValueError("token asset requires a token id")

    @classmethod
    def native(cls) -> Asset:
        return cls(kind=AssetKind.NATIVE)

    @classmethod
    def token(cls, token_id: str) -> Asset:
        return cls(kind=AssetKind.TOKEN, token_id=token_id)

    @property
    def is_native(self) -> bool:
        return self.kind is AssetKind.NATIVE

    def to_dict(self) -> dict[str, str | None]:
        return {"kind": self.kind.value, "token_id": self.token_id}

    def __str__(self) -> str:
        return self.kind.value if self.is_native else f"token:{self.token_id}"


@dataclass
class Agreement:
    """One seller-buyer trade record.

    Attributes:
        id: Sequential identifier assigned by the ledger (0, 1, 2, ...).
        seller: Identity that created the agreement.
        buyer: Identity that pays; never equal to seller.
        arbitrator: Third identity allowed to settle a dispute.
        price: Positive amount in units of ``asset``.
        asset: Native currency or a specific token.
        memo: Free-form text, opaque to the ledger.
        paid: True once the buyer's payment entered custody.
        withdrawn: True once custody funds left the ledger. Never reset.
        agreement_status: Lifecycle state.
        settlement_status: Settlement outcome, meaningful only when Settled.
    """

    id: int
    seller: str
    buyer: str
    arbitrator: str
    price: Decimal
    asset: Asset
    memo: str = ""
    paid: bool = False
    withdrawn: bool = False
    agreement_status: AgreementStatus = AgreementStatus.OPEN
    settlement_status: SettlementStatus = SettlementStatus.NOT_SETTLED

    @property
    def parties(self) -> tuple[str, str]:
        return (self.seller, self.buyer)

    def involves(self, identity: str) -> bool:
        """True if ``identity`` holds any role on this agreement."""
        return identity in (self.seller, self.buyer, self.arbitrator)

    def snapshot(self) -> Agreement:
        """Return a detached copy of the record."""
        return dataclasses.replace(self)

    def restore(self, snapshot: Agreement) -> None:
        """Overwrite the mutable fields from an earlier snapshot."""
        self.paid = snapshot.paid
        self.withdrawn = snapshot.withdrawn
        self.agreement_status = snapshot.agreement_status
        self.settlement_status = snapshot.settlement_status

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "seller": self.seller,
            "buyer": self.buyer,
            "arbitrator": self.arbitrator,
            "price": str(self.price),
            "asset": self.asset.to_dict(),
            "memo": self.memo,
            "paid": self.paid,
            "withdrawn": self.withdrawn,
            "agreement_status": self.agreement_status.value,
            "settlement_status": self.settlement_status.value,
        }


@dataclass(frozen=True)
class EscrowEvent:
    """An emitted notification.

    ``sequence`` is the position in the ledger-wide event log, so events
    from different agreements can still be totally ordered.
    """

    sequence: int
    type: EventType
    agreement_id: int
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sequence": self.sequence,
            "type": self.type.value,
            "agreement_id": self.agreement_id,
            "payload": dict(self.payload),
        }


@dataclass(frozen=True)
class OperationResult:
    """What every mutating ledger operation returns.

    Attributes:
        agreement: Snapshot of the record after the operation.
        events: Events emitted by this operation, in emission order.
    """

    agreement: Agreement
    events: tuple[EscrowEvent, ...] = ()

    @property
    def event(self) -> EscrowEvent:
        """The single event of an operation (every operation emits one)."""
        return self.events[-1]
