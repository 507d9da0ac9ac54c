"""Domain enumerations for the Commodity Trade Escrow.

These enums define the canonical states and types used throughout the system.
They are framework-agnostic (no FastAPI, no pydantic imports).
"""

import enum


class AgreementStatus(enum.StrEnum):
    """Lifecycle states of a trade agreement.

    State transitions are enforced by the AgreementStateMachine guard.
    See domain/state_machine.py for the transition table.
    """

    OPEN = "Open"
    PAID = "Paid"
    IN_DISPUTE = "InDispute"
    SETTLED = "Settled"
    CLOSED = "Closed"


class SettlementStatus(enum.StrEnum):
    """Why an agreement reached Settled. Decides who may withdraw custody."""

    NOT_SETTLED = "NotSettled"
    COMMODITY_RECEIVED_BY_BUYER = "CommodityReceivedByBuyer"
    BUYER_REFUNDED_BY_SELLER = "BuyerRefundedBySeller"
    COMMODITY_RECEIVED_CONFIRMED_BY_ARBITRATOR = "CommodityReceivedConfirmedByArbitrator"
    BUYER_REFUNDED_BY_ARBITRATOR = "BuyerRefundedByArbitrator"

    @property
    def favors_seller(self) -> bool:
        return self in (
            SettlementStatus.COMMODITY_RECEIVED_BY_BUYER,
            SettlementStatus.COMMODITY_RECEIVED_CONFIRMED_BY_ARBITRATOR,
        )

    @property
    def favors_buyer(self) -> bool:
        return self in (
            SettlementStatus.BUYER_REFUNDED_BY_SELLER,
            SettlementStatus.BUYER_REFUNDED_BY_ARBITRATOR,
        )


class EventType(enum.StrEnum):
    """Notifications emitted by the ledger.

    Every successful mutating operation MUST produce exactly one event.
    Rejected operations produce none.
    """

    CREATED = "Created"
    PAID = "Paid"
    CLOSED = "Closed"
    DISPUTE_RAISED = "DisputeRaised"
    SETTLED = "Settled"
    FUNDS_WITHDRAWN = "FundsWithdrawn"


class AssetKind(enum.StrEnum):
    """What an agreement is priced in."""

    NATIVE = "native"
    TOKEN = "token"
