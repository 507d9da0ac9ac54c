"""Domain layer — pure business logic with zero framework dependencies."""

from commodity_escrow.domain.enums import (
    AgreementStatus,
    AssetKind,
    EventType,
    SettlementStatus,
)
from commodity_escrow.domain.exceptions import (
    AgreementNotFoundError,
    AgreementValidationError,
    AuthorizationError,
    EscrowError,
    InvalidStateTransitionError,
    PaymentAmountError,
    ReentrantCallError,
    TransferError,
)
from commodity_escrow.domain.models import (
    Agreement,
    Asset,
    EscrowEvent,
    OperationResult,
)
from commodity_escrow.domain.state_machine import (
    AgreementStateMachine,
    validate_transition,
)
from commodity_escrow.domain.transfer_protocol import (
    AssetTransfer,
    TransferRequest,
)

__all__ = [
    "AgreementStatus",
    "AssetKind",
    "EventType",
    "SettlementStatus",
    "AgreementNotFoundError",
    "AgreementValidationError",
    "AuthorizationError",
    "EscrowError",
    "InvalidStateTransitionError",
    "PaymentAmountError",
    "ReentrantCallError",
    "TransferError",
    "Agreement",
    "Asset",
    "EscrowEvent",
    "OperationResult",
    "AgreementStateMachine",
    "validate_transition",
    "AssetTransfer",
    "TransferRequest",
]
