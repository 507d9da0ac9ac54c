"""Domain exceptions for the Commodity Trade Escrow.

These exceptions are framework-agnostic and represent business rule violations.
Every rejection carries a short, stable reason (``message``) and a machine
``code``. They are translated to HTTP responses by the API layer's middleware.
"""

from __future__ import annotations


class EscrowError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "ESCROW_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


# --- Authorization Errors ---


class AuthorizationError(EscrowError):
    """Raised when the caller does not hold the role an operation requires."""

    def __init__(self, message: str, caller: str) -> None:
        super().__init__(message=message, code="UNAUTHORIZED")
        self.caller = caller


# --- Creation Errors ---


class AgreementValidationError(EscrowError):
    """Raised when agreement creation parameters are rejected.

    Example: buyer equals seller, zero price, arbitrator is a party.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="INVALID_AGREEMENT")


class AgreementNotFoundError(EscrowError):
    """Raised when an agreement ID does not exist."""

    def __init__(self, agreement_id: int) -> None:
        super().__init__(
            message=f"agreement not found: {agreement_id}",
            code="AGREEMENT_NOT_FOUND",
        )
        self.agreement_id = agreement_id


# --- State Machine Errors ---


class InvalidStateTransitionError(EscrowError):
    """Raised when an operation is invoked in a state that forbids it.

    Example: paying an agreement that is already Paid ("not payable anymore").
    """

    def __init__(self, message: str, current_state: str, attempted: str) -> None:
        super().__init__(message=message, code="INVALID_STATE_TRANSITION")
        self.current_state = current_state
        self.attempted = attempted


# --- Payment Errors ---


class PaymentAmountError(EscrowError):
    """Raised when the value attached to a payment does not fit the agreement."""

    def __init__(self, message: str, expected: str, attached: str) -> None:
        super().__init__(message=message, code="WRONG_PAYMENT_AMOUNT")
        self.expected = expected
        self.attached = attached


class TransferError(EscrowError):
    """Raised when the asset collaborator declines a transfer."""

    def __init__(self, message: str, direction: str = "") -> None:
        super().__init__(message=message, code="TRANSFER_FAILED")
        self.direction = direction


class InsufficientFundsError(TransferError):
    """Raised by an asset ledger when a balance or allowance is too small."""

    def __init__(self, account: str, required: str, available: str) -> None:
        super().__init__(
            message=(
                f"insufficient funds: {account} required {required}, "
                f"available {available}"
            ),
        )
        self.code = "INSUFFICIENT_FUNDS"
        self.account = account


class UnknownAssetError(TransferError):
    """Raised when no asset mover is registered for a token identifier."""

    def __init__(self, token_id: str) -> None:
        super().__init__(message=f"unknown asset: {token_id}")
        self.code = "UNKNOWN_ASSET"
        self.token_id = token_id


class AssetOperationError(EscrowError):
    """Raised when a funding request cannot be served by the asset ledgers."""

    def __init__(self, message: str, asset: str) -> None:
        super().__init__(message=message, code="INVALID_ASSET_OPERATION")
        self.asset = asset


# --- Reentrancy ---


class ReentrantCallError(EscrowError):
    """Raised when a guarded operation is entered while another is in flight."""

    def __init__(self, operation: str) -> None:
        super().__init__(message="reentrant call", code="REENTRANT_CALL")
        self.operation = operation
