"""Agreement State Machine Guard.

Uses python-statemachine to enforce legal state transitions at the domain level.
No matter what the API, the MCP tools or a misbehaving asset contract do,
an illegal transition (e.g., Open -> Settled) will raise TransitionNotAllowed.

The state machine is instantiated per-call and validates a transition before
the ledger's Agreement record is updated.

Transition table:
    Open       -> Paid       (pay)
    Open       -> Closed     (close_agreement)
    Paid       -> Settled    (confirm_commodity_receival)
    Paid       -> Settled    (seller_refund_buyer)
    Paid       -> InDispute  (raise_dispute)
    InDispute  -> Settled    (arbitrator_confirm_commodity_receival)
    InDispute  -> Settled    (arbitrator_perform_refund)

Withdrawals are not transitions: an agreement stays Settled and only its
``withdrawn`` flag flips. Closed and Settled are final.
"""

from __future__ import annotations

from statemachine import State, StateMachine

from commodity_escrow.domain.enums import AgreementStatus, SettlementStatus

# Settlement outcome recorded by each settling event.
SETTLEMENT_OUTCOMES: dict[str, SettlementStatus] = {
    "confirm_commodity_receival": SettlementStatus.COMMODITY_RECEIVED_BY_BUYER,
    "seller_refund_buyer": SettlementStatus.BUYER_REFUNDED_BY_SELLER,
    "arbitrator_confirm_commodity_receival": (
        SettlementStatus.COMMODITY_RECEIVED_CONFIRMED_BY_ARBITRATOR
    ),
    "arbitrator_perform_refund": SettlementStatus.BUYER_REFUNDED_BY_ARBITRATOR,
}


class AgreementStateMachine(StateMachine):
    """State machine that guards agreement lifecycle transitions.

    Usage:
        sm = AgreementStateMachine(current_status="Paid")
        sm.raise_dispute()  # transitions to InDispute
        sm.status           # "InDispute"
    """

    # --- States ---
    OPEN = State("Open", value=AgreementStatus.OPEN.value, initial=True)
    PAID = State("Paid", value=AgreementStatus.PAID.value)
    IN_DISPUTE = State("InDispute", value=AgreementStatus.IN_DISPUTE.value)
    SETTLED = State("Settled", value=AgreementStatus.SETTLED.value, final=True)
    CLOSED = State("Closed", value=AgreementStatus.CLOSED.value, final=True)

    # --- Events / Transitions ---

    # Payment
    pay = OPEN.to(PAID)
    close_agreement = OPEN.to(CLOSED)

    # Voluntary settlement
    confirm_commodity_receival = PAID.to(SETTLED)
    seller_refund_buyer = PAID.to(SETTLED)

    # Disputes
    raise_dispute = PAID.to(IN_DISPUTE)
    arbitrator_confirm_commodity_receival = IN_DISPUTE.to(SETTLED)
    arbitrator_perform_refund = IN_DISPUTE.to(SETTLED)

    def __init__(self, current_status: str = AgreementStatus.OPEN.value) -> None:
        """Initialize the state machine at a given status.

        Args:
            current_status: The current AgreementStatus value (e.g., "Paid").
                           Must match one of the State value strings exactly.
        """
        valid_values = {s.value for s in self.states}
        current_status = str(current_status)
        if current_status not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(
                f"Unknown status '{current_status}'. Valid states: {valid}"
            )
        super().__init__(start_value=current_status)

    @property
    def status(self) -> AgreementStatus:
        """Return the current state as an AgreementStatus."""
        return AgreementStatus(self.current_state.value)

    def get_allowed_events(self) -> list[str]:
        """Return a list of event names that can fire from the current state."""
        return [getattr(event, "id", event.name) for event in self.allowed_events]


def validate_transition(current_status: str, event_name: str) -> AgreementStatus:
    """Validate a state transition and return the new status.

    Creates a temporary state machine, fires the named event, and returns
    the resulting status.

    Raises:
        TransitionNotAllowed: If the transition is illegal.
        ValueError: If the status or event name is invalid.
    """
    sm = AgreementStateMachine(current_status=current_status)

    event_method = getattr(sm, event_name, None)
    if event_method is None or not callable(event_method):
        raise ValueError(
            f"Unknown event '{event_name}'. "
            f"Allowed events from {current_status}: {sm.get_allowed_events()}"
        )

    event_method()
    return sm.status
