"""Escrow Ledger: the agreement state machine and custody engine.

This is the application layer that coordinates between:
    - Authorization guards (who may call)
    - Domain state machine (transition guard)
    - Agreement store (the ledger records)
    - Asset movers (custody in / out)
    - Event log (emitted notifications)

Every mutating operation runs the same fixed sequence: authorization check,
state precondition, state mutation, optional fund transfer, event emission.
Operations are all-or-nothing: if the transfer fails, the agreement record
is restored and no event is emitted. Both the REST routes and the MCP tools
call into this class, ensuring a single source of truth for all rules.
"""

from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

from statemachine.exceptions import TransitionNotAllowed

from commodity_escrow.domain.enums import AgreementStatus, EventType
from commodity_escrow.domain.exceptions import (
    AgreementNotFoundError,
    AgreementValidationError,
    EscrowError,
    InvalidStateTransitionError,
    PaymentAmountError,
    TransferError,
)
from commodity_escrow.domain.guards import (
    is_authorized,
    only_arbitrator,
    only_buyer,
    only_buyer_or_seller,
    only_seller,
)
from commodity_escrow.domain.models import Agreement, Asset, OperationResult
from commodity_escrow.domain.state_machine import (
    SETTLEMENT_OUTCOMES,
    AgreementStateMachine,
)
from commodity_escrow.domain.transfer_protocol import TransferRequest
from commodity_escrow.infrastructure.ledger_store import AgreementStore, EventLog
from commodity_escrow.logging_config import get_logger
from commodity_escrow.services.reentrancy import NonReentrantGuard, guarded_operation

if TYPE_CHECKING:
    from collections.abc import Iterator

    from commodity_escrow.domain.guards import Guard
    from commodity_escrow.domain.models import EscrowEvent
    from commodity_escrow.domain.transfer_protocol import AssetTransfer
    from commodity_escrow.infrastructure.assets import AssetRegistry

logger = get_logger(__name__)

Amount = Decimal | int | float | str

# Role required by each state machine event, and the reason given when the
# agreement is not in a state where the event can fire.
_TRANSITION_RULES: dict[str, tuple[Guard, str]] = {
    "pay": (only_buyer, "not payable anymore"),
    "close_agreement": (only_buyer_or_seller, "not closable anymore"),
    "confirm_commodity_receival": (only_buyer, "not paid"),
    "seller_refund_buyer": (only_seller, "not paid"),
    "raise_dispute": (only_buyer_or_seller, "nothing to dispute"),
    "arbitrator_confirm_commodity_receival": (only_arbitrator, "not in dispute"),
    "arbitrator_perform_refund": (only_arbitrator, "not in dispute"),
}


def to_amount(value: Amount) -> Decimal:
    """Normalize an amount to Decimal.

    Floats go through ``str`` so ``0.25`` stays exactly ``Decimal("0.25")``.
    """
    if isinstance(value, bool):
        raise AgreementValidationError("invalid amount")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as err:
        raise AgreementValidationError("invalid amount") from err
    if not amount.is_finite():
        raise AgreementValidationError("invalid amount")
    return amount


class EscrowLedger:
    """Authoritative record of every agreement and the funds held for it.

    Args:
        assets: Resolves each agreement's asset to the mover holding custody.
        store: Agreement arena. A fresh one is created when omitted.
        events: Event log. A fresh one is created when omitted.
    """

    def __init__(
        self,
        assets: AssetRegistry,
        store: AgreementStore | None = None,
        events: EventLog | None = None,
    ) -> None:
        self._assets = assets
        self._store = store if store is not None else AgreementStore()
        self._events = events if events is not None else EventLog()
        self._guard = NonReentrantGuard()

    @property
    def assets(self) -> AssetRegistry:
        """The registry custody moves funds through."""
        return self._assets

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    @guarded_operation
    def create_native_agreement(
        self,
        caller: str,
        buyer: str,
        arbitrator: str,
        price: Amount,
        memo: str = "",
    ) -> OperationResult:
        """Open an agreement priced in native currency. ``caller`` becomes seller."""
        return self._create(caller, buyer, arbitrator, Asset.native(), price, memo)

    @guarded_operation
    def create_token_agreement(
        self,
        caller: str,
        buyer: str,
        arbitrator: str,
        token_id: str,
        price: Amount,
        memo: str = "",
    ) -> OperationResult:
        """Open an agreement priced in a fungible token. ``caller`` becomes seller."""
        token_id = (token_id or "").strip()
        if not token_id:
            raise AgreementValidationError("token not set")
        return self._create(caller, buyer, arbitrator, Asset.token(token_id), price, memo)

    def _create(
        self,
        seller: str,
        buyer: str,
        arbitrator: str,
        asset: Asset,
        price: Amount,
        memo: str,
    ) -> OperationResult:
        if not seller:
            raise AgreementValidationError("seller not set")
        if not buyer:
            raise AgreementValidationError("buyer not set")
        if not arbitrator:
            raise AgreementValidationError("arbitrator not set")
        if seller == buyer:
            raise AgreementValidationError("seller is buyer")
        if arbitrator in (seller, buyer):
            raise AgreementValidationError("arbitrator cannot be a party")
        amount = to_amount(price)
        if amount <= 0:
            raise AgreementValidationError("price not set")

        agreement = self._store.add(
            Agreement(
                id=self._store.next_id,
                seller=seller,
                buyer=buyer,
                arbitrator=arbitrator,
                price=amount,
                asset=asset,
                memo=memo,
            )
        )
        event = self._events.record(
            EventType.CREATED,
            agreement.id,
            {
                "seller": seller,
                "buyer": buyer,
                "arbitrator": arbitrator,
                "asset": asset.to_dict(),
                "price": str(amount),
                "memo": memo,
            },
        )

        logger.info(
            "agreement.created",
            agreement_id=agreement.id,
            seller=seller,
            asset=str(asset),
            price=str(amount),
        )
        return self._result(agreement, event)

    # ------------------------------------------------------------------
    # Payment
    # ------------------------------------------------------------------

    @guarded_operation
    def pay(self, caller: str, agreement_id: int, value: Amount = 0) -> OperationResult:
        """Buyer pays the price into custody.

        For native-currency agreements ``value`` is the attached amount and
        must equal the price exactly. For token agreements no value may be
        attached; the price is pulled from the buyer's allowance instead.
        """
        agreement = self._get_or_raise(agreement_id)
        new_status = self._authorize_transition(caller, agreement, "pay")

        attached = to_amount(value)
        if agreement.asset.is_native:
            if attached != agreement.price:
                raise PaymentAmountError(
                    "wrong amount", expected=str(agreement.price), attached=str(attached)
                )
        elif attached != 0:
            raise PaymentAmountError(
                "payable in tokens only", expected="0", attached=str(attached)
            )

        mover = self._assets.resolve(agreement.asset)
        with self._atomic(agreement):
            agreement.agreement_status = new_status
            agreement.paid = True
            self._transfer(
                mover,
                TransferRequest(agreement.id, agreement.asset, "in", caller, agreement.price),
            )

        event = self._events.record(
            EventType.PAID,
            agreement.id,
            {"buyer": caller, "asset": agreement.asset.to_dict(), "price": str(agreement.price)},
        )

        logger.info("agreement.paid", agreement_id=agreement.id, asset=str(agreement.asset))
        return self._result(agreement, event)

    @guarded_operation
    def close_agreement(self, caller: str, agreement_id: int) -> OperationResult:
        """Either party walks away before payment."""
        agreement = self._get_or_raise(agreement_id)
        agreement.agreement_status = self._authorize_transition(
            caller, agreement, "close_agreement"
        )

        event = self._events.record(EventType.CLOSED, agreement.id, {"caller": caller})

        logger.info("agreement.closed", agreement_id=agreement.id, by=caller)
        return self._result(agreement, event)

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    @guarded_operation
    def confirm_commodity_receival(self, caller: str, agreement_id: int) -> OperationResult:
        """Buyer confirms delivery; custody becomes the seller's."""
        return self._settle(caller, agreement_id, "confirm_commodity_receival")

    @guarded_operation
    def seller_refund_buyer(self, caller: str, agreement_id: int) -> OperationResult:
        """Seller voluntarily refunds; custody becomes the buyer's."""
        return self._settle(caller, agreement_id, "seller_refund_buyer")

    @guarded_operation
    def arbitrator_confirm_commodity_receival(
        self, caller: str, agreement_id: int
    ) -> OperationResult:
        """Arbitrator resolves a dispute in the seller's favor."""
        return self._settle(caller, agreement_id, "arbitrator_confirm_commodity_receival")

    @guarded_operation
    def arbitrator_perform_refund(self, caller: str, agreement_id: int) -> OperationResult:
        """Arbitrator resolves a dispute in the buyer's favor."""
        return self._settle(caller, agreement_id, "arbitrator_perform_refund")

    def _settle(self, caller: str, agreement_id: int, event_name: str) -> OperationResult:
        agreement = self._get_or_raise(agreement_id)
        new_status = self._authorize_transition(caller, agreement, event_name)

        outcome = SETTLEMENT_OUTCOMES[event_name]
        agreement.agreement_status = new_status
        agreement.settlement_status = outcome

        event = self._events.record(
            EventType.SETTLED, agreement.id, {"settlement_status": outcome.value}
        )

        logger.info(
            "agreement.settled",
            agreement_id=agreement.id,
            outcome=outcome.value,
            by=caller,
        )
        return self._result(agreement, event)

    # ------------------------------------------------------------------
    # Disputes
    # ------------------------------------------------------------------

    @guarded_operation
    def raise_dispute(self, caller: str, agreement_id: int) -> OperationResult:
        """Either party hands a paid agreement to the arbitrator."""
        agreement = self._get_or_raise(agreement_id)
        agreement.agreement_status = self._authorize_transition(
            caller, agreement, "raise_dispute"
        )

        event = self._events.record(EventType.DISPUTE_RAISED, agreement.id, {"caller": caller})

        logger.info("agreement.dispute_raised", agreement_id=agreement.id, by=caller)
        return self._result(agreement, event)

    # ------------------------------------------------------------------
    # Withdrawal
    # ------------------------------------------------------------------

    @guarded_operation
    def seller_withdraw_funds(self, caller: str, agreement_id: int) -> OperationResult:
        """Seller collects custody after a settlement in the seller's favor."""
        agreement = self._get_or_raise(agreement_id)
        only_seller(caller, agreement)
        self._require_withdrawable(agreement, "seller")
        return self._withdraw(caller, agreement)

    @guarded_operation
    def buyer_withdraw_funds(self, caller: str, agreement_id: int) -> OperationResult:
        """Buyer collects custody after a settlement in the buyer's favor."""
        agreement = self._get_or_raise(agreement_id)
        only_buyer(caller, agreement)
        self._require_withdrawable(agreement, "buyer")
        return self._withdraw(caller, agreement)

    def _require_withdrawable(self, agreement: Agreement, side: str) -> None:
        attempted = f"{side}_withdraw_funds"
        if agreement.agreement_status != AgreementStatus.SETTLED:
            raise InvalidStateTransitionError(
                "not settled", agreement.agreement_status.value, attempted
            )
        if agreement.withdrawn:
            raise InvalidStateTransitionError(
                "already withdrawn", agreement.agreement_status.value, attempted
            )
        settlement = agreement.settlement_status
        favored = settlement.favors_seller if side == "seller" else settlement.favors_buyer
        if not favored:
            raise InvalidStateTransitionError(
                f"not settled in favor of {side}", settlement.value, attempted
            )

    def _withdraw(self, caller: str, agreement: Agreement) -> OperationResult:
        mover = self._assets.resolve(agreement.asset)
        # The flag is written before the transfer so a re-entering mover
        # already sees the funds as gone.
        with self._atomic(agreement):
            agreement.withdrawn = True
            self._transfer(
                mover,
                TransferRequest(agreement.id, agreement.asset, "out", caller, agreement.price),
            )

        event = self._events.record(
            EventType.FUNDS_WITHDRAWN, agreement.id, {"recipient": caller}
        )

        logger.info(
            "agreement.funds_withdrawn",
            agreement_id=agreement.id,
            recipient=caller,
            amount=str(agreement.price),
        )
        return self._result(agreement, event)

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    @property
    def next_id(self) -> int:
        """Count of agreements ever created (and the id the next one gets)."""
        return self._store.next_id

    def get_agreement(self, agreement_id: int) -> Agreement:
        """Return a copy of an agreement or raise."""
        return self._get_or_raise(agreement_id).snapshot()

    def list_agreements(self, party: str | None = None) -> list[Agreement]:
        """All agreements, or those where ``party`` holds any role."""
        records = self._store.get_by_party(party) if party else list(self._store)
        return [a.snapshot() for a in records]

    def get_events(self, agreement_id: int | None = None) -> list[EscrowEvent]:
        """Emitted events for one agreement, or the whole log."""
        if agreement_id is None:
            return self._events.all()
        self._get_or_raise(agreement_id)
        return self._events.get_by_agreement(agreement_id)

    def get_status(self, agreement_id: int, caller: str | None = None) -> dict[str, Any]:
        """Status with the operations that may currently succeed.

        When ``caller`` is given, only operations that caller is allowed to
        perform are listed.
        """
        agreement = self._get_or_raise(agreement_id)
        return {
            "agreement_id": agreement.id,
            "agreement_status": agreement.agreement_status.value,
            "settlement_status": agreement.settlement_status.value,
            "paid": agreement.paid,
            "withdrawn": agreement.withdrawn,
            "allowed_actions": self._allowed_actions(agreement, caller),
        }

    def supported_assets(self) -> list[str]:
        """Assets custody can currently move, e.g. ``["native", "token:TEST"]``."""
        return [str(Asset.native())] + [
            str(Asset.token(token_id)) for token_id in self._assets.token_ids
        ]

    def funds_in_custody(self, asset: Asset) -> Decimal:
        """Sum of prices paid in ``asset`` and not yet withdrawn."""
        return sum(
            (
                a.price
                for a in self._store
                if a.asset == asset and a.paid and not a.withdrawn
            ),
            Decimal(0),
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _get_or_raise(self, agreement_id: int) -> Agreement:
        agreement = self._store.get_by_id(agreement_id)
        if agreement is None:
            raise AgreementNotFoundError(agreement_id)
        return agreement

    def _authorize_transition(
        self, caller: str, agreement: Agreement, event_name: str
    ) -> AgreementStatus:
        """Check the caller's role, then the state precondition.

        Returns the status the agreement moves to. Nothing is mutated here.
        Raises AuthorizationError or InvalidStateTransitionError.
        """
        guard, reason = _TRANSITION_RULES[event_name]
        guard(caller, agreement)

        sm = AgreementStateMachine(current_status=agreement.agreement_status.value)
        try:
            getattr(sm, event_name)()
        except TransitionNotAllowed as err:
            raise InvalidStateTransitionError(
                reason, agreement.agreement_status.value, event_name
            ) from err
        return sm.status

    def _allowed_actions(self, agreement: Agreement, caller: str | None) -> list[str]:
        sm = AgreementStateMachine(current_status=agreement.agreement_status.value)
        actions = [
            name
            for name in sm.get_allowed_events()
            if caller is None or is_authorized(_TRANSITION_RULES[name][0], caller, agreement)
        ]
        if agreement.agreement_status == AgreementStatus.SETTLED and not agreement.withdrawn:
            if agreement.settlement_status.favors_seller and (
                caller is None or is_authorized(only_seller, caller, agreement)
            ):
                actions.append("seller_withdraw_funds")
            if agreement.settlement_status.favors_buyer and (
                caller is None or is_authorized(only_buyer, caller, agreement)
            ):
                actions.append("buyer_withdraw_funds")
        return actions

    @contextmanager
    def _atomic(self, agreement: Agreement) -> Iterator[None]:
        """Restore the agreement record if the enclosed block raises."""
        snapshot = agreement.snapshot()
        try:
            yield
        except Exception:
            agreement.restore(snapshot)
            logger.warning("agreement.rolled_back", agreement_id=agreement.id)
            raise

    def _transfer(self, mover: AssetTransfer, request: TransferRequest) -> None:
        """Invoke the asset mover; anything but a truthy return aborts."""
        try:
            if request.direction == "in":
                ok = mover.transfer_in(request.counterparty, request.amount)
            else:
                ok = mover.transfer_out(request.counterparty, request.amount)
        except EscrowError:
            logger.error("custody.transfer_failed", **request.to_dict())
            raise
        except Exception as exc:
            logger.error("custody.transfer_failed", error=str(exc), **request.to_dict())
            raise TransferError(
                f"transfer {request.direction} failed: {exc}", request.direction
            ) from exc
        if not ok:
            logger.error("custody.transfer_declined", **request.to_dict())
            raise TransferError(f"transfer {request.direction} declined", request.direction)

    def _result(self, agreement: Agreement, event: EscrowEvent) -> OperationResult:
        return OperationResult(agreement=agreement.snapshot(), events=(event,))
