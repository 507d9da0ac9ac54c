"""Tests for the EscrowLedger operations.

Organized by lifecycle stage:
    1. Creation (validation, sequential ids, Created event)
    2. Closing before payment
    3. Payment (native and token, wrong amounts, double pay)
    4. Voluntary settlement and withdrawal
    5. Disputes and arbitrated settlement
    6. Read surface
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from commodity_escrow.domain.enums import AgreementStatus, EventType, SettlementStatus
from commodity_escrow.domain.exceptions import (
    AgreementNotFoundError,
    AgreementValidationError,
    AuthorizationError,
    InvalidStateTransitionError,
    PaymentAmountError,
)
from commodity_escrow.domain.models import Agreement, Asset
from commodity_escrow.infrastructure.assets import InMemoryNativeBank, InMemoryToken
from commodity_escrow.services.escrow_service import EscrowLedger
from tests.conftest import (
    ARBITRATOR,
    BUYER,
    CUSTODY,
    INITIAL_MINT,
    OUTSIDER,
    PRICE,
    SELLER,
    TOKEN_ID,
)


def assert_agreement(
    agreement: Agreement,
    *,
    paid: bool,
    withdrawn: bool,
    status: AgreementStatus,
    settlement: SettlementStatus = SettlementStatus.NOT_SETTLED,
) -> None:
    assert agreement.seller == SELLER
    assert agreement.buyer == BUYER
    assert agreement.arbitrator == ARBITRATOR
    assert agreement.price == PRICE
    assert agreement.paid is paid
    assert agreement.withdrawn is withdrawn
    assert agreement.agreement_status == status
    assert agreement.settlement_status == settlement


# ===========================================================================
# 1. Creation
# ===========================================================================


class TestCreateAgreements:
    def test_create_token_agreement_updates_index(self, ledger: EscrowLedger) -> None:
        result = ledger.create_token_agreement(SELLER, BUYER, ARBITRATOR, TOKEN_ID, PRICE, "")

        assert result.event.type == EventType.CREATED
        assert result.event.agreement_id == 0
        assert result.event.payload == {
            "seller": SELLER,
            "buyer": BUYER,
            "arbitrator": ARBITRATOR,
            "asset": {"kind": "token", "token_id": TOKEN_ID},
            "price": "0.25",
            "memo": "",
        }
        agreement = ledger.get_agreement(0)
        assert_agreement(agreement, paid=False, withdrawn=False, status=AgreementStatus.OPEN)
        assert agreement.asset == Asset.token(TOKEN_ID)
        assert ledger.next_id == 1

    def test_create_native_agreement(self, ledger: EscrowLedger) -> None:
        result = ledger.create_native_agreement(SELLER, BUYER, ARBITRATOR, "0.25", "x")

        assert result.agreement.id == 0
        assert result.agreement.asset == Asset.native()
        assert result.agreement.price == Decimal("0.25")
        assert result.event.payload["asset"] == {"kind": "native", "token_id": None}

    def test_float_price_is_exact(self, ledger: EscrowLedger) -> None:
        result = ledger.create_native_agreement(SELLER, BUYER, ARBITRATOR, 0.25)
        assert result.agreement.price == Decimal("0.25")

    def test_seller_is_buyer(self, ledger: EscrowLedger) -> None:
        with pytest.raises(AgreementValidationError, match="seller is buyer"):
            ledger.create_token_agreement(SELLER, SELLER, ARBITRATOR, TOKEN_ID, PRICE)

    def test_arbitrator_cannot_be_a_party(self, ledger: EscrowLedger) -> None:
        with pytest.raises(AgreementValidationError, match="arbitrator cannot be a party"):
            ledger.create_token_agreement(SELLER, ARBITRATOR, ARBITRATOR, TOKEN_ID, PRICE)

        with pytest.raises(AgreementValidationError, match="arbitrator cannot be a party"):
            ledger.create_token_agreement(ARBITRATOR, BUYER, ARBITRATOR, TOKEN_ID, PRICE)

    @pytest.mark.parametrize("price", [0, "0", Decimal("-1")])
    def test_price_not_set(self, ledger: EscrowLedger, price) -> None:
        with pytest.raises(AgreementValidationError, match="price not set"):
            ledger.create_native_agreement(SELLER, BUYER, ARBITRATOR, price)

    @pytest.mark.parametrize("price", ["abc", "NaN", "Infinity", True])
    def test_invalid_price(self, ledger: EscrowLedger, price) -> None:
        with pytest.raises(AgreementValidationError, match="invalid amount"):
            ledger.create_native_agreement(SELLER, BUYER, ARBITRATOR, price)

    def test_missing_parties(self, ledger: EscrowLedger) -> None:
        with pytest.raises(AgreementValidationError, match="buyer not set"):
            ledger.create_native_agreement(SELLER, "", ARBITRATOR, PRICE)
        with pytest.raises(AgreementValidationError, match="arbitrator not set"):
            ledger.create_native_agreement(SELLER, BUYER, "", PRICE)
        with pytest.raises(AgreementValidationError, match="seller not set"):
            ledger.create_native_agreement("", BUYER, ARBITRATOR, PRICE)

    @pytest.mark.parametrize("token_id", ["", "   ", "\t\n"])
    def test_token_not_set(self, ledger: EscrowLedger, token_id: str) -> None:
        with pytest.raises(AgreementValidationError, match="token not set"):
            ledger.create_token_agreement(SELLER, BUYER, ARBITRATOR, token_id, PRICE)
        assert ledger.next_id == 0

    def test_token_id_is_trimmed(self, ledger: EscrowLedger) -> None:
        result = ledger.create_token_agreement(SELLER, BUYER, ARBITRATOR, " TEST ", PRICE)
        assert result.agreement.asset == Asset.token("TEST")

    def test_rejected_creation_does_not_consume_an_id(self, ledger: EscrowLedger) -> None:
        with pytest.raises(AgreementValidationError):
            ledger.create_native_agreement(SELLER, SELLER, ARBITRATOR, PRICE)
        assert ledger.next_id == 0
        assert ledger.get_events() == []

    def test_multiple_agreements(self, ledger: EscrowLedger) -> None:
        ledger.create_token_agreement(SELLER, BUYER, ARBITRATOR, TOKEN_ID, 1, "Order no: 3919314")
        assert ledger.next_id == 1
        ledger.create_token_agreement(SELLER, OUTSIDER, ARBITRATOR, TOKEN_ID, 15442, "Another")
        assert ledger.next_id == 2
        ledger.create_token_agreement(OUTSIDER, BUYER, ARBITRATOR, TOKEN_ID, 2137)
        assert ledger.next_id == 3

        first, second, third = (ledger.get_agreement(i) for i in range(3))
        assert (first.price, first.memo) == (Decimal(1), "Order no: 3919314")
        assert (second.buyer, second.price) == (OUTSIDER, Decimal(15442))
        assert (third.seller, third.buyer) == (OUTSIDER, BUYER)


# ===========================================================================
# 2. Closing
# ===========================================================================


class TestCloseAgreement:
    @pytest.mark.parametrize("caller", [SELLER, BUYER])
    def test_party_can_close_prematurely(
        self, ledger: EscrowLedger, native_agreement: int, caller: str
    ) -> None:
        result = ledger.close_agreement(caller, native_agreement)

        assert result.event.type == EventType.CLOSED
        assert result.event.payload == {"caller": caller}
        assert_agreement(
            ledger.get_agreement(native_agreement),
            paid=False,
            withdrawn=False,
            status=AgreementStatus.CLOSED,
        )

    def test_arbitrator_cannot_close(self, ledger: EscrowLedger, native_agreement: int) -> None:
        with pytest.raises(AuthorizationError, match="not a buyer or seller"):
            ledger.close_agreement(ARBITRATOR, native_agreement)

    def test_cannot_close_after_payment(
        self, ledger: EscrowLedger, paid_native_agreement: int
    ) -> None:
        with pytest.raises(InvalidStateTransitionError, match="not closable anymore"):
            ledger.close_agreement(SELLER, paid_native_agreement)

    def test_closed_agreement_cannot_be_paid(
        self, ledger: EscrowLedger, native_agreement: int
    ) -> None:
        ledger.close_agreement(BUYER, native_agreement)
        with pytest.raises(InvalidStateTransitionError, match="not payable anymore"):
            ledger.pay(BUYER, native_agreement, value=PRICE)


# ===========================================================================
# 3. Payment
# ===========================================================================


class TestPay:
    def test_buyer_pays_native(
        self, ledger: EscrowLedger, native: InMemoryNativeBank, native_agreement: int
    ) -> None:
        result = ledger.pay(BUYER, native_agreement, value=PRICE)

        assert result.event.type == EventType.PAID
        assert result.event.payload == {
            "buyer": BUYER,
            "asset": {"kind": "native", "token_id": None},
            "price": "0.25",
        }
        assert native.balance_of(CUSTODY) == PRICE
        assert ledger.funds_in_custody(Asset.native()) == PRICE
        assert_agreement(
            ledger.get_agreement(native_agreement),
            paid=True,
            withdrawn=False,
            status=AgreementStatus.PAID,
        )

    def test_buyer_pays_tokens(
        self, ledger: EscrowLedger, token: InMemoryToken, token_agreement: int
    ) -> None:
        token.approve(BUYER, CUSTODY, PRICE)
        result = ledger.pay(BUYER, token_agreement)

        assert result.event.payload["asset"] == {"kind": "token", "token_id": TOKEN_ID}
        assert token.balance_of(CUSTODY) == PRICE
        assert token.balance_of(BUYER) == INITIAL_MINT - PRICE
        assert ledger.get_agreement(token_agreement).paid is True

    def test_value_attached_to_token_payment(
        self, ledger: EscrowLedger, token: InMemoryToken, token_agreement: int
    ) -> None:
        token.approve(BUYER, CUSTODY, PRICE)
        with pytest.raises(PaymentAmountError, match="payable in tokens only"):
            ledger.pay(BUYER, token_agreement, value=PRICE)
        assert token.balance_of(CUSTODY) == 0
        assert ledger.get_agreement(token_agreement).agreement_status == AgreementStatus.OPEN

    @pytest.mark.parametrize("value", [Decimal("0.24"), Decimal("0.26"), 0])
    def test_wrong_native_amount(
        self,
        ledger: EscrowLedger,
        native: InMemoryNativeBank,
        native_agreement: int,
        value: Decimal,
    ) -> None:
        with pytest.raises(PaymentAmountError, match="wrong amount") as exc_info:
            ledger.pay(BUYER, native_agreement, value=value)

        assert exc_info.value.expected == "0.25"
        assert native.balance_of(CUSTODY) == 0
        assert_agreement(
            ledger.get_agreement(native_agreement),
            paid=False,
            withdrawn=False,
            status=AgreementStatus.OPEN,
        )

    def test_retry_after_wrong_amount(
        self, ledger: EscrowLedger, native_agreement: int
    ) -> None:
        with pytest.raises(PaymentAmountError):
            ledger.pay(BUYER, native_agreement, value=Decimal("0.24"))
        ledger.pay(BUYER, native_agreement, value=PRICE)
        assert ledger.get_agreement(native_agreement).agreement_status == AgreementStatus.PAID

    def test_cannot_pay_twice(
        self, ledger: EscrowLedger, native: InMemoryNativeBank, paid_native_agreement: int
    ) -> None:
        with pytest.raises(InvalidStateTransitionError, match="not payable anymore"):
            ledger.pay(BUYER, paid_native_agreement, value=PRICE)
        assert native.balance_of(CUSTODY) == PRICE

    @pytest.mark.parametrize("caller", [SELLER, ARBITRATOR, OUTSIDER])
    def test_only_buyer_can_pay(
        self, ledger: EscrowLedger, native_agreement: int, caller: str
    ) -> None:
        with pytest.raises(AuthorizationError, match="not a buyer"):
            ledger.pay(caller, native_agreement, value=PRICE)

    def test_role_checked_before_state(
        self, ledger: EscrowLedger, paid_native_agreement: int
    ) -> None:
        with pytest.raises(AuthorizationError, match="not a buyer"):
            ledger.pay(SELLER, paid_native_agreement, value=PRICE)

    def test_unknown_agreement(self, ledger: EscrowLedger) -> None:
        with pytest.raises(AgreementNotFoundError):
            ledger.pay(BUYER, 42, value=PRICE)


# ===========================================================================
# 4. Voluntary settlement and withdrawal
# ===========================================================================


class TestSettleAndWithdraw:
    def test_buyer_confirms_receival(
        self, ledger: EscrowLedger, paid_native_agreement: int
    ) -> None:
        result = ledger.confirm_commodity_receival(BUYER, paid_native_agreement)

        assert result.event.type == EventType.SETTLED
        assert result.event.payload == {"settlement_status": "CommodityReceivedByBuyer"}
        assert_agreement(
            ledger.get_agreement(paid_native_agreement),
            paid=True,
            withdrawn=False,
            status=AgreementStatus.SETTLED,
            settlement=SettlementStatus.COMMODITY_RECEIVED_BY_BUYER,
        )

    def test_only_buyer_confirms(self, ledger: EscrowLedger, paid_native_agreement: int) -> None:
        with pytest.raises(AuthorizationError, match="not a buyer"):
            ledger.confirm_commodity_receival(SELLER, paid_native_agreement)

    def test_cannot_confirm_unpaid(self, ledger: EscrowLedger, native_agreement: int) -> None:
        with pytest.raises(InvalidStateTransitionError, match="not paid"):
            ledger.confirm_commodity_receival(BUYER, native_agreement)

    def test_only_seller_withdraws_after_receival_native(
        self, ledger: EscrowLedger, native: InMemoryNativeBank, paid_native_agreement: int
    ) -> None:
        ledger.confirm_commodity_receival(BUYER, paid_native_agreement)

        with pytest.raises(AuthorizationError, match="not a seller"):
            ledger.seller_withdraw_funds(BUYER, paid_native_agreement)
        with pytest.raises(InvalidStateTransitionError, match="not settled in favor of buyer"):
            ledger.buyer_withdraw_funds(BUYER, paid_native_agreement)

        result = ledger.seller_withdraw_funds(SELLER, paid_native_agreement)

        assert result.event.type == EventType.FUNDS_WITHDRAWN
        assert result.event.payload == {"recipient": SELLER}
        assert native.balance_of(SELLER) == PRICE
        assert native.balance_of(CUSTODY) == 0
        assert_agreement(
            ledger.get_agreement(paid_native_agreement),
            paid=True,
            withdrawn=True,
            status=AgreementStatus.SETTLED,
            settlement=SettlementStatus.COMMODITY_RECEIVED_BY_BUYER,
        )

    def test_only_seller_withdraws_after_receival_tokens(
        self, ledger: EscrowLedger, token: InMemoryToken, paid_token_agreement: int
    ) -> None:
        ledger.confirm_commodity_receival(BUYER, paid_token_agreement)
        ledger.seller_withdraw_funds(SELLER, paid_token_agreement)

        assert token.balance_of(SELLER) == PRICE
        assert token.balance_of(CUSTODY) == 0
        assert ledger.funds_in_custody(Asset.token(TOKEN_ID)) == 0

    def test_seller_refunds_buyer(self, ledger: EscrowLedger, paid_native_agreement: int) -> None:
        result = ledger.seller_refund_buyer(SELLER, paid_native_agreement)

        assert result.event.payload == {"settlement_status": "BuyerRefundedBySeller"}
        assert_agreement(
            ledger.get_agreement(paid_native_agreement),
            paid=True,
            withdrawn=False,
            status=AgreementStatus.SETTLED,
            settlement=SettlementStatus.BUYER_REFUNDED_BY_SELLER,
        )

    def test_only_seller_refunds(self, ledger: EscrowLedger, paid_native_agreement: int) -> None:
        with pytest.raises(AuthorizationError, match="not a seller"):
            ledger.seller_refund_buyer(BUYER, paid_native_agreement)

    def test_only_buyer_withdraws_after_refund_native(
        self, ledger: EscrowLedger, native: InMemoryNativeBank, paid_native_agreement: int
    ) -> None:
        ledger.seller_refund_buyer(SELLER, paid_native_agreement)

        with pytest.raises(InvalidStateTransitionError, match="not settled in favor of seller"):
            ledger.seller_withdraw_funds(SELLER, paid_native_agreement)

        ledger.buyer_withdraw_funds(BUYER, paid_native_agreement)

        assert native.balance_of(BUYER) == INITIAL_MINT
        assert ledger.get_agreement(paid_native_agreement).withdrawn is True

    def test_only_buyer_withdraws_after_refund_tokens(
        self, ledger: EscrowLedger, token: InMemoryToken, paid_token_agreement: int
    ) -> None:
        ledger.seller_refund_buyer(SELLER, paid_token_agreement)
        ledger.buyer_withdraw_funds(BUYER, paid_token_agreement)
        assert token.balance_of(BUYER) == INITIAL_MINT

    def test_settlement_is_final(self, ledger: EscrowLedger, paid_native_agreement: int) -> None:
        ledger.confirm_commodity_receival(BUYER, paid_native_agreement)

        with pytest.raises(InvalidStateTransitionError):
            ledger.seller_refund_buyer(SELLER, paid_native_agreement)
        with pytest.raises(InvalidStateTransitionError, match="nothing to dispute"):
            ledger.raise_dispute(SELLER, paid_native_agreement)
        assert (
            ledger.get_agreement(paid_native_agreement).settlement_status
            == SettlementStatus.COMMODITY_RECEIVED_BY_BUYER
        )

    def test_withdraw_exactly_once(
        self, ledger: EscrowLedger, native: InMemoryNativeBank, paid_native_agreement: int
    ) -> None:
        ledger.confirm_commodity_receival(BUYER, paid_native_agreement)
        ledger.seller_withdraw_funds(SELLER, paid_native_agreement)

        with pytest.raises(InvalidStateTransitionError, match="already withdrawn"):
            ledger.seller_withdraw_funds(SELLER, paid_native_agreement)
        with pytest.raises(InvalidStateTransitionError):
            ledger.buyer_withdraw_funds(BUYER, paid_native_agreement)
        assert native.balance_of(SELLER) == PRICE

    def test_cannot_withdraw_before_settlement(
        self, ledger: EscrowLedger, paid_native_agreement: int
    ) -> None:
        with pytest.raises(InvalidStateTransitionError, match="not settled"):
            ledger.seller_withdraw_funds(SELLER, paid_native_agreement)
        with pytest.raises(InvalidStateTransitionError, match="not settled"):
            ledger.buyer_withdraw_funds(BUYER, paid_native_agreement)

    def test_outsider_cannot_withdraw(
        self, ledger: EscrowLedger, paid_native_agreement: int
    ) -> None:
        ledger.confirm_commodity_receival(BUYER, paid_native_agreement)
        with pytest.raises(AuthorizationError, match="not a seller"):
            ledger.seller_withdraw_funds(OUTSIDER, paid_native_agreement)
        with pytest.raises(AuthorizationError, match="not a buyer"):
            ledger.buyer_withdraw_funds(ARBITRATOR, paid_native_agreement)


# ===========================================================================
# 5. Disputes
# ===========================================================================


class TestDisputes:
    def test_no_dispute_before_pay(self, ledger: EscrowLedger, native_agreement: int) -> None:
        with pytest.raises(InvalidStateTransitionError, match="nothing to dispute"):
            ledger.raise_dispute(BUYER, native_agreement)
        with pytest.raises(InvalidStateTransitionError, match="nothing to dispute"):
            ledger.raise_dispute(SELLER, native_agreement)

    @pytest.mark.parametrize("caller", [SELLER, BUYER])
    def test_party_may_start_dispute(
        self, ledger: EscrowLedger, paid_native_agreement: int, caller: str
    ) -> None:
        result = ledger.raise_dispute(caller, paid_native_agreement)

        assert result.event.type == EventType.DISPUTE_RAISED
        assert result.event.payload == {"caller": caller}
        assert_agreement(
            ledger.get_agreement(paid_native_agreement),
            paid=True,
            withdrawn=False,
            status=AgreementStatus.IN_DISPUTE,
        )

    def test_arbitrator_cannot_start_dispute(
        self, ledger: EscrowLedger, paid_native_agreement: int
    ) -> None:
        with pytest.raises(AuthorizationError, match="not a buyer or seller"):
            ledger.raise_dispute(ARBITRATOR, paid_native_agreement)

    def test_dispute_cannot_be_raised_twice(
        self, ledger: EscrowLedger, disputed_agreement: int
    ) -> None:
        with pytest.raises(InvalidStateTransitionError, match="nothing to dispute"):
            ledger.raise_dispute(SELLER, disputed_agreement)

    def test_arbitrator_refunds_buyer(self, ledger: EscrowLedger, disputed_agreement: int) -> None:
        result = ledger.arbitrator_perform_refund(ARBITRATOR, disputed_agreement)

        assert result.event.payload == {"settlement_status": "BuyerRefundedByArbitrator"}
        assert_agreement(
            ledger.get_agreement(disputed_agreement),
            paid=True,
            withdrawn=False,
            status=AgreementStatus.SETTLED,
            settlement=SettlementStatus.BUYER_REFUNDED_BY_ARBITRATOR,
        )

    def test_buyer_withdraws_after_arbitrated_refund(
        self, ledger: EscrowLedger, native: InMemoryNativeBank, disputed_agreement: int
    ) -> None:
        ledger.arbitrator_perform_refund(ARBITRATOR, disputed_agreement)

        with pytest.raises(InvalidStateTransitionError):
            ledger.seller_withdraw_funds(SELLER, disputed_agreement)
        ledger.buyer_withdraw_funds(BUYER, disputed_agreement)
        with pytest.raises(InvalidStateTransitionError, match="already withdrawn"):
            ledger.buyer_withdraw_funds(BUYER, disputed_agreement)
        with pytest.raises(InvalidStateTransitionError):
            ledger.seller_withdraw_funds(SELLER, disputed_agreement)

        assert native.balance_of(BUYER) == INITIAL_MINT
        assert native.balance_of(SELLER) == 0

    def test_arbitrator_confirms_receival(
        self, ledger: EscrowLedger, disputed_agreement: int
    ) -> None:
        result = ledger.arbitrator_confirm_commodity_receival(ARBITRATOR, disputed_agreement)

        assert result.event.payload == {
            "settlement_status": "CommodityReceivedConfirmedByArbitrator"
        }
        assert (
            ledger.get_agreement(disputed_agreement).settlement_status
            == SettlementStatus.COMMODITY_RECEIVED_CONFIRMED_BY_ARBITRATOR
        )

    def test_seller_withdraws_after_arbitrated_receival(
        self, ledger: EscrowLedger, native: InMemoryNativeBank, disputed_agreement: int
    ) -> None:
        ledger.arbitrator_confirm_commodity_receival(ARBITRATOR, disputed_agreement)

        with pytest.raises(InvalidStateTransitionError):
            ledger.buyer_withdraw_funds(BUYER, disputed_agreement)
        ledger.seller_withdraw_funds(SELLER, disputed_agreement)
        assert native.balance_of(SELLER) == PRICE

    @pytest.mark.parametrize("caller", [SELLER, BUYER, OUTSIDER])
    def test_only_arbitrator_resolves(
        self, ledger: EscrowLedger, disputed_agreement: int, caller: str
    ) -> None:
        with pytest.raises(AuthorizationError, match="not an arbitrator"):
            ledger.arbitrator_perform_refund(caller, disputed_agreement)
        with pytest.raises(AuthorizationError, match="not an arbitrator"):
            ledger.arbitrator_confirm_commodity_receival(caller, disputed_agreement)

    def test_parties_cannot_settle_during_dispute(
        self, ledger: EscrowLedger, disputed_agreement: int
    ) -> None:
        with pytest.raises(InvalidStateTransitionError, match="not paid"):
            ledger.confirm_commodity_receival(BUYER, disputed_agreement)
        with pytest.raises(InvalidStateTransitionError, match="not paid"):
            ledger.seller_refund_buyer(SELLER, disputed_agreement)

    def test_arbitrator_cannot_override_voluntary_settlement(
        self, ledger: EscrowLedger, paid_native_agreement: int
    ) -> None:
        with pytest.raises(InvalidStateTransitionError, match="not in dispute"):
            ledger.arbitrator_perform_refund(ARBITRATOR, paid_native_agreement)
        ledger.confirm_commodity_receival(BUYER, paid_native_agreement)
        with pytest.raises(InvalidStateTransitionError, match="not in dispute"):
            ledger.arbitrator_perform_refund(ARBITRATOR, paid_native_agreement)


# ===========================================================================
# 6. Read surface
# ===========================================================================


class TestReadSurface:
    def test_get_agreement_returns_copy(
        self, ledger: EscrowLedger, native_agreement: int
    ) -> None:
        copy = ledger.get_agreement(native_agreement)
        copy.paid = True
        copy.agreement_status = AgreementStatus.SETTLED
        assert ledger.get_agreement(native_agreement).paid is False
        assert ledger.get_agreement(native_agreement).agreement_status == AgreementStatus.OPEN

    def test_unknown_agreement(self, ledger: EscrowLedger) -> None:
        with pytest.raises(AgreementNotFoundError) as exc_info:
            ledger.get_agreement(7)
        assert exc_info.value.code == "AGREEMENT_NOT_FOUND"

    def test_events_in_order(self, ledger: EscrowLedger, disputed_agreement: int) -> None:
        ledger.arbitrator_perform_refund(ARBITRATOR, disputed_agreement)
        ledger.buyer_withdraw_funds(BUYER, disputed_agreement)

        types = [e.type for e in ledger.get_events(disputed_agreement)]
        assert types == [
            EventType.CREATED,
            EventType.PAID,
            EventType.DISPUTE_RAISED,
            EventType.SETTLED,
            EventType.FUNDS_WITHDRAWN,
        ]

    def test_rejected_calls_emit_nothing(
        self, ledger: EscrowLedger, native_agreement: int
    ) -> None:
        with pytest.raises(PaymentAmountError):
            ledger.pay(BUYER, native_agreement, value=Decimal("0.1"))
        with pytest.raises(AuthorizationError):
            ledger.close_agreement(OUTSIDER, native_agreement)
        assert len(ledger.get_events(native_agreement)) == 1

    def test_list_agreements_by_party(
        self, ledger: EscrowLedger, native_agreement: int
    ) -> None:
        ledger.create_native_agreement(SELLER, OUTSIDER, ARBITRATOR, PRICE)
        assert len(ledger.list_agreements()) == 2
        assert [a.id for a in ledger.list_agreements(OUTSIDER)] == [1]
        assert [a.id for a in ledger.list_agreements(BUYER)] == [native_agreement]

    def test_status_lists_actions_for_caller(
        self, ledger: EscrowLedger, paid_native_agreement: int
    ) -> None:
        status = ledger.get_status(paid_native_agreement, caller=BUYER)
        assert status["agreement_status"] == "Paid"
        assert sorted(status["allowed_actions"]) == ["confirm_commodity_receival", "raise_dispute"]

        seller_view = ledger.get_status(paid_native_agreement, caller=SELLER)
        assert sorted(seller_view["allowed_actions"]) == ["raise_dispute", "seller_refund_buyer"]

        assert ledger.get_status(paid_native_agreement, caller=ARBITRATOR)["allowed_actions"] == []

    def test_status_lists_withdrawal(
        self, ledger: EscrowLedger, paid_native_agreement: int
    ) -> None:
        ledger.seller_refund_buyer(SELLER, paid_native_agreement)
        assert ledger.get_status(paid_native_agreement)["allowed_actions"] == [
            "buyer_withdraw_funds"
        ]
        ledger.buyer_withdraw_funds(BUYER, paid_native_agreement)
        assert ledger.get_status(paid_native_agreement)["allowed_actions"] == []

    def test_supported_assets(self, ledger: EscrowLedger) -> None:
        assert ledger.supported_assets() == ["native", f"token:{TOKEN_ID}"]
