#!/usr/bin/env python3
"""Commodity Trade Escrow — End-to-End Simulation.

Simulates four scenarios with SellerBot, BuyerBot and ArbitratorBot agents
against in-memory asset ledgers:

    Scenario 1: Happy Path (native currency)
        - Seller opens a 0.25 ETH agreement
        - Buyer pays, confirms receival -> Settled
        - Seller withdraws the funds

    Scenario 2: Wrong Payment Amount
        - Buyer attaches 0.24, then 0.26 -> both rejected, agreement stays Open
        - Buyer attaches exactly 0.25 -> Paid

    Scenario 3: Arbitrated Refund
        - Buyer pays, seller raises a dispute -> InDispute
        - Arbitrator refunds the buyer -> Settled
        - Seller's withdrawal is rejected, buyer withdraws once, replay is rejected

    Scenario 4: Token Agreement
        - Buyer approves custody and pays in tokens
        - Seller refunds voluntarily, buyer withdraws

Usage:
    uv run python simulation.py
    uv run python simulation.py --scenario 3
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from decimal import Decimal

from commodity_escrow.config import get_settings
from commodity_escrow.domain.exceptions import EscrowError
from commodity_escrow.domain.models import Asset
from commodity_escrow.infrastructure.assets import (
    AssetRegistry,
    InMemoryToken,
    build_simulated_registry,
)
from commodity_escrow.logging_config import get_logger, setup_logging
from commodity_escrow.services.escrow_service import EscrowLedger

# ---------------------------------------------------------------------------
# Configure structured logging BEFORE running scenarios
# ---------------------------------------------------------------------------
setup_logging(log_level="INFO", json_logs=False)
logger = get_logger("simulation")

TOKEN_ID = "TEST"
PRICE = Decimal("0.25")


# ---------------------------------------------------------------------------
# Ledger setup
# ---------------------------------------------------------------------------
def build_world() -> tuple[EscrowLedger, AssetRegistry, Parties]:
    """Fresh ledger with funded parties."""
    settings = get_settings()
    registry = build_simulated_registry(
        settings.custody_account,
        native_symbol=settings.native_asset_symbol,
        token_ids=[TOKEN_ID],
    )
    parties = Parties()
    registry.native.mint(parties.buyer.wallet, Decimal("1"))
    registry.resolve(Asset.token(TOKEN_ID)).mint(parties.buyer.wallet, Decimal("1"))
    return EscrowLedger(registry), registry, parties


# ---------------------------------------------------------------------------
# Bot Agents
# ---------------------------------------------------------------------------
@dataclass
class SellerBot:
    """Simulated seller that opens agreements and collects payment."""

    wallet: str = "0x" + "5" * 40

    def open_native(self, ledger: EscrowLedger, buyer: str, arbitrator: str, memo: str) -> int:
        result = ledger.create_native_agreement(self.wallet, buyer, arbitrator, PRICE, memo)
        logger.info("🟢 SELLER: Agreement created", agreement_id=result.agreement.id)
        return result.agreement.id

    def open_token(self, ledger: EscrowLedger, buyer: str, arbitrator: str, memo: str) -> int:
        result = ledger.create_token_agreement(
            self.wallet, buyer, arbitrator, TOKEN_ID, PRICE, memo
        )
        logger.info("🟢 SELLER: Token agreement created", agreement_id=result.agreement.id)
        return result.agreement.id

    def withdraw(self, ledger: EscrowLedger, agreement_id: int) -> bool:
        operation = ledger.seller_withdraw_funds
        return attempt("🟢 SELLER: withdraw", operation, self.wallet, agreement_id)


@dataclass
class BuyerBot:
    """Simulated buyer that pays into custody."""

    wallet: str = "0x" + "B" * 40

    def pay(self, ledger: EscrowLedger, agreement_id: int, value: Decimal) -> bool:
        return attempt(
            f"🔵 BUYER: pay {value}", ledger.pay, self.wallet, agreement_id, value
        )

    def approve(self, token: InMemoryToken, amount: Decimal) -> None:
        token.approve(self.wallet, token.custody_account, amount)
        logger.info("🔵 BUYER: Custody approved", token=token.token_id, amount=str(amount))

    def withdraw(self, ledger: EscrowLedger, agreement_id: int) -> bool:
        operation = ledger.buyer_withdraw_funds
        return attempt("🔵 BUYER: withdraw", operation, self.wallet, agreement_id)


@dataclass
class ArbitratorBot:
    """Simulated arbitrator that resolves disputes."""

    wallet: str = "0x" + "A" * 40


@dataclass
class Parties:
    seller: SellerBot = field(default_factory=SellerBot)
    buyer: BuyerBot = field(default_factory=BuyerBot)
    arbitrator: ArbitratorBot = field(default_factory=ArbitratorBot)


def attempt(label: str, operation, *args) -> bool:
    """Run a ledger operation, printing the rejection reason if it fails."""
    try:
        operation(*args)
    except EscrowError as exc:
        print(f"  ❌ {label}: rejected ({exc.message})")
        return False
    print(f"  ✅ {label}")
    return True


# ---------------------------------------------------------------------------
# Print helpers
# ---------------------------------------------------------------------------
def banner(text: str) -> None:
    """Print a prominent banner."""
    width = 70
    print("\n" + "=" * width)
    print(f"  {text}")
    print("=" * width + "\n")


def section(text: str) -> None:
    """Print a section header."""
    print(f"\n--- {text} ---\n")


def print_agreement(ledger: EscrowLedger, agreement_id: int) -> None:
    agreement = ledger.get_agreement(agreement_id)
    print(f"  Status: {agreement.agreement_status} / {agreement.settlement_status}")
    print(f"  Paid: {agreement.paid}  Withdrawn: {agreement.withdrawn}")


def print_events(ledger: EscrowLedger, agreement_id: int) -> None:
    section("Events")
    for event in ledger.get_events(agreement_id):
        print(f"  #{event.sequence} {event.type}: {event.payload}")


# ===========================================================================
# Scenarios
# ===========================================================================
def scenario_1_happy_path() -> None:
    banner("SCENARIO 1: Happy Path (native currency)")
    ledger, registry, p = build_world()
    native = registry.native

    agreement_id = p.seller.open_native(ledger, p.buyer.wallet, p.arbitrator.wallet, "x")
    p.buyer.pay(ledger, agreement_id, PRICE)
    print(f"  Custody holds: {ledger.funds_in_custody(Asset.native())}")
    attempt(
        "🔵 BUYER: confirm receival",
        ledger.confirm_commodity_receival,
        p.buyer.wallet,
        agreement_id,
    )
    before = native.balance_of(p.seller.wallet)
    p.seller.withdraw(ledger, agreement_id)
    print(f"  Seller balance: {before} -> {native.balance_of(p.seller.wallet)}")

    print_agreement(ledger, agreement_id)
    print_events(ledger, agreement_id)


def scenario_2_wrong_amount() -> None:
    banner("SCENARIO 2: Wrong Payment Amount")
    ledger, _, p = build_world()

    agreement_id = p.seller.open_native(ledger, p.buyer.wallet, p.arbitrator.wallet, "x")
    p.buyer.pay(ledger, agreement_id, Decimal("0.24"))
    p.buyer.pay(ledger, agreement_id, Decimal("0.26"))
    print_agreement(ledger, agreement_id)

    section("Retry with the exact price")
    p.buyer.pay(ledger, agreement_id, PRICE)
    p.buyer.pay(ledger, agreement_id, PRICE)
    print_agreement(ledger, agreement_id)


def scenario_3_arbitrated_refund() -> None:
    banner("SCENARIO 3: Arbitrated Refund")
    ledger, _, p = build_world()

    agreement_id = p.seller.open_native(ledger, p.buyer.wallet, p.arbitrator.wallet, "x")
    p.buyer.pay(ledger, agreement_id, PRICE)
    attempt("🟢 SELLER: raise dispute", ledger.raise_dispute, p.seller.wallet, agreement_id)
    attempt(
        "🟣 ARBITRATOR: refund buyer",
        ledger.arbitrator_perform_refund,
        p.arbitrator.wallet,
        agreement_id,
    )

    section("Withdrawals")
    p.seller.withdraw(ledger, agreement_id)
    p.buyer.withdraw(ledger, agreement_id)
    p.buyer.withdraw(ledger, agreement_id)
    p.seller.withdraw(ledger, agreement_id)

    print_agreement(ledger, agreement_id)
    print_events(ledger, agreement_id)


def scenario_4_token_agreement() -> None:
    banner("SCENARIO 4: Token Agreement")
    ledger, registry, p = build_world()
    token = registry.resolve(Asset.token(TOKEN_ID))

    agreement_id = p.seller.open_token(ledger, p.buyer.wallet, p.arbitrator.wallet, "tokens")
    p.buyer.pay(ledger, agreement_id, PRICE)
    p.buyer.approve(token, PRICE)
    p.buyer.pay(ledger, agreement_id, Decimal(0))
    print(f"  Custody holds: {token.balance_of(token.custody_account)} {TOKEN_ID}")
    attempt("🟢 SELLER: refund buyer", ledger.seller_refund_buyer, p.seller.wallet, agreement_id)
    p.buyer.withdraw(ledger, agreement_id)
    print(f"  Buyer balance: {token.balance_of(p.buyer.wallet)} {TOKEN_ID}")

    print_agreement(ledger, agreement_id)


# ===========================================================================
# Main
# ===========================================================================
SCENARIOS = {
    1: scenario_1_happy_path,
    2: scenario_2_wrong_amount,
    3: scenario_3_arbitrated_refund,
    4: scenario_4_token_agreement,
}


def run_all() -> None:
    """Run all scenarios sequentially."""
    print("\n" + "🚀" * 35)
    print("  COMMODITY TRADE ESCROW — SIMULATION")
    print("🚀" * 35 + "\n")

    for scenario in SCENARIOS.values():
        scenario()

    print("\n" + "=" * 70)
    print("  ✅ ALL SCENARIOS COMPLETED")
    print("=" * 70 + "\n")


def run_scenario(num: int) -> None:
    """Run a specific scenario."""
    if num not in SCENARIOS:
        print(f"Unknown scenario {num}. Available: {', '.join(map(str, SCENARIOS))}")
        return
    SCENARIOS[num]()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Commodity Trade Escrow Simulation")
    parser.add_argument(
        "--scenario",
        type=int,
        default=0,
        help="Run a specific scenario (1-4). Default: run all.",
    )
    args = parser.parse_args()

    if args.scenario == 0:
        run_all()
    else:
        run_scenario(args.scenario)
