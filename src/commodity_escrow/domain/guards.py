"""Authorization guards.

Pure functions of ``(caller, agreement)``. They only compare identities and
never look at lifecycle state, so a caller without the right role learns
nothing about where the agreement currently is. The ledger evaluates them
strictly before any state precondition.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from commodity_escrow.domain.exceptions import AuthorizationError

if TYPE_CHECKING:
    from collections.abc import Callable

    from commodity_escrow.domain.models import Agreement

    Guard = Callable[[str, Agreement], None]


def only_buyer(caller: str, agreement: Agreement) -> None:
    if caller != agreement.buyer:
        raise AuthorizationError("not a buyer", caller=caller)


def only_seller(caller: str, agreement: Agreement) -> None:
    if caller != agreement.seller:
        raise AuthorizationError("not a seller", caller=caller)


def only_buyer_or_seller(caller: str, agreement: Agreement) -> None:
    if caller not in agreement.parties:
        raise AuthorizationError("not a buyer or seller", caller=caller)


def only_arbitrator(caller: str, agreement: Agreement) -> None:
    if caller != agreement.arbitrator:
        raise AuthorizationError("not an arbitrator", caller=caller)


def is_authorized(guard: Guard, caller: str, agreement: Agreement) -> bool:
    """Boolean form of a guard, for read-only views."""
    try:
        guard(caller, agreement)
    except AuthorizationError:
        return False
    return True
