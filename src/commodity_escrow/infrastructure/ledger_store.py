"""In-process storage for the agreement ledger.

The store *is* the ledger: there is no database behind it. Agreements live
in an arena keyed by sequential id and are never deleted. Stores are plain
objects, so every test (and every app instance) owns an isolated ledger.

Like repositories over a session, these classes never enforce business
rules; that is the service layer's job.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from commodity_escrow.domain.models import EscrowEvent

if TYPE_CHECKING:
    from collections.abc import Iterator

    from commodity_escrow.domain.enums import AgreementStatus, EventType
    from commodity_escrow.domain.models import Agreement


class AgreementStore:
    """Append-only arena of agreements."""

    def __init__(self) -> None:
        self._agreements: dict[int, Agreement] = {}
        self._next_id = 0

    @property
    def next_id(self) -> int:
        """Identifier the next created agreement receives (= agreements created)."""
        return self._next_id

    def add(self, agreement: Agreement) -> Agreement:
        """Insert a new agreement. Its id must be exactly ``next_id``."""
        if agreement.id != self._next_id:
            raise ValueError(
                f"agreement id {agreement.id} out of sequence, expected {self._next_id}"
            )
        self._agreements[agreement.id] = agreement
        self._next_id += 1
        return agreement

    def get_by_id(self, agreement_id: int) -> Agreement | None:
        """Fetch the live record (callers must not hand it outside the ledger)."""
        return self._agreements.get(agreement_id)

    def get_by_status(self, status: AgreementStatus) -> list[Agreement]:
        return [a for a in self._agreements.values() if a.agreement_status == status]

    def get_by_party(self, identity: str) -> list[Agreement]:
        """Every agreement where ``identity`` is seller, buyer or arbitrator."""
        return [a for a in self._agreements.values() if a.involves(identity)]

    def __len__(self) -> int:
        return len(self._agreements)

    def __iter__(self) -> Iterator[Agreement]:
        return iter(self._agreements.values())


class EventLog:
    """Ordered, append-only record of every emitted event."""

    def __init__(self) -> None:
        self._events: list[EscrowEvent] = []

    def record(
        self,
        event_type: EventType,
        agreement_id: int,
        payload: dict[str, Any] | None = None,
    ) -> EscrowEvent:
        """Append an event and return it."""
        event = EscrowEvent(
            sequence=len(self._events),
            type=event_type,
            agreement_id=agreement_id,
            payload=payload or {},
        )
        self._events.append(event)
        return event

    def get_by_agreement(self, agreement_id: int) -> list[EscrowEvent]:
        """Events for one agreement, oldest first."""
        return [e for e in self._events if e.agreement_id == agreement_id]

    def all(self) -> list[EscrowEvent]:
        return list(self._events)

    def __len__(self) -> int:
        return len(self._events)
