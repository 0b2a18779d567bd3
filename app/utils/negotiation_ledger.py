# app/utils/negotiation_ledger.py
"""
Reducer for an order's negotiation history.

The negotiations endpoint folds fetched rows through it, and change-feed
consumers fold typed events through the same `apply`, so both paths end
in the same state.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional


@dataclass
class NegotiationEntry:
    id: str
    proposed_by: str
    proposed_price: int
    status: str
    created_at: datetime
    response_id: Optional[str] = None
    message: Optional[str] = None


@dataclass
class NegotiationLedger:
    order_id: str
    _entries: Dict[str, NegotiationEntry] = field(default_factory=dict)

    @classmethod
    def from_rows(cls, order_id: str, rows) -> "NegotiationLedger":
        ledger = cls(order_id=order_id)
        for row in rows:
            ledger.apply(row)
        return ledger

    def apply(self, row) -> None:
        """Insert or replace one negotiation. Accepts ORM rows, schemas or dicts."""
        get = row.get if isinstance(row, dict) else lambda k: getattr(row, k, None)
        status = get("status")
        entry = NegotiationEntry(
            id=get("id"),
            proposed_by=get("proposed_by"),
            proposed_price=get("proposed_price"),
            status=getattr(status, "value", status),
            created_at=get("created_at"),
            response_id=get("response_id"),
            message=get("message"),
        )
        self._entries[entry.id] = entry

    @property
    def entries(self) -> List[NegotiationEntry]:
        """Newest first."""
        return sorted(
            self._entries.values(), key=lambda e: (e.created_at, e.id), reverse=True
        )

    @property
    def latest(self) -> Optional[NegotiationEntry]:
        entries = self.entries
        return entries[0] if entries else None

    @property
    def accepted(self) -> Optional[NegotiationEntry]:
        for entry in self.entries:
            if entry.status == "accepted":
                return entry
        return None

    def can_propose(self, user_id: str) -> bool:
        """
        A party may propose when nothing has been accepted yet and the
        latest proposal, if any, came from the other side.
        """
        if self.accepted is not None:
            return False
        latest = self.latest
        if latest is None:
            return True
        return latest.proposed_by != user_id
