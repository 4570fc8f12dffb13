"""Campaign models: spending requests, receipts and read-only views.

All monetary values are integers in base units (wei). No floats, no
Decimals: the pool only ever holds whole base units.

Invariants enforced by these models:
- A request moves PROPOSED → FINALIZED exactly once and never back.
- approval_count always equals len(approvals).
- Snapshots and summaries are frozen; mutating them cannot reach the
  campaign.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, NamedTuple, Optional


class RequestState(str, enum.Enum):
    """Lifecycle state of a spending request.

    State machine:
        PROPOSED → FINALIZED
    """
    PROPOSED = "proposed"
    FINALIZED = "finalized"


# Valid request state transitions
REQUEST_TRANSITIONS: Dict[RequestState, frozenset] = {
    RequestState.PROPOSED: frozenset({RequestState.FINALIZED}),
    RequestState.FINALIZED: frozenset(),
}


@dataclass
class SpendingRequest:
    """A manager-proposed spending action awaiting contributor approval.

    Mutable: approvals accumulate and the state flips on finalization.
    Owned by exactly one campaign; callers only ever see RequestSnapshot.
    """
    index: int
    description: str
    value: int
    recipient: str
    approvals: set[str] = field(default_factory=set)
    approval_count: int = 0
    state: RequestState = RequestState.PROPOSED
    created_utc: Optional[datetime] = None
    finalized_utc: Optional[datetime] = None

    @property
    def complete(self) -> bool:
        return self.state == RequestState.FINALIZED

    def has_majority(self, contributor_count: int) -> bool:
        """Strictly more than half of the given contributor count approved."""
        return self.approval_count * 2 > contributor_count

    def transition_to(self, new_state: RequestState) -> None:
        """Transition to a new state, validating the transition is legal."""
        allowed = REQUEST_TRANSITIONS.get(self.state, frozenset())
        if new_state not in allowed:
            raise ValueError(
                f"Invalid request transition: {self.state.value} → {new_state.value}. "
                f"Allowed: {', '.join(s.value for s in allowed) or 'none'}"
            )
        self.state = new_state

    def snapshot(self) -> RequestSnapshot:
        return RequestSnapshot(
            index=self.index,
            description=self.description,
            value=self.value,
            recipient=self.recipient,
            approval_count=self.approval_count,
            complete=self.complete,
            created_utc=self.created_utc,
            finalized_utc=self.finalized_utc,
        )


@dataclass(frozen=True)
class RequestSnapshot:
    """Read-only view of a request. The approvals set is not exposed."""
    index: int
    description: str
    value: int
    recipient: str
    approval_count: int
    complete: bool
    created_utc: Optional[datetime] = None
    finalized_utc: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "description": self.description,
            "value": self.value,
            "recipient": self.recipient,
            "approval_count": self.approval_count,
            "complete": self.complete,
            "created_utc": self.created_utc.isoformat() if self.created_utc else None,
            "finalized_utc": (
                self.finalized_utc.isoformat() if self.finalized_utc else None
            ),
        }


class CampaignSummary(NamedTuple):
    """Summary tuple of a campaign, in its published field order."""
    minimum_contribution: int
    balance: int
    number_of_requests: int
    contributor_count: int
    manager: str


@dataclass(frozen=True)
class ContributionReceipt:
    """Result of an accepted contribution."""
    campaign_id: str
    contributor: str
    amount: int
    first_time: bool
    balance: int
    contributor_count: int


@dataclass(frozen=True)
class PayoutReceipt:
    """Result of a finalized request: the value that left the pool."""
    campaign_id: str
    request_index: int
    recipient: str
    value: int
    balance_after: int
    finalized_utc: datetime
