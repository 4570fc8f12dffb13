"""Campaign: contribution pool with contributor-approved spending.

A campaign holds a pool of contributed value controlled by a single
manager. The manager proposes spending requests; contributors approve
them; a request pays out only once strictly more than half of the
*current* contributors have approved it. Late contributors therefore
raise the bar for requests proposed before they joined.

Voting power is one vote per contributing identity, regardless of how
much or how often it contributed.

Request state machine:
    PROPOSED → FINALIZED        (majority reached, funds transferred)

Atomicity: every public operation runs under the campaign's lock and
either completes with its full effect or raises a CampaignError with no
state change. Finalization validates everything first, then calls the
transfer rail, then flips the request and debits the balance together.
If the rail raises, nothing has been recorded.

The campaign is a pure state machine apart from the rail call. Event
logging is handled by the service layer.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Optional

from crowdfund.errors import (
    AlreadyComplete,
    DuplicateApproval,
    InsufficientApprovals,
    InsufficientContribution,
    InsufficientFunds,
    InvalidAmount,
    NotFound,
    TransferFailed,
    Unauthorized,
)
from crowdfund.escrow.transfer import TransferRail
from crowdfund.identity import normalize_identity
from crowdfund.models.campaign import (
    CampaignSummary,
    ContributionReceipt,
    PayoutReceipt,
    RequestSnapshot,
    RequestState,
    SpendingRequest,
)


def _require_positive_int(value: Any, label: str) -> int:
    # bool is an int subclass; True is not a valid amount
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmount(f"{label} must be an integer, got {value!r}")
    if value <= 0:
        raise InvalidAmount(f"{label} must be positive, got {value}")
    return value


class Campaign:
    """A single crowdfunding pool.

    Usage:
        campaign = Campaign("campaign_1", manager, 100, rail)
        campaign.contribute(200, alice)
        idx = campaign.create_request("Buy laptop", 150, vendor, manager)
        campaign.approve_request(idx, alice)
        receipt = campaign.finalize_request(idx, manager)
    """

    def __init__(
        self,
        campaign_id: str,
        manager: str,
        minimum_contribution: int,
        rail: TransferRail,
        now: Optional[datetime] = None,
    ) -> None:
        self._campaign_id = campaign_id
        self._manager = normalize_identity(manager)
        self._minimum_contribution = _require_positive_int(
            minimum_contribution, "Minimum contribution",
        )
        self._rail = rail
        self._created_utc = now or datetime.now(timezone.utc)
        self._lock = threading.RLock()

        self._balance = 0
        self._total_contributed = 0
        self._total_disbursed = 0
        self._contributors: set[str] = set()
        self._contributor_count = 0
        self._requests: list[SpendingRequest] = []

    # ------------------------------------------------------------------
    # Identity and immutable parameters
    # ------------------------------------------------------------------

    @property
    def campaign_id(self) -> str:
        return self._campaign_id

    @property
    def manager(self) -> str:
        return self._manager

    @property
    def minimum_contribution(self) -> int:
        return self._minimum_contribution

    @property
    def created_utc(self) -> datetime:
        return self._created_utc

    # ------------------------------------------------------------------
    # Contribution
    # ------------------------------------------------------------------

    def contribute(self, amount: int, caller: str) -> ContributionReceipt:
        """Accept a contribution into the pool.

        The first accepted contribution from an identity makes it a
        contributor. Repeat contributions grow the balance only.

        Raises:
            InvalidAmount: If amount is not an integer.
            InsufficientContribution: If amount < minimum_contribution.
            InvalidIdentity: If caller is not a valid address.
        """
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise InvalidAmount(f"Contribution must be an integer, got {amount!r}")
        contributor = normalize_identity(caller)
        with self._lock:
            if amount < self._minimum_contribution:
                raise InsufficientContribution(
                    f"Contribution of {amount} is below the minimum of "
                    f"{self._minimum_contribution}"
                )
            first_time = contributor not in self._contributors
            self._balance += amount
            self._total_contributed += amount
            if first_time:
                self._contributors.add(contributor)
                self._contributor_count += 1
            return ContributionReceipt(
                campaign_id=self._campaign_id,
                contributor=contributor,
                amount=amount,
                first_time=first_time,
                balance=self._balance,
                contributor_count=self._contributor_count,
            )

    def is_contributor(self, identity: str) -> bool:
        with self._lock:
            return normalize_identity(identity) in self._contributors

    @property
    def contributor_count(self) -> int:
        with self._lock:
            return self._contributor_count

    @property
    def balance(self) -> int:
        with self._lock:
            return self._balance

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def create_request(
        self,
        description: str,
        value: int,
        recipient: str,
        caller: str,
        now: Optional[datetime] = None,
    ) -> int:
        """Propose a spending request. Manager only.

        The value is not checked against the current balance; that
        happens at finalization.

        Returns:
            The new request's index.

        Raises:
            Unauthorized: If caller is not the manager.
            InvalidAmount: If value is not a positive integer.
            InvalidIdentity: If recipient is not a valid address.
        """
        self._require_manager(caller)
        value = _require_positive_int(value, "Request value")
        payee = normalize_identity(recipient)
        if now is None:
            now = datetime.now(timezone.utc)
        with self._lock:
            index = len(self._requests)
            self._requests.append(
                SpendingRequest(
                    index=index,
                    description=str(description),
                    value=value,
                    recipient=payee,
                    created_utc=now,
                )
            )
            return index

    def approve_request(self, index: int, caller: str) -> int:
        """Record caller's approval of a request.

        Returns:
            The request's approval count after this approval.

        Raises:
            NotFound: If index is out of range.
            Unauthorized: If caller has never contributed.
            DuplicateApproval: If caller already approved this request.
            AlreadyComplete: If the request has been finalized.
        """
        voter = normalize_identity(caller)
        with self._lock:
            request = self._get(index)
            if voter not in self._contributors:
                raise Unauthorized(f"{voter} is not a contributor")
            if voter in request.approvals:
                raise DuplicateApproval(
                    f"{voter} has already approved request {index}"
                )
            if request.complete:
                raise AlreadyComplete("request already completed")
            request.approvals.add(voter)
            request.approval_count += 1
            return request.approval_count

    def finalize_request(
        self,
        index: int,
        caller: str,
        now: Optional[datetime] = None,
    ) -> PayoutReceipt:
        """Execute an approved request: pay the recipient and close it.

        Checks, in order: manager, index, not complete, strict majority
        of current contributors, sufficient balance.

        Raises:
            Unauthorized, NotFound, AlreadyComplete, InsufficientApprovals,
            InsufficientFunds: On the corresponding failed check.
            TransferFailed: If the transfer rail refuses the payout.
        """
        self._require_manager(caller)
        if now is None:
            now = datetime.now(timezone.utc)
        with self._lock:
            request = self._get(index)
            if request.complete:
                raise AlreadyComplete("request already completed")
            if not request.has_majority(self._contributor_count):
                raise InsufficientApprovals(
                    f"not enough approvals: {request.approval_count} of "
                    f"{self._contributor_count} contributors"
                )
            if request.value > self._balance:
                raise InsufficientFunds(
                    f"Request value {request.value} exceeds balance {self._balance}"
                )

            try:
                self._rail.transfer(
                    request.recipient,
                    request.value,
                    reference=f"{self._campaign_id}:{index}",
                )
            except ValueError as e:
                raise TransferFailed(
                    f"Transfer of {request.value} to {request.recipient} failed: {e}"
                ) from e

            # Transfer is done; record both halves together
            request.transition_to(RequestState.FINALIZED)
            request.finalized_utc = now
            self._balance -= request.value
            self._total_disbursed += request.value

            return PayoutReceipt(
                campaign_id=self._campaign_id,
                request_index=index,
                recipient=request.recipient,
                value=request.value,
                balance_after=self._balance,
                finalized_utc=now,
            )

    def get_request(self, index: int) -> RequestSnapshot:
        """Read-only view of one request."""
        with self._lock:
            return self._get(index).snapshot()

    def list_requests(self) -> list[RequestSnapshot]:
        with self._lock:
            return [r.snapshot() for r in self._requests]

    @property
    def number_of_requests(self) -> int:
        with self._lock:
            return len(self._requests)

    # ------------------------------------------------------------------
    # Summary and audit views
    # ------------------------------------------------------------------

    def get_summary(self) -> CampaignSummary:
        with self._lock:
            return CampaignSummary(
                minimum_contribution=self._minimum_contribution,
                balance=self._balance,
                number_of_requests=len(self._requests),
                contributor_count=self._contributor_count,
                manager=self._manager,
            )

    def totals(self) -> tuple[int, int]:
        """Return (total contributed, total disbursed) over the campaign's life."""
        with self._lock:
            return self._total_contributed, self._total_disbursed

    def approvals_of(self, index: int) -> frozenset[str]:
        """Identities that approved a request. Used by the invariant audit."""
        with self._lock:
            return frozenset(self._get(index).approvals)

    def contributors(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._contributors)

    def to_dict(self) -> dict[str, Any]:
        """Serialize campaign state for display."""
        with self._lock:
            return {
                "campaign_id": self._campaign_id,
                "manager": self._manager,
                "minimum_contribution": self._minimum_contribution,
                "balance": self._balance,
                "total_contributed": self._total_contributed,
                "total_disbursed": self._total_disbursed,
                "contributor_count": self._contributor_count,
                "number_of_requests": len(self._requests),
                "created_utc": self._created_utc.isoformat(),
                "requests": [r.snapshot().to_dict() for r in self._requests],
            }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_manager(self, caller: str) -> None:
        if normalize_identity(caller) != self._manager:
            raise Unauthorized("Only the campaign manager may do this")

    def _get(self, index: int) -> SpendingRequest:
        """Internal lookup with clear error on a bad index."""
        if isinstance(index, bool) or not isinstance(index, int):
            raise NotFound(f"Request index must be an integer, got {index!r}")
        if index < 0 or index >= len(self._requests):
            raise NotFound(f"Unknown request index: {index}")
        return self._requests[index]
