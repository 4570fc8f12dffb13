"""Crowdfund service: unified facade over campaigns, registry and audit log.

This is the primary interface for programmatic access. It orchestrates:
- Campaign creation and enumeration (registry)
- Contributions, request proposals, approvals and finalization (campaigns)
- Audit trail (one event per accepted operation)
- Recovery (rebuild from a persisted event log)

All operations produce typed results. Rejected operations leave the
campaign unchanged and record nothing. Accepted operations are recorded
after they commit; if the audit write then fails, the operation is NOT
undone (a payout cannot be recalled). The result carries a warning and
the service reports itself as audit-degraded until an operator steps in.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from crowdfund import __version__
from crowdfund.errors import CampaignError
from crowdfund.escrow.invariants import check_registry
from crowdfund.escrow.registry import CampaignRegistry
from crowdfund.escrow.transfer import LedgerRail
from crowdfund.identity import normalize_identity
from crowdfund.persistence.event_log import EventKind, EventLog, EventRecord
from crowdfund.persistence.replay import rebuild


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)


def _event_time(now: Optional[datetime]) -> datetime:
    # Event records store whole seconds; live state must match a replay
    return (now or datetime.now(timezone.utc)).replace(microsecond=0)


def _rejected(error: CampaignError) -> ServiceResult:
    return ServiceResult(
        success=False,
        errors=[str(error)],
        data={"error": type(error).__name__},
    )


class CrowdfundService:
    """Campaign engine facade.

    Usage:
        service = CrowdfundService()
        result = service.create_campaign(100, caller=manager)
        cid = result.data["campaign_id"]
        service.contribute(cid, 200, caller=alice)
        service.create_request(cid, "Buy laptop", 150, vendor, caller=manager)
        service.approve_request(cid, 0, caller=alice)
        service.finalize_request(cid, 0, caller=manager)

    Persistence (optional):
        log = EventLog(storage_path=Path("data/events.jsonl"))
        service = CrowdfundService.from_event_log(log)
        # Prior state is replayed; new events are appended to the same file.
    """

    def __init__(
        self,
        registry: Optional[CampaignRegistry] = None,
        event_log: Optional[EventLog] = None,
    ) -> None:
        self._registry = registry if registry is not None else CampaignRegistry()
        self._event_log = event_log if event_log is not None else EventLog()
        # Initialize counter from persisted log to avoid ID collision on restart
        self._event_counter = self._event_log.count
        # Set when an accepted operation could not be written to the log
        self._audit_degraded: bool = False

    @classmethod
    def from_event_log(cls, event_log: EventLog) -> CrowdfundService:
        """Restore a service by replaying an existing event log."""
        registry, _ = rebuild(event_log)
        return cls(registry=registry, event_log=event_log)

    @property
    def registry(self) -> CampaignRegistry:
        return self._registry

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    @property
    def audit_degraded(self) -> bool:
        return self._audit_degraded

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def create_campaign(
        self,
        minimum_contribution: int,
        caller: str,
        now: Optional[datetime] = None,
    ) -> ServiceResult:
        """Create a campaign managed by caller."""
        now = _event_time(now)
        try:
            campaign = self._registry.create_campaign(
                minimum_contribution, caller=caller, now=now,
            )
        except CampaignError as e:
            return _rejected(e)

        data: dict[str, Any] = {
            "campaign_id": campaign.campaign_id,
            "manager": campaign.manager,
            "minimum_contribution": campaign.minimum_contribution,
        }
        return self._committed(
            EventKind.CAMPAIGN_CREATED, campaign.manager, dict(data), now, data,
        )

    def list_campaigns(self) -> list[str]:
        return self._registry.get_deployed_campaigns()

    # ------------------------------------------------------------------
    # Campaign operations
    # ------------------------------------------------------------------

    def contribute(
        self,
        campaign_id: str,
        amount: int,
        caller: str,
        now: Optional[datetime] = None,
    ) -> ServiceResult:
        """Contribute amount to a campaign."""
        now = _event_time(now)
        try:
            campaign = self._registry.get_campaign(campaign_id)
            receipt = campaign.contribute(amount, caller)
        except CampaignError as e:
            return _rejected(e)

        return self._committed(
            EventKind.CONTRIBUTION_RECEIVED,
            receipt.contributor,
            {"campaign_id": campaign_id, "amount": amount},
            now,
            {
                "campaign_id": campaign_id,
                "contributor": receipt.contributor,
                "amount": receipt.amount,
                "first_time": receipt.first_time,
                "balance": receipt.balance,
                "contributor_count": receipt.contributor_count,
            },
        )

    def create_request(
        self,
        campaign_id: str,
        description: str,
        value: int,
        recipient: str,
        caller: str,
        now: Optional[datetime] = None,
    ) -> ServiceResult:
        """Propose a spending request on behalf of the manager."""
        now = _event_time(now)
        try:
            campaign = self._registry.get_campaign(campaign_id)
            index = campaign.create_request(
                description, value, recipient, caller, now=now,
            )
            request = campaign.get_request(index)
        except CampaignError as e:
            return _rejected(e)

        return self._committed(
            EventKind.REQUEST_CREATED,
            campaign.manager,
            {
                "campaign_id": campaign_id,
                "request_index": index,
                "description": request.description,
                "value": request.value,
                "recipient": request.recipient,
            },
            now,
            {"campaign_id": campaign_id, "request_index": index},
        )

    def approve_request(
        self,
        campaign_id: str,
        index: int,
        caller: str,
        now: Optional[datetime] = None,
    ) -> ServiceResult:
        """Approve a request as a contributor."""
        now = _event_time(now)
        try:
            campaign = self._registry.get_campaign(campaign_id)
            approval_count = campaign.approve_request(index, caller)
            voter = normalize_identity(caller)
        except CampaignError as e:
            return _rejected(e)

        return self._committed(
            EventKind.REQUEST_APPROVED,
            voter,
            {"campaign_id": campaign_id, "request_index": index},
            now,
            {
                "campaign_id": campaign_id,
                "request_index": index,
                "approval_count": approval_count,
            },
        )

    def finalize_request(
        self,
        campaign_id: str,
        index: int,
        caller: str,
        now: Optional[datetime] = None,
    ) -> ServiceResult:
        """Finalize a majority-approved request and pay its recipient."""
        now = _event_time(now)
        try:
            campaign = self._registry.get_campaign(campaign_id)
            receipt = campaign.finalize_request(index, caller, now=now)
        except CampaignError as e:
            return _rejected(e)

        return self._committed(
            EventKind.REQUEST_FINALIZED,
            campaign.manager,
            {
                "campaign_id": campaign_id,
                "request_index": index,
                "recipient": receipt.recipient,
                "value": receipt.value,
            },
            now,
            {
                "campaign_id": campaign_id,
                "request_index": index,
                "recipient": receipt.recipient,
                "value": receipt.value,
                "balance": receipt.balance_after,
            },
        )

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------

    def fund_account(
        self,
        address: str,
        amount: int,
        now: Optional[datetime] = None,
    ) -> ServiceResult:
        """Seed an external account balance on the ledger rail."""
        rail = self._registry.rail
        if not isinstance(rail, LedgerRail):
            return ServiceResult(
                success=False,
                errors=[f"Rail {rail.rail_id} does not hold account balances"],
            )
        now = _event_time(now)
        try:
            addr = normalize_identity(address)
            rail.fund(addr, amount)
        except ValueError as e:
            return ServiceResult(success=False, errors=[str(e)])

        return self._committed(
            EventKind.ACCOUNT_FUNDED,
            addr,
            {"address": addr, "amount": amount},
            now,
            {"address": addr, "balance": rail.balance_of(addr)},
        )

    def balance_of(self, address: str) -> Optional[int]:
        """External balance of an address, if the rail tracks balances."""
        rail = self._registry.rail
        if not isinstance(rail, LedgerRail):
            return None
        return rail.balance_of(address)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_summary(self, campaign_id: str) -> ServiceResult:
        try:
            summary = self._registry.get_campaign(campaign_id).get_summary()
        except CampaignError as e:
            return _rejected(e)
        return ServiceResult(
            success=True,
            data={"campaign_id": campaign_id, **summary._asdict()},
        )

    def get_request(self, campaign_id: str, index: int) -> ServiceResult:
        try:
            snapshot = self._registry.get_campaign(campaign_id).get_request(index)
        except CampaignError as e:
            return _rejected(e)
        return ServiceResult(
            success=True,
            data={"campaign_id": campaign_id, **snapshot.to_dict()},
        )

    def campaign_history(self, campaign_id: str) -> ServiceResult:
        """Logged events touching one campaign, oldest first."""
        try:
            self._registry.get_campaign(campaign_id)
        except CampaignError as e:
            return _rejected(e)
        events = self._event_log.events_for_campaign(campaign_id)
        return ServiceResult(
            success=True,
            data={
                "campaign_id": campaign_id,
                "events": [e.to_dict() for e in events],
            },
        )

    def check_invariants(self) -> list[str]:
        return check_registry(self._registry)

    def status(self) -> dict[str, Any]:
        """Return system-wide status summary."""
        campaigns = self._registry.campaigns()
        return {
            "version": __version__,
            "campaigns": {
                "total": len(campaigns),
                "pooled_balance": sum(c.balance for c in campaigns),
                "requests": sum(c.number_of_requests for c in campaigns),
            },
            "events": self._event_log.count,
            "audit_degraded": self._audit_degraded,
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _next_event_id(self) -> str:
        """Generate a monotonically increasing unique event ID."""
        self._event_counter += 1
        return f"EVT-{self._event_counter:08d}"

    def _committed(
        self,
        kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        now: datetime,
        data: dict[str, Any],
    ) -> ServiceResult:
        """Record an accepted operation and build its result.

        MUST NOT undo the operation on audit failure: the campaign state
        has already moved. Returns a warning in the result instead.
        """
        err = self._record_event(kind, actor_id, payload, now)
        if err:
            self._audit_degraded = True
            data = {**data, "warning": err}
        return ServiceResult(success=True, data=data)

    def _record_event(
        self,
        kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        now: datetime,
    ) -> Optional[str]:
        """Append one event. Returns error string or None."""
        try:
            event = EventRecord.create(
                event_id=self._next_event_id(),
                event_kind=kind,
                actor_id=actor_id,
                payload=payload,
                timestamp_utc=now,
            )
            self._event_log.append(event)
        except (ValueError, OSError) as e:
            return f"Audit degraded: {e}; operation committed but not logged"
        return None
