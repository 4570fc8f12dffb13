"""Tests for state reconstruction from the event log."""

import pytest
from datetime import datetime, timezone
from pathlib import Path

from crowdfund.persistence.event_log import EventKind, EventLog, EventRecord
from crowdfund.persistence.replay import rebuild
from crowdfund.service import CrowdfundService


MANAGER = "0x" + "a1" * 20
ALICE = "0x" + "b2" * 20
BOB = "0x" + "c3" * 20
VENDOR = "0x" + "e5" * 20


def _now() -> datetime:
    return datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def _populated_service(log: EventLog) -> tuple[CrowdfundService, str]:
    service = CrowdfundService(event_log=log)
    cid = service.create_campaign(100, caller=MANAGER, now=_now()).data["campaign_id"]
    service.fund_account(VENDOR, 50, now=_now())
    service.contribute(cid, 700, caller=ALICE, now=_now())
    service.contribute(cid, 300, caller=BOB, now=_now())
    service.create_request(cid, "Tools", 400, VENDOR, caller=MANAGER, now=_now())
    service.create_request(cid, "Rent", 100, VENDOR, caller=MANAGER, now=_now())
    service.approve_request(cid, 0, caller=ALICE, now=_now())
    service.approve_request(cid, 0, caller=BOB, now=_now())
    service.approve_request(cid, 1, caller=ALICE, now=_now())
    service.finalize_request(cid, 0, caller=MANAGER, now=_now())
    return service, cid


class TestRebuild:
    def test_rebuilds_identical_state(self) -> None:
        log = EventLog()
        service, cid = _populated_service(log)

        registry, rail = rebuild(log)
        original = service.registry.get_campaign(cid)
        replayed = registry.get_campaign(cid)

        assert replayed.get_summary() == original.get_summary()
        assert replayed.list_requests() == original.list_requests()
        assert replayed.contributors() == original.contributors()
        assert replayed.approvals_of(1) == original.approvals_of(1)
        assert replayed.created_utc == _now()
        assert rail.balance_of(VENDOR) == 450

    def test_live_clock_state_survives_rebuild(self) -> None:
        log = EventLog()
        service = CrowdfundService(event_log=log)
        cid = service.create_campaign(100, caller=MANAGER).data["campaign_id"]
        service.contribute(cid, 200, caller=ALICE)
        service.create_request(cid, "Tools", 50, VENDOR, caller=MANAGER)
        service.approve_request(cid, 0, caller=ALICE)
        service.finalize_request(cid, 0, caller=MANAGER)

        registry, _ = rebuild(log)
        live = service.registry.get_campaign(cid)
        replayed = registry.get_campaign(cid)
        assert replayed.created_utc == live.created_utc
        assert replayed.to_dict() == live.to_dict()

    def test_rebuild_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        _, cid = _populated_service(EventLog(storage_path=path))

        registry, _ = rebuild(EventLog(storage_path=path))
        assert registry.get_deployed_campaigns() == [cid]
        assert registry.get_campaign(cid).balance == 600

    def test_empty_log(self) -> None:
        registry, rail = rebuild(EventLog())
        assert registry.count == 0
        assert rail.get_transfers() == []

    def test_invalid_operation_in_log_fails_closed(self) -> None:
        log = EventLog()
        log.append(EventRecord.create(
            "EVT-1", EventKind.CAMPAIGN_CREATED, MANAGER,
            {"campaign_id": "c1", "minimum_contribution": 100},
            timestamp_utc=_now(),
        ))
        log.append(EventRecord.create(
            "EVT-2", EventKind.REQUEST_APPROVED, ALICE,
            {"campaign_id": "c1", "request_index": 0},
            timestamp_utc=_now(),
        ))
        with pytest.raises(ValueError, match="Replay failed at EVT-2"):
            rebuild(log)

    def test_unknown_campaign_in_log_fails_closed(self) -> None:
        log = EventLog()
        log.append(EventRecord.create(
            "EVT-1", EventKind.CONTRIBUTION_RECEIVED, ALICE,
            {"campaign_id": "ghost", "amount": 100},
        ))
        with pytest.raises(ValueError, match="Replay failed at EVT-1"):
            rebuild(log)

    def test_missing_payload_field_fails_closed(self) -> None:
        log = EventLog()
        log.append(EventRecord.create(
            "EVT-1", EventKind.CAMPAIGN_CREATED, MANAGER, {"campaign_id": "c1"},
        ))
        with pytest.raises(ValueError, match="Replay failed at EVT-1"):
            rebuild(log)
