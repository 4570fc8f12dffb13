"""Tests for the crowdfund CLI: proves commands dispatch and state persists."""

import json

import pytest
from pathlib import Path

from crowdfund.cli import build_parser, main


MANAGER = "0x" + "a1" * 20
ALICE = "0x" + "b2" * 20
BOB = "0x" + "c3" * 20
VENDOR = "0x" + "e5" * 20


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("CROWDFUND_DATA_DIR", "CROWDFUND_EVENT_LOG", "CROWDFUND_DEFAULT_UNIT"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def _run(data_dir: Path, *argv: str) -> int:
    return main(["--data-dir", str(data_dir), *argv])


def _json_out(capsys) -> object:
    return json.loads(capsys.readouterr().out)


def _create_campaign(data_dir: Path, capsys, minimum: str = "100") -> str:
    assert _run(data_dir, "create-campaign", "--caller", MANAGER, "--minimum", minimum) == 0
    return _json_out(capsys)["campaign_id"]


class TestCLIParsing:
    def test_contribute_command(self) -> None:
        args = build_parser().parse_args([
            "contribute", "--campaign", "c1", "--caller", ALICE, "--amount", "200",
        ])
        assert args.command == "contribute"
        assert args.amount == "200"

    def test_index_is_integer(self) -> None:
        args = build_parser().parse_args([
            "approve-request", "--campaign", "c1", "--caller", ALICE, "--index", "3",
        ])
        assert args.index == 3

    def test_global_unit(self) -> None:
        args = build_parser().parse_args(["--unit", "ether", "status"])
        assert args.unit == "ether"


class TestCLIExecution:
    def test_no_command_shows_help(self) -> None:
        assert main([]) == 0

    def test_new_account(self, capsys) -> None:
        assert main(["new-account"]) == 0
        out = _json_out(capsys)
        assert out["address"].startswith("0x")
        assert len(out["address"]) == 42

    def test_status_on_empty_dir(self, tmp_path: Path, capsys) -> None:
        assert _run(tmp_path, "status") == 0
        assert _json_out(capsys)["campaigns"]["total"] == 0

    def test_full_flow_persists_between_invocations(self, tmp_path: Path, capsys) -> None:
        cid = _create_campaign(tmp_path, capsys)

        assert _run(tmp_path, "list-campaigns") == 0
        assert _json_out(capsys) == [cid]

        assert _run(tmp_path, "contribute", "--campaign", cid, "--caller", ALICE, "--amount", "600") == 0
        assert _run(tmp_path, "contribute", "--campaign", cid, "--caller", BOB, "--amount", "400") == 0
        assert _run(
            tmp_path, "create-request", "--campaign", cid, "--caller", MANAGER,
            "--description", "Tools", "--value", "700", "--recipient", VENDOR,
        ) == 0
        assert _run(tmp_path, "approve-request", "--campaign", cid, "--caller", ALICE, "--index", "0") == 0
        assert _run(tmp_path, "approve-request", "--campaign", cid, "--caller", BOB, "--index", "0") == 0
        capsys.readouterr()

        assert _run(tmp_path, "finalize-request", "--campaign", cid, "--caller", MANAGER, "--index", "0") == 0
        assert _json_out(capsys)["balance"] == 300

        assert _run(tmp_path, "summary", "--campaign", cid) == 0
        summary = _json_out(capsys)
        assert summary["contributor_count"] == 2
        assert summary["number_of_requests"] == 1

        assert _run(tmp_path, "show-request", "--campaign", cid, "--index", "0") == 0
        assert _json_out(capsys)["complete"] is True

        assert _run(tmp_path, "balance", "--address", VENDOR) == 0
        assert _json_out(capsys)["balance"] == 700

        assert _run(tmp_path, "check-invariants") == 0

    def test_rejection_exit_code(self, tmp_path: Path, capsys) -> None:
        cid = _create_campaign(tmp_path, capsys)
        code = _run(tmp_path, "contribute", "--campaign", cid, "--caller", ALICE, "--amount", "5")
        assert code == 1
        assert "below the minimum" in capsys.readouterr().err

    def test_double_finalize_reports_already_completed(self, tmp_path: Path, capsys) -> None:
        cid = _create_campaign(tmp_path, capsys)
        _run(tmp_path, "contribute", "--campaign", cid, "--caller", ALICE, "--amount", "200")
        _run(
            tmp_path, "create-request", "--campaign", cid, "--caller", MANAGER,
            "--description", "x", "--value", "50", "--recipient", VENDOR,
        )
        _run(tmp_path, "approve-request", "--campaign", cid, "--caller", ALICE, "--index", "0")
        assert _run(tmp_path, "finalize-request", "--campaign", cid, "--caller", MANAGER, "--index", "0") == 0
        capsys.readouterr()
        assert _run(tmp_path, "finalize-request", "--campaign", cid, "--caller", MANAGER, "--index", "0") == 1
        assert "request already completed" in capsys.readouterr().err

    def test_ether_unit_conversion(self, tmp_path: Path, capsys) -> None:
        cid = _create_campaign(tmp_path, capsys)
        capsys.readouterr()
        assert main([
            "--data-dir", str(tmp_path), "--unit", "ether",
            "contribute", "--campaign", cid, "--caller", ALICE, "--amount", "1.5",
        ]) == 0
        assert _json_out(capsys)["balance"] == 1_500_000_000_000_000_000

    def test_fractional_wei_rejected(self, tmp_path: Path, capsys) -> None:
        assert _run(tmp_path, "create-campaign", "--caller", MANAGER, "--minimum", "0.5") == 1
        assert "whole number of wei" in capsys.readouterr().err

    def test_non_numeric_amount_rejected(self, tmp_path: Path, capsys) -> None:
        assert _run(tmp_path, "create-campaign", "--caller", MANAGER, "--minimum", "lots") == 1
        assert "Not a number" in capsys.readouterr().err

    def test_fund_account_and_balance(self, tmp_path: Path, capsys) -> None:
        assert _run(tmp_path, "fund-account", "--address", VENDOR, "--amount", "75") == 0
        capsys.readouterr()
        assert _run(tmp_path, "balance", "--address", VENDOR) == 0
        assert _json_out(capsys)["balance"] == 75

    def test_history_lists_campaign_events(self, tmp_path: Path, capsys) -> None:
        cid = _create_campaign(tmp_path, capsys)
        _run(tmp_path, "contribute", "--campaign", cid, "--caller", ALICE, "--amount", "200")
        capsys.readouterr()

        assert _run(tmp_path, "history", "--campaign", cid) == 0
        events = _json_out(capsys)["events"]
        assert [e["event_kind"] for e in events] == ["campaign_created", "contribution_received"]
        assert events[0]["event_id"] == "EVT-00000001"

    def test_history_of_unknown_campaign_fails(self, tmp_path: Path, capsys) -> None:
        assert _run(tmp_path, "history", "--campaign", "campaign_missing") == 1
        assert "Unknown campaign ID" in capsys.readouterr().err
