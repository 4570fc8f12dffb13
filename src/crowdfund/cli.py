"""crowdfund CLI: command-line interface for the campaign engine.

Every invocation rebuilds state by replaying the event log in the data
directory, runs one command, and appends what it did to the same log.

Usage:
    python -m crowdfund.cli new-account
    python -m crowdfund.cli create-campaign --caller 0xMgr... --minimum 100
    python -m crowdfund.cli contribute --campaign campaign_ab12... --caller 0xA... --amount 200
    python -m crowdfund.cli --unit ether create-request --campaign C --caller 0xMgr... \\
        --description "Buy laptop" --value 1 --recipient 0xR...
    python -m crowdfund.cli approve-request --campaign C --caller 0xA... --index 0
    python -m crowdfund.cli finalize-request --campaign C --caller 0xMgr... --index 0
    python -m crowdfund.cli summary --campaign C
    python -m crowdfund.cli history --campaign C
    python -m crowdfund.cli check-invariants
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path

from web3 import Web3

from crowdfund.config import SUPPORTED_UNITS, CrowdfundConfig
from crowdfund.identity import new_identity
from crowdfund.persistence.event_log import EventLog
from crowdfund.service import CrowdfundService, ServiceResult


def _load_config(args: argparse.Namespace) -> CrowdfundConfig:
    config = CrowdfundConfig.from_env(args.env_file)
    overrides = {}
    if args.data_dir is not None:
        overrides["data_dir"] = args.data_dir
    if args.unit is not None:
        overrides["default_unit"] = args.unit
    return dataclasses.replace(config, **overrides) if overrides else config


def _make_service(config: CrowdfundConfig) -> CrowdfundService:
    """Create a CrowdfundService with durable persistence."""
    config.data_dir.mkdir(parents=True, exist_ok=True)
    event_log = EventLog(storage_path=config.event_log_path)
    return CrowdfundService.from_event_log(event_log)


def _to_base_units(text: str, unit: str) -> int:
    """Convert a decimal amount in unit to integer base units (wei)."""
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"Not a number: {text}")
    scaled = amount * Web3.to_wei(1, unit)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"{text} {unit} is not a whole number of wei")
    return int(Web3.to_wei(amount, unit))


def _report(result: ServiceResult) -> int:
    if result.success:
        print(json.dumps(result.data, indent=2, default=str))
        return 0
    print(f"Failed: {'; '.join(result.errors)}", file=sys.stderr)
    return 1


def cmd_new_account(args: argparse.Namespace) -> int:
    """Generate a fresh address to use as a caller identity."""
    address, private_key = new_identity()
    print(json.dumps({"address": address, "private_key": private_key}, indent=2))
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    service = _make_service(args.config)
    print(json.dumps(service.status(), indent=2))
    return 0


def cmd_create_campaign(args: argparse.Namespace) -> int:
    service = _make_service(args.config)
    try:
        minimum = _to_base_units(args.minimum, args.config.default_unit)
    except ValueError as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1
    return _report(service.create_campaign(minimum, caller=args.caller))


def cmd_list_campaigns(args: argparse.Namespace) -> int:
    service = _make_service(args.config)
    print(json.dumps(service.list_campaigns(), indent=2))
    return 0


def cmd_contribute(args: argparse.Namespace) -> int:
    service = _make_service(args.config)
    try:
        amount = _to_base_units(args.amount, args.config.default_unit)
    except ValueError as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1
    return _report(service.contribute(args.campaign, amount, caller=args.caller))


def cmd_create_request(args: argparse.Namespace) -> int:
    service = _make_service(args.config)
    try:
        value = _to_base_units(args.value, args.config.default_unit)
    except ValueError as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1
    return _report(service.create_request(
        args.campaign,
        description=args.description,
        value=value,
        recipient=args.recipient,
        caller=args.caller,
    ))


def cmd_approve_request(args: argparse.Namespace) -> int:
    service = _make_service(args.config)
    return _report(service.approve_request(args.campaign, args.index, caller=args.caller))


def cmd_finalize_request(args: argparse.Namespace) -> int:
    service = _make_service(args.config)
    return _report(service.finalize_request(args.campaign, args.index, caller=args.caller))


def cmd_show_request(args: argparse.Namespace) -> int:
    service = _make_service(args.config)
    return _report(service.get_request(args.campaign, args.index))


def cmd_summary(args: argparse.Namespace) -> int:
    service = _make_service(args.config)
    return _report(service.get_summary(args.campaign))


def cmd_history(args: argparse.Namespace) -> int:
    """Print the logged events of one campaign."""
    service = _make_service(args.config)
    return _report(service.campaign_history(args.campaign))


def cmd_fund_account(args: argparse.Namespace) -> int:
    service = _make_service(args.config)
    try:
        amount = _to_base_units(args.amount, args.config.default_unit)
    except ValueError as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1
    return _report(service.fund_account(args.address, amount))


def cmd_balance(args: argparse.Namespace) -> int:
    service = _make_service(args.config)
    try:
        balance = service.balance_of(args.address)
    except ValueError as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1
    print(json.dumps({"address": args.address, "balance": balance}, indent=2))
    return 0


def cmd_check_invariants(args: argparse.Namespace) -> int:
    """Run campaign invariant checks over the replayed state."""
    service = _make_service(args.config)
    errors = service.check_invariants()
    if errors:
        for err in errors:
            print(f"Invariant violation: {err}", file=sys.stderr)
        return 1
    print(f"Invariant checks passed ({len(service.list_campaigns())} campaigns).")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="crowdfund",
        description="Crowdfunding escrow with contributor-approved spending",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Directory holding the event log (default: $CROWDFUND_DATA_DIR or data/)",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to a .env file to load before reading settings",
    )
    parser.add_argument(
        "--unit",
        choices=SUPPORTED_UNITS,
        default=None,
        help="Unit for amounts (default: $CROWDFUND_DEFAULT_UNIT or wei)",
    )
    sub = parser.add_subparsers(dest="command")

    # new-account
    sub.add_parser("new-account", help="Generate a fresh address")

    # status
    sub.add_parser("status", help="Show system status")

    # create-campaign
    p_create = sub.add_parser("create-campaign", help="Create a campaign")
    p_create.add_argument("--caller", required=True, help="Manager address")
    p_create.add_argument("--minimum", required=True, help="Minimum contribution")

    # list-campaigns
    sub.add_parser("list-campaigns", help="List campaign IDs in creation order")

    # contribute
    p_contrib = sub.add_parser("contribute", help="Contribute to a campaign")
    p_contrib.add_argument("--campaign", required=True, help="Campaign ID")
    p_contrib.add_argument("--caller", required=True, help="Contributor address")
    p_contrib.add_argument("--amount", required=True, help="Amount to contribute")

    # create-request
    p_req = sub.add_parser("create-request", help="Propose a spending request")
    p_req.add_argument("--campaign", required=True, help="Campaign ID")
    p_req.add_argument("--caller", required=True, help="Manager address")
    p_req.add_argument("--description", required=True, help="What the money is for")
    p_req.add_argument("--value", required=True, help="Amount requested")
    p_req.add_argument("--recipient", required=True, help="Recipient address")

    # approve-request / finalize-request / show-request
    for name, help_text, needs_caller in (
        ("approve-request", "Approve a request as a contributor", True),
        ("finalize-request", "Finalize an approved request", True),
        ("show-request", "Show a request", False),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--campaign", required=True, help="Campaign ID")
        p.add_argument("--index", required=True, type=int, help="Request index")
        if needs_caller:
            p.add_argument("--caller", required=True, help="Caller address")

    # summary
    p_sum = sub.add_parser("summary", help="Show a campaign summary")
    p_sum.add_argument("--campaign", required=True, help="Campaign ID")

    # history
    p_hist = sub.add_parser("history", help="Show the logged events of a campaign")
    p_hist.add_argument("--campaign", required=True, help="Campaign ID")

    # fund-account
    p_fund = sub.add_parser("fund-account", help="Seed an external account balance")
    p_fund.add_argument("--address", required=True, help="Account address")
    p_fund.add_argument("--amount", required=True, help="Opening balance")

    # balance
    p_bal = sub.add_parser("balance", help="Show an external account balance")
    p_bal.add_argument("--address", required=True, help="Account address")

    # check-invariants
    sub.add_parser("check-invariants", help="Run campaign invariant checks")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "new-account": cmd_new_account,
        "status": cmd_status,
        "create-campaign": cmd_create_campaign,
        "list-campaigns": cmd_list_campaigns,
        "contribute": cmd_contribute,
        "create-request": cmd_create_request,
        "approve-request": cmd_approve_request,
        "finalize-request": cmd_finalize_request,
        "show-request": cmd_show_request,
        "summary": cmd_summary,
        "history": cmd_history,
        "fund-account": cmd_fund_account,
        "balance": cmd_balance,
        "check-invariants": cmd_check_invariants,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        args.config = _load_config(args)
    except ValueError as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1
    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
