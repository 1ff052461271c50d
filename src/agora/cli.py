"""Agora CLI — command-line interface for the proposal evaluation engine.

Usage:
    python -m agora.cli status
    python -m agora.cli deposit --account alice --amount 2000000
    python -m agora.cli authorize-evaluator --caller owner --id eve --expertise defi infra
    python -m agora.cli submit-proposal --caller alice --title "Upgrade X" --category infra --stake 1000000
    python -m agora.cli evaluate-proposal --caller eve --id 1 --community 75 --technical 80 --financial 60
    python -m agora.cli show-proposal --id 1
    python -m agora.cli advance-height --blocks 10
    python -m agora.cli advance-cycle
    python -m agora.cli emergency --caller owner --on
    python -m agora.cli check-invariants

Config and data directories default to config/ and data/ at the
repository root and can be overridden with AGORA_CONFIG_DIR and
AGORA_DATA_DIR (a .env file in the working directory is honoured).
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from dataclasses import asdict
from pathlib import Path

from dotenv import load_dotenv

from agora.persistence.event_log import EventLog
from agora.persistence.state_store import StateStore
from agora.policy.invariants import check
from agora.policy.resolver import PolicyResolver
from agora.service import ProposalService, ServiceResult


ROOT = Path(__file__).resolve().parents[2]


def _default_config_dir() -> Path:
    return Path(os.environ.get("AGORA_CONFIG_DIR", ROOT / "config"))


def _default_data_dir() -> Path:
    return Path(os.environ.get("AGORA_DATA_DIR", ROOT / "data"))


def _make_service(args: argparse.Namespace) -> ProposalService:
    """Create a ProposalService with durable persistence."""
    data_dir: Path = args.data_dir
    data_dir.mkdir(parents=True, exist_ok=True)
    return ProposalService(
        PolicyResolver.from_config_dir(args.config),
        event_log=EventLog(storage_path=data_dir / "events.jsonl"),
        state_store=StateStore(data_dir / "state.json"),
    )


def _report(result: ServiceResult, message: str) -> int:
    if result.success:
        print(message)
        return 0
    kind = result.error_kind.value if result.error_kind else "error"
    print(f"Failed [{kind}]: {'; '.join(result.errors)}", file=sys.stderr)
    return 1


def cmd_status(args: argparse.Namespace) -> int:
    service = _make_service(args)
    print(json.dumps(service.status(), indent=2))
    return 0


def cmd_deposit(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.deposit(args.account, args.amount)
    return _report(
        result,
        f"Balance of {result.data.get('account')}: {result.data.get('balance')}",
    )


def cmd_authorize_evaluator(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.authorize_evaluator(args.caller, args.id, args.expertise)
    return _report(result, f"Authorized evaluator: {result.data.get('evaluator_id')}")


def cmd_submit_proposal(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.submit_proposal(args.caller, args.title, args.category, args.stake)
    return _report(
        result,
        f"Submitted proposal: {result.data.get('proposal_id')} "
        f"(height {result.data.get('submission_height')})",
    )


def cmd_evaluate_proposal(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.evaluate_proposal(
        args.caller, args.id, args.community, args.technical, args.financial,
    )
    return _report(
        result,
        f"Proposal {args.id}: composite {result.data.get('composite_score')} "
        f"→ {result.data.get('status')}",
    )


def cmd_show_proposal(args: argparse.Namespace) -> int:
    service = _make_service(args)
    submission = service.get_proposal(args.id)
    if submission is None:
        print(f"Proposal not found: {args.id}", file=sys.stderr)
        return 1
    metrics = service.get_metrics(args.id)
    print(json.dumps(
        {
            "proposal": {**asdict(submission), "status": submission.status.value},
            "metrics": asdict(metrics) if metrics is not None else None,
            "expired": service.is_expired(args.id),
        },
        indent=2,
    ))
    return 0


def cmd_advance_height(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.advance_height(args.blocks)
    return _report(result, f"Height: {result.data.get('height')}")


def cmd_advance_cycle(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.advance_cycle(args.caller)
    return _report(result, f"Governance cycle: {result.data.get('governance_cycle')}")


def cmd_emergency(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.set_emergency_mode(args.caller, args.enabled)
    state = "on" if args.enabled else "off"
    return _report(result, f"Emergency mode: {state}")


def cmd_check_invariants(args: argparse.Namespace) -> int:
    return check(args.config)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agora",
        description="Agora — proposal evaluation engine CLI",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=_default_config_dir(),
        help="Path to config directory (default: config/ or $AGORA_CONFIG_DIR)",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=_default_data_dir(),
        help="Path to data directory (default: data/ or $AGORA_DATA_DIR)",
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("status", help="Show engine status")

    p_dep = sub.add_parser("deposit", help="Credit an account in the custody ledger")
    p_dep.add_argument("--account", required=True, help="Account identity")
    p_dep.add_argument("--amount", type=int, required=True, help="Amount to credit")

    p_auth = sub.add_parser("authorize-evaluator", help="Authorize an evaluator (owner only)")
    p_auth.add_argument("--caller", required=True, help="Calling identity")
    p_auth.add_argument("--id", required=True, help="Evaluator identity")
    p_auth.add_argument("--expertise", nargs="*", default=[], help="Expertise tags (max 5)")

    p_sub = sub.add_parser("submit-proposal", help="Stake and submit a proposal")
    p_sub.add_argument("--caller", required=True, help="Submitter identity")
    p_sub.add_argument("--title", required=True, help="Proposal title (max 100 chars)")
    p_sub.add_argument("--category", required=True, help="Category (max 20 chars)")
    p_sub.add_argument("--stake", type=int, required=True, help="Stake amount")

    p_eval = sub.add_parser("evaluate-proposal", help="Score a proposal")
    p_eval.add_argument("--caller", required=True, help="Evaluator identity")
    p_eval.add_argument("--id", type=int, required=True, help="Proposal ID")
    p_eval.add_argument("--community", type=int, required=True, help="Community score 0-100")
    p_eval.add_argument("--technical", type=int, required=True, help="Technical score 0-100")
    p_eval.add_argument("--financial", type=int, required=True, help="Financial score 0-100")

    p_show = sub.add_parser("show-proposal", help="Show a proposal and its metrics")
    p_show.add_argument("--id", type=int, required=True, help="Proposal ID")

    p_height = sub.add_parser("advance-height", help="Move the height clock forward")
    p_height.add_argument("--blocks", type=int, default=1, help="Height units (default: 1)")

    p_cycle = sub.add_parser("advance-cycle", help="Advance the governance cycle counter")
    p_cycle.add_argument("--caller", default="system", help="Calling identity")

    p_em = sub.add_parser("emergency", help="Toggle emergency mode (owner only)")
    p_em.add_argument("--caller", required=True, help="Calling identity")
    toggle = p_em.add_mutually_exclusive_group(required=True)
    toggle.add_argument("--on", dest="enabled", action="store_true")
    toggle.add_argument("--off", dest="enabled", action="store_false")

    sub.add_parser("check-invariants", help="Run engine invariant checks")

    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "status": cmd_status,
        "deposit": cmd_deposit,
        "authorize-evaluator": cmd_authorize_evaluator,
        "submit-proposal": cmd_submit_proposal,
        "evaluate-proposal": cmd_evaluate_proposal,
        "show-proposal": cmd_show_proposal,
        "advance-height": cmd_advance_height,
        "advance-cycle": cmd_advance_cycle,
        "emergency": cmd_emergency,
        "check-invariants": cmd_check_invariants,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
