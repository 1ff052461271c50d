"""Tests for Agora CLI — proves commands dispatch and state persists between runs."""

import json
from pathlib import Path

import pytest

from agora.cli import build_parser, main


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


def _run(data_dir: Path, *argv: str) -> int:
    return main(["--data-dir", str(data_dir), *argv])


class TestCLIParsing:
    def test_status_command(self) -> None:
        args = build_parser().parse_args(["status"])
        assert args.command == "status"

    def test_submit_proposal_command(self) -> None:
        args = build_parser().parse_args([
            "submit-proposal", "--caller", "alice",
            "--title", "Upgrade X", "--category", "infra", "--stake", "1000000",
        ])
        assert args.command == "submit-proposal"
        assert args.stake == 1_000_000

    def test_evaluate_proposal_command(self) -> None:
        args = build_parser().parse_args([
            "evaluate-proposal", "--caller", "eve", "--id", "1",
            "--community", "75", "--technical", "80", "--financial", "60",
        ])
        assert (args.id, args.community, args.technical, args.financial) == (1, 75, 80, 60)

    def test_authorize_expertise_list(self) -> None:
        args = build_parser().parse_args([
            "authorize-evaluator", "--caller", "owner", "--id", "eve",
            "--expertise", "defi", "infra",
        ])
        assert args.expertise == ["defi", "infra"]

    def test_emergency_requires_toggle(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["emergency", "--caller", "owner"])

    def test_emergency_off(self) -> None:
        args = build_parser().parse_args(["emergency", "--caller", "owner", "--off"])
        assert args.enabled is False


class TestCLIExecution:
    def test_no_command_shows_help(self, capsys) -> None:
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out

    def test_status_runs(self, data_dir: Path, capsys) -> None:
        assert _run(data_dir, "status") == 0
        status = json.loads(capsys.readouterr().out)
        assert status["proposals"]["total"] == 0
        assert status["counters"]["next_proposal_id"] == 1

    def test_check_invariants_runs(self, capsys) -> None:
        assert main(["check-invariants"]) == 0
        assert "passed" in capsys.readouterr().out

    def test_check_invariants_reports_bad_config(self, tmp_path: Path, capsys) -> None:
        (tmp_path / "engine_params.json").write_text("{not json", encoding="utf-8")
        assert main(["--config", str(tmp_path), "check-invariants"]) == 1
        assert "FAILED" in capsys.readouterr().out

    def test_deposit_rejects_non_positive(self, data_dir: Path, capsys) -> None:
        assert _run(data_dir, "deposit", "--account", "alice", "--amount", "0") == 1
        assert "Failed" in capsys.readouterr().err

    def test_submit_without_funds_fails(self, data_dir: Path, capsys) -> None:
        code = _run(
            data_dir, "submit-proposal", "--caller", "alice",
            "--title", "Upgrade X", "--category", "infra", "--stake", "1000000",
        )
        assert code == 1
        assert "[transfer_failed]" in capsys.readouterr().err

    def test_show_missing_proposal(self, data_dir: Path) -> None:
        assert _run(data_dir, "show-proposal", "--id", "7") == 1

    def test_advance_height_rejects_negative(self, data_dir: Path) -> None:
        assert _run(data_dir, "advance-height", "--blocks", "-1") == 1


class TestCLIEndToEnd:
    def test_full_lifecycle(self, data_dir: Path, capsys) -> None:
        assert _run(data_dir, "deposit", "--account", "alice", "--amount", "2000000") == 0
        assert _run(
            data_dir, "authorize-evaluator", "--caller", "owner", "--id", "eve",
            "--expertise", "defi",
        ) == 0
        assert _run(
            data_dir, "submit-proposal", "--caller", "alice",
            "--title", "Upgrade X", "--category", "infra", "--stake", "1000000",
        ) == 0
        assert _run(
            data_dir, "evaluate-proposal", "--caller", "eve", "--id", "1",
            "--community", "75", "--technical", "80", "--financial", "60",
        ) == 0
        out = capsys.readouterr().out
        assert "Submitted proposal: 1" in out
        assert "composite 72" in out

        assert _run(data_dir, "show-proposal", "--id", "1") == 0
        shown = json.loads(capsys.readouterr().out)
        assert shown["proposal"]["status"] == "qualified"
        assert shown["metrics"]["sustainability_score"] == 50
        assert shown["expired"] is False

        assert (data_dir / "state.json").exists()
        assert (data_dir / "events.jsonl").exists()

    def test_expiry_after_height_advance(self, data_dir: Path, capsys) -> None:
        _run(data_dir, "deposit", "--account", "alice", "--amount", "1000000")
        _run(data_dir, "authorize-evaluator", "--caller", "owner", "--id", "eve")
        _run(
            data_dir, "submit-proposal", "--caller", "alice",
            "--title", "Late", "--category", "infra", "--stake", "1000000",
        )
        assert _run(data_dir, "advance-height", "--blocks", "1441") == 0
        capsys.readouterr()
        code = _run(
            data_dir, "evaluate-proposal", "--caller", "eve", "--id", "1",
            "--community", "75", "--technical", "80", "--financial", "60",
        )
        assert code == 1
        assert "[expired]" in capsys.readouterr().err

    def test_emergency_blocks_intake(self, data_dir: Path, capsys) -> None:
        _run(data_dir, "deposit", "--account", "alice", "--amount", "1000000")
        assert _run(data_dir, "emergency", "--caller", "owner", "--on") == 0
        capsys.readouterr()
        code = _run(
            data_dir, "submit-proposal", "--caller", "alice",
            "--title", "Blocked", "--category", "infra", "--stake", "1000000",
        )
        assert code == 1
        assert "[insufficient_stake]" in capsys.readouterr().err

    def test_advance_cycle_counts(self, data_dir: Path, capsys) -> None:
        _run(data_dir, "advance-cycle")
        _run(data_dir, "advance-cycle")
        assert "Governance cycle: 2" in capsys.readouterr().out
