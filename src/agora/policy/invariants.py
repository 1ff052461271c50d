"""Engine invariant checks against the parameter file on disk."""

from __future__ import annotations

import json
from pathlib import Path

from agora.engine.scorer import composite_score
from agora.policy.resolver import PARAMS_FILENAME, PolicyError, PolicyResolver


def check_config(config_dir: Path) -> list[str]:
    """Return every invariant violation in config_dir. Empty = healthy."""
    path = Path(config_dir) / PARAMS_FILENAME
    if not path.exists():
        return [f"Missing parameter file: {path}"]
    try:
        with path.open("r", encoding="utf-8") as handle:
            params = json.load(handle)
    except json.JSONDecodeError as e:
        return [f"{path} is not valid JSON: {e}"]

    try:
        resolver = PolicyResolver(params)
    except PolicyError as e:
        return [f"{PARAMS_FILENAME}: {msg}" for msg in str(e).split("; ")]

    errors: list[str] = []
    weights = resolver.scoring_weights()
    max_score = resolver.max_score()

    # Composite must span exactly [0, max_score] over in-range inputs
    top = composite_score(max_score, max_score, max_score, weights)
    bottom = composite_score(0, 0, 0, weights)
    if top != max_score:
        errors.append(f"composite of all-max inputs must be {max_score}, got {top}")
    if bottom != 0:
        errors.append(f"composite of all-zero inputs must be 0, got {bottom}")

    if resolver.validity_period() == 0:
        errors.append("lifecycle.validity_period of 0 leaves no evaluation window")

    stake = resolver.stake_policy()
    if stake.min_stake == 0:
        errors.append("stake.min_stake of 0 disables the stake gate")

    return errors


def check(config_dir: Path) -> int:
    """Print violations and return a process exit code."""
    errors = check_config(config_dir)
    if errors:
        print("Invariant check FAILED:")
        for e in errors:
            print(f"  - {e}")
        return 1
    print("Invariant check passed.")
    return 0
