#!/usr/bin/env python3
"""Agora invariant checks against the engine parameter file."""

import sys
from pathlib import Path

from agora.policy.invariants import check


ROOT = Path(__file__).resolve().parents[1]
CONFIG_DIR = ROOT / "config"


if __name__ == "__main__":
    config_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else CONFIG_DIR
    raise SystemExit(check(config_dir))
