"""Policy resolver — loads and validates engine parameters.

All tunable constants live in config/engine_params.json:
- governance.owner_id: identity allowed to authorize evaluators and
  toggle emergency mode.
- stake.min_stake / stake.max_proposals_per_cycle: intake gates.
- scoring.weights: community / technical / financial weights, summing to 100.
- scoring.min_community_score: qualification threshold.
- lifecycle.validity_period: evaluation window in height units.
- limits: text and tag bounds.
- metric_defaults: seed values for ProposalMetrics.

Invalid parameter files are rejected at load time (fail-closed).
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any


PARAMS_FILENAME = "engine_params.json"

METRIC_FIELDS = (
    "complexity_score",
    "implementation_cost",
    "risk_assessment",
    "timeline_estimate",
    "resource_requirements",
    "stakeholder_impact",
    "innovation_factor",
    "sustainability_score",
)

DEFAULT_PARAMS: dict[str, Any] = {
    "version": "0.1.0",
    "governance": {"owner_id": "owner"},
    "stake": {"min_stake": 1_000_000, "max_proposals_per_cycle": 100},
    "scoring": {
        "weights": {"community": 45, "technical": 30, "financial": 25},
        "min_community_score": 60,
        "max_score": 100,
    },
    "lifecycle": {"validity_period": 1440},
    "limits": {
        "max_title_length": 100,
        "max_category_length": 20,
        "max_expertise_areas": 5,
        "max_expertise_length": 50,
    },
    "metric_defaults": {
        "complexity_score": 50,
        "implementation_cost": 0,
        "risk_assessment": 50,
        "timeline_estimate": 0,
        "resource_requirements": 0,
        "stakeholder_impact": 50,
        "innovation_factor": 50,
        "sustainability_score": 50,
    },
}


class PolicyError(ValueError):
    """Raised when engine parameters violate a structural rule."""


@dataclass(frozen=True)
class StakePolicy:
    """Intake gate parameters."""
    min_stake: int
    max_proposals_per_cycle: int


@dataclass(frozen=True)
class ScoringWeights:
    """Composite score weights. Must sum to 100."""
    community: int
    technical: int
    financial: int

    @property
    def total(self) -> int:
        return self.community + self.technical + self.financial


@dataclass(frozen=True)
class TextLimits:
    max_title_length: int
    max_category_length: int
    max_expertise_areas: int
    max_expertise_length: int


class PolicyResolver:
    """Typed, validated view over the engine parameter document.

    Usage:
        resolver = PolicyResolver.from_config_dir(Path("config"))
        resolver.stake_policy().min_stake
        resolver.scoring_weights().community
    """

    def __init__(self, params: dict[str, Any]) -> None:
        self._params = params
        errors = self.validate()
        if errors:
            raise PolicyError("; ".join(errors))

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> PolicyResolver:
        """Load engine_params.json from a config directory."""
        path = Path(config_dir) / PARAMS_FILENAME
        with path.open("r", encoding="utf-8") as handle:
            return cls(json.load(handle))

    @classmethod
    def from_dict(cls, overrides: dict[str, Any] | None = None) -> PolicyResolver:
        """Build a resolver from defaults with section-level overrides.

        Each top-level key in overrides is merged into the matching
        default section, so callers only specify the values they change.
        """
        params = copy.deepcopy(DEFAULT_PARAMS)
        for section, values in (overrides or {}).items():
            if isinstance(values, dict) and isinstance(params.get(section), dict):
                merged = dict(params[section])
                for key, value in values.items():
                    if isinstance(value, dict) and isinstance(merged.get(key), dict):
                        merged[key] = {**merged[key], **value}
                    else:
                        merged[key] = value
                params[section] = merged
            else:
                params[section] = values
        return cls(params)

    @classmethod
    def default(cls) -> PolicyResolver:
        return cls.from_dict()

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self) -> list[str]:
        """Return structural errors in the parameter document. Empty = valid."""
        errors: list[str] = []
        try:
            weights = self.scoring_weights()
            stake = self.stake_policy()
            limits = self.text_limits()
            max_score = self.max_score()
            min_community = self.min_community_score()
            validity = self.validity_period()
            owner = self.owner_id()
            metric_defaults = self.metric_defaults()
        except (KeyError, TypeError) as e:
            return [f"Missing or malformed parameter: {e}"]

        for name, value in (
            ("community", weights.community),
            ("technical", weights.technical),
            ("financial", weights.financial),
        ):
            if not isinstance(value, int) or value < 0:
                errors.append(f"scoring.weights.{name} must be a non-negative int, got {value!r}")
        if not errors and weights.total != 100:
            errors.append(f"scoring.weights must sum to 100, got {weights.total}")
        if not isinstance(max_score, int) or max_score <= 0:
            errors.append(f"scoring.max_score must be a positive int, got {max_score!r}")
        elif not isinstance(min_community, int) or not (0 <= min_community <= max_score):
            errors.append(
                f"scoring.min_community_score must be in [0, {max_score}], got {min_community}"
            )
        if not isinstance(stake.min_stake, int) or stake.min_stake < 0:
            errors.append(f"stake.min_stake must be a non-negative int, got {stake.min_stake!r}")
        if not isinstance(stake.max_proposals_per_cycle, int) or stake.max_proposals_per_cycle <= 0:
            errors.append(
                "stake.max_proposals_per_cycle must be a positive int, "
                f"got {stake.max_proposals_per_cycle!r}"
            )
        if not isinstance(validity, int) or validity < 0:
            errors.append(f"lifecycle.validity_period must be a non-negative int, got {validity!r}")
        if not isinstance(owner, str) or not owner.strip():
            errors.append("governance.owner_id must be a non-blank string")
        for name in (
            "max_title_length",
            "max_category_length",
            "max_expertise_areas",
            "max_expertise_length",
        ):
            value = getattr(limits, name)
            if not isinstance(value, int) or value <= 0:
                errors.append(f"limits.{name} must be a positive int, got {value!r}")
        unknown = set(metric_defaults) - set(METRIC_FIELDS)
        if unknown:
            errors.append(f"metric_defaults has unknown fields: {sorted(unknown)}")
        for name, value in metric_defaults.items():
            if not isinstance(value, int) or value < 0:
                errors.append(f"metric_defaults.{name} must be a non-negative int, got {value!r}")
        return errors

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def version(self) -> str:
        return str(self._params.get("version", "0.0.0"))

    def owner_id(self) -> str:
        return self._params["governance"]["owner_id"]

    def stake_policy(self) -> StakePolicy:
        stake = self._params["stake"]
        return StakePolicy(
            min_stake=stake["min_stake"],
            max_proposals_per_cycle=stake["max_proposals_per_cycle"],
        )

    def scoring_weights(self) -> ScoringWeights:
        w = self._params["scoring"]["weights"]
        return ScoringWeights(
            community=w["community"],
            technical=w["technical"],
            financial=w["financial"],
        )

    def min_community_score(self) -> int:
        return self._params["scoring"]["min_community_score"]

    def max_score(self) -> int:
        return self._params["scoring"]["max_score"]

    def validity_period(self) -> int:
        return self._params["lifecycle"]["validity_period"]

    def text_limits(self) -> TextLimits:
        limits = self._params["limits"]
        return TextLimits(
            max_title_length=limits["max_title_length"],
            max_category_length=limits["max_category_length"],
            max_expertise_areas=limits["max_expertise_areas"],
            max_expertise_length=limits["max_expertise_length"],
        )

    def metric_defaults(self) -> dict[str, int]:
        return dict(self._params["metric_defaults"])

    def as_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._params)
