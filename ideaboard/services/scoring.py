"""Priority scoring and classification.

Pure functions, no database access:

- ``priority_score``   - impact / effort / excitement → float (or None)
- ``recommend``        - four-tier recommendation shown on the idea page
- ``badge_level``      - three-tier badge colour shown on idea cards
- ``format_priority``  - "N/A" or two decimals

The recommendation and badge tables use different thresholds on the same
score. They are kept as two separately named tables rather than merged.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

SCORE_RANGE = (1, 10)

ScoreFormula = Callable[[int, int, int], float]


def ratio_formula(impact: int, effort: int, excitement: int) -> float:
    """impact × excitement ÷ effort (0.1 .. 100)."""
    return impact * excitement / effort


def make_weighted_formula(weights: dict) -> ScoreFormula:
    """Linear formula ``wi·impact + wx·excitement − we·effort``, floored at 0."""
    wi = float(weights.get("impact", 1.0))
    wx = float(weights.get("excitement", 1.0))
    we = float(weights.get("effort", 1.0))
    if min(wi, wx, we) < 0:
        raise ValueError("priority weights must be non-negative")

    def weighted_formula(impact: int, effort: int, excitement: int) -> float:
        return max(0.0, wi * impact + wx * excitement - we * effort)

    return weighted_formula


def resolve_formula(name: str | None, weights: dict | None = None) -> ScoreFormula:
    if not name or name == "ratio":
        return ratio_formula
    if name == "weighted":
        return make_weighted_formula(weights or {})
    raise ValueError(f"Unknown priority formula: {name!r}")


def validate_score(field: str, value) -> int | None:
    """Return ``value`` as an int in 1..10, None for null; raise ValueError otherwise."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"{field} must be an integer between 1 and 10")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"{field} must be an integer between 1 and 10")
        value = int(value)
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise ValueError(f"{field} must be an integer between 1 and 10") from None
    if not isinstance(value, int):
        raise ValueError(f"{field} must be an integer between 1 and 10")
    low, high = SCORE_RANGE
    if not low <= value <= high:
        raise ValueError(f"{field} must be between {low} and {high}")
    return value


def priority_score(impact, effort, excitement, formula: ScoreFormula | None = None) -> float | None:
    """Derive the priority score, or None unless all three inputs are present."""
    if impact is None or effort is None or excitement is None:
        return None
    formula = formula or ratio_formula
    return round(formula(impact, effort, excitement), 2)


def format_priority(score) -> str:
    return "N/A" if score is None else f"{score:.2f}"


# ── Recommendation (four tiers, ">=" boundaries) ─────────────────────────────

@dataclass(frozen=True)
class Recommendation:
    tier: str
    title: str
    message: str
    severity: str

    def to_dict(self) -> dict:
        return {
            "tier": self.tier,
            "title": self.title,
            "message": self.message,
            "severity": self.severity,
        }


RECOMMENDATION_TIERS = (
    (20, Recommendation(
        "must-build", "Absolute Must-Build!",
        "This idea has exceptionally high potential. Prioritize it!",
        "success",
    )),
    (10, Recommendation(
        "strong-candidate", "Strong Candidate!",
        "A promising idea. Worth further investigation and planning.",
        "info",
    )),
    (5, Recommendation(
        "consider-carefully", "Consider Carefully",
        "This idea has some potential but needs refinement or more compelling reasons.",
        "warning",
    )),
)

LOW_PRIORITY = Recommendation(
    "low-priority", "Low Priority",
    "The current scores suggest this might not be the best use of your time.",
    "danger",
)


def recommend(score) -> Recommendation:
    score = score or 0
    for threshold, recommendation in RECOMMENDATION_TIERS:
        if score >= threshold:
            return recommendation
    return LOW_PRIORITY


# ── Badge colour (three tiers, ">" boundaries) ──────────────────────────────

BADGE_THRESHOLDS = (
    (15, "high"),
    (10, "medium"),
)

HIGH_PRIORITY_THRESHOLD = BADGE_THRESHOLDS[0][0]


def badge_level(score) -> str:
    if score is None:
        return "neutral"
    for threshold, level in BADGE_THRESHOLDS:
        if score > threshold:
            return level
    return "low"


def is_high_priority(score) -> bool:
    return (score or 0) > HIGH_PRIORITY_THRESHOLD


VALIDATION_QUESTIONS = (
    "Does this idea solve a real problem?",
    "Do I have the necessary skills or resources to build this?",
    "Is there a target audience for this idea?",
    "Can this idea be broken down into smaller, manageable milestones?",
    "Am I truly excited to work on this for an extended period?",
)


def describe(score) -> dict:
    """Presentation bundle for an idea's score."""
    return {
        "priority_display": format_priority(score),
        "badge": badge_level(score),
        "recommendation": recommend(score).to_dict(),
    }
