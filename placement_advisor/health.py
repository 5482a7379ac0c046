"""Network health: one 0-1 score and a qualitative label for display."""

from dataclasses import dataclass

from placement_advisor.coverage_analyzer import CoverageAnalysis

WEAK_AREA_PENALTY = 0.1
STRONG_AREA_BONUS = 0.05

EXCELLENT = "Excellent"
GOOD = "Good"
NEEDS_ATTENTION = "Needs Attention"

DESCRIPTIONS = {
    EXCELLENT: "Excellent network health! Your WiFi coverage is strong throughout your space.",
    GOOD: "Good network health with room for improvement in weak areas.",
    NEEDS_ATTENTION: "Network needs attention. Consider implementing the recommended improvements.",
}


@dataclass(frozen=True)
class HealthScore:
    value: float
    label: str

    @property
    def description(self) -> str:
        return DESCRIPTIONS[self.label]


def health_label(value: float) -> str:
    if value >= 0.8:
        return EXCELLENT
    if value >= 0.6:
        return GOOD
    return NEEDS_ATTENTION


def score_health(coverage: CoverageAnalysis) -> HealthScore:
    """Mean signal, minus 0.1 per weak room, plus 0.05 per strong room, clamped to [0, 1]."""
    raw = (coverage.coverage_percentage
           - WEAK_AREA_PENALTY * coverage.weak_areas
           + STRONG_AREA_BONUS * coverage.well_covered_rooms)
    value = min(1.0, max(0.0, raw))
    return HealthScore(value=value, label=health_label(value))
