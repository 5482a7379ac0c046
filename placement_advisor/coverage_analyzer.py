"""Coverage statistics over resolved rooms."""

from dataclasses import dataclass
from typing import Dict, List, Sequence

import numpy as np

from placement_advisor.config import DEFAULT_CONFIG, AdvisorConfig
from placement_advisor.floor_plan_analyzer import Room, group_by_floor


@dataclass(frozen=True)
class CoverageAnalysis:
    """Aggregate coverage of a walk. ``coverage_percentage`` is the mean room signal in [0, 1]."""
    total_rooms: int = 0
    well_covered_rooms: int = 0
    weak_areas: int = 0
    coverage_percentage: float = 0.0

    @property
    def moderate_rooms(self) -> int:
        return self.total_rooms - self.well_covered_rooms - self.weak_areas

    def to_dict(self) -> Dict[str, float]:
        return {
            'total_rooms': self.total_rooms,
            'well_covered_rooms': self.well_covered_rooms,
            'weak_areas': self.weak_areas,
            'coverage_percentage': self.coverage_percentage,
        }


def is_weak(room: Room, config: AdvisorConfig = DEFAULT_CONFIG) -> bool:
    return room.signal < config.weak_threshold


def is_strong(room: Room, config: AdvisorConfig = DEFAULT_CONFIG) -> bool:
    return room.signal >= config.strong_threshold


def weak_rooms(rooms: Sequence[Room], config: AdvisorConfig = DEFAULT_CONFIG) -> List[Room]:
    return [r for r in rooms if is_weak(r, config)]


def strong_rooms(rooms: Sequence[Room], config: AdvisorConfig = DEFAULT_CONFIG) -> List[Room]:
    return [r for r in rooms if is_strong(r, config)]


def analyze_coverage(rooms: Sequence[Room], config: AdvisorConfig = DEFAULT_CONFIG) -> CoverageAnalysis:
    """Compute mean signal and weak/strong counts. Empty input gives all zeros."""
    if not rooms:
        return CoverageAnalysis()
    signals = np.array([r.signal for r in sorted(rooms, key=lambda r: (r.floor, r.order))])
    mean_signal = float(np.clip(signals.mean(), 0.0, 1.0))
    return CoverageAnalysis(
        total_rooms=len(rooms),
        well_covered_rooms=int(np.sum(signals >= config.strong_threshold)),
        weak_areas=int(np.sum(signals < config.weak_threshold)),
        coverage_percentage=mean_signal,
    )


def analyze_coverage_by_floor(rooms: Sequence[Room],
                              config: AdvisorConfig = DEFAULT_CONFIG) -> Dict[int, CoverageAnalysis]:
    """Per-floor breakdown, floors ascending."""
    return {floor: analyze_coverage(floor_rooms, config)
            for floor, floor_rooms in group_by_floor(rooms).items()}
