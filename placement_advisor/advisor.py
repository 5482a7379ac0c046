"""
Placement Advisor pipeline.

Sample store -> room resolver -> {coverage, signal surface} -> {router, extenders}
-> health, as a single pure call over an immutable snapshot.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple, Union

from placement_advisor.config import DEFAULT_CONFIG, AdvisorConfig
from placement_advisor.coverage_analyzer import CoverageAnalysis, analyze_coverage, analyze_coverage_by_floor
from placement_advisor.data_collection.sample_store import CalibrationPoint, SampleStore
from placement_advisor.floor_plan_analyzer import Layout, Room, RoomLayoutResolver
from placement_advisor.health import HealthScore, score_health
from placement_advisor.optimization.extenders import (
    DeviceStrategy, ExtenderRecommendation, ExtenderRecommendationEngine, build_adjacency_graph
)
from placement_advisor.optimization.router import RouterPlacementOptimizer, RouterRecommendation
from placement_advisor.propagation.engines import SignalSurfaceModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlacementReport:
    """Everything derived from one sample snapshot, ready for presentation."""
    rooms: Tuple[Room, ...]
    coverage: CoverageAnalysis
    coverage_by_floor: Tuple[Tuple[int, CoverageAnalysis], ...]
    router: Optional[RouterRecommendation]
    floor_routers: Tuple[RouterRecommendation, ...]
    extenders: Tuple[ExtenderRecommendation, ...]
    health: HealthScore
    device_strategy: DeviceStrategy
    surface: SignalSurfaceModel
    config: AdvisorConfig

    def predict_signal(self, point: Tuple[float, float], floor: int) -> float:
        """Predicted signal at ``point`` on ``floor`` for on-demand heatmap sampling."""
        return self.surface.predict(point, floor)

    @property
    def weak_rooms(self) -> List[Room]:
        return [r for r in self.rooms if r.signal < self.config.weak_threshold]

    @property
    def floors(self) -> List[int]:
        return sorted({r.floor for r in self.rooms})

    def coverage_for_floor(self, floor: int) -> CoverageAnalysis:
        return dict(self.coverage_by_floor).get(floor, CoverageAnalysis())

    @property
    def summary(self) -> Dict[str, object]:
        return {
            'rooms': len(self.rooms),
            'coverage': round(self.coverage.coverage_percentage, 3),
            'health': f"{self.health.value:.2f} ({self.health.label})",
            'router': self.router.room.label if self.router else None,
            'extenders': len(self.extenders),
            'device_strategy': self.device_strategy.value,
        }


class PlacementAdvisor:
    """Runs the full analysis. Holds only configuration, never sample state."""

    def __init__(self, config: AdvisorConfig = DEFAULT_CONFIG):
        self.config = config.validate()
        self.resolver = RoomLayoutResolver(self.config)

    def analyze(self, samples: Union[SampleStore, Iterable[CalibrationPoint]],
                layout: Optional[Layout] = None) -> PlacementReport:
        store = samples if isinstance(samples, SampleStore) else SampleStore(samples)
        logger.info(f"Analyzing {len(store)} samples on floors {store.floors}")

        rooms = self.resolver.resolve(store, layout)
        coverage = analyze_coverage(rooms, self.config)
        surface = SignalSurfaceModel.from_rooms(rooms, self.config)

        optimizer = RouterPlacementOptimizer(self.config, surface)
        router = optimizer.recommend(rooms)
        floor_routers = optimizer.recommend_per_floor(rooms) if self.config.router_mode == 'per_floor' else []

        graph = build_adjacency_graph(rooms, self.config)
        extenders = ExtenderRecommendationEngine(self.config, surface).recommend(rooms, graph)
        health = score_health(coverage)

        report = PlacementReport(
            rooms=tuple(rooms),
            coverage=coverage,
            coverage_by_floor=tuple(analyze_coverage_by_floor(rooms, self.config).items()),
            router=router,
            floor_routers=tuple(floor_routers),
            extenders=tuple(extenders),
            health=health,
            device_strategy=DeviceStrategy.for_weak_rooms(coverage.weak_areas),
            surface=surface,
            config=self.config,
        )
        logger.info(f"Analysis complete: {report.summary}")
        return report


def analyze(samples: Union[SampleStore, Iterable[CalibrationPoint]], layout: Optional[Layout] = None,
            config: AdvisorConfig = DEFAULT_CONFIG) -> PlacementReport:
    """Convenience wrapper around ``PlacementAdvisor(config).analyze``."""
    return PlacementAdvisor(config).analyze(samples, layout)
