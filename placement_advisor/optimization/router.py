"""Router placement: score every calibrated room as a candidate transmitter site."""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from placement_advisor.config import DEFAULT_CONFIG, AdvisorConfig
from placement_advisor.coverage_analyzer import is_weak
from placement_advisor.data_collection.sample_store import LocationType
from placement_advisor.floor_plan_analyzer import Room, group_by_floor
from placement_advisor.propagation.engines import SignalSurfaceModel

logger = logging.getLogger(__name__)

FACTORS = ('signal', 'centrality', 'breadth', 'height', 'location_type')

TYPE_SUITABILITY = {
    LocationType.ROOM: 1.0,
    LocationType.HALLWAY: 0.5,
    LocationType.STAIRCASE: 0.0,
}

# Factors within this share of the top contribution are named in the reasoning
DOMINANCE_RATIO = 0.75

# Scores closer than this are ties
SCORE_TOLERANCE = 1e-9


@dataclass(frozen=True)
class RouterCandidate:
    """Score breakdown of one candidate room; every term is in [0, 1]."""
    room: Room
    signal: float
    centrality: float
    breadth: float
    height: float
    location_type: float
    score: float

    def term(self, factor: str) -> float:
        return getattr(self, factor)

    def rank_key(self) -> Tuple[float, int, int]:
        return (-round(self.score / SCORE_TOLERANCE) * SCORE_TOLERANCE, self.room.floor, self.room.order)


@dataclass(frozen=True)
class RouterRecommendation:
    floor: int
    room: Room
    score: float
    reasoning: str
    position: Tuple[float, float]
    factors: Tuple[Tuple[str, float], ...] = ()
    mode: str = 'global'

    @property
    def factor_scores(self) -> Dict[str, float]:
        return dict(self.factors)


class RouterPlacementOptimizer:
    """
    Picks the room that would make the best router site.

    The measured signal reflects the existing router position, so centrality
    and projected coverage breadth carry most of the weight. Every room is
    scored, but weak rooms are only eligible when no room has usable signal.
    """

    def __init__(self, config: AdvisorConfig = DEFAULT_CONFIG, surfaces: Optional[SignalSurfaceModel] = None):
        self.config = config
        self.weights = config.router_weights.normalized()
        # Breadth only needs the engine's single-source profile
        self.surfaces = surfaces if surfaces is not None else SignalSurfaceModel.from_rooms([], config)

    def score_candidates(self, rooms: Sequence[Room]) -> List[RouterCandidate]:
        """Score every room against the others in ``rooms``; walk order is kept."""
        rooms = sorted(rooms, key=lambda r: (r.floor, r.order))
        if not rooms:
            return []
        points = np.array([r.position_3d for r in rooms], dtype=float)
        centrality = self._centrality(points)
        heights = self._height_suitability(np.array([r.relative_height for r in rooms], dtype=float))

        candidates = []
        for i, room in enumerate(rooms):
            terms = {
                'signal': float(np.clip(room.signal, 0.0, 1.0)),
                'centrality': float(centrality[i]),
                'breadth': self._breadth(points, i),
                'height': float(heights[i]),
                'location_type': TYPE_SUITABILITY[room.location_type],
            }
            score = sum(getattr(self.weights, f) * terms[f] for f in FACTORS)
            candidate = RouterCandidate(room=room, score=float(np.clip(score, 0.0, 1.0)), **terms)
            logger.debug(f"Router candidate {room.label}: score={candidate.score:.3f} "
                         + ", ".join(f"{f}={terms[f]:.2f}" for f in FACTORS))
            candidates.append(candidate)
        return candidates

    def recommend(self, rooms: Sequence[Room]) -> Optional[RouterRecommendation]:
        """One global recommendation across all floors, or None without rooms."""
        return self._recommend(rooms, mode='global')

    def recommend_per_floor(self, rooms: Sequence[Room]) -> List[RouterRecommendation]:
        """One recommendation per floor, each scored only against its own floor."""
        recommendations = []
        for floor, floor_rooms in group_by_floor(rooms).items():
            recommendation = self._recommend(floor_rooms, mode='per_floor')
            if recommendation is not None:
                recommendations.append(recommendation)
        return recommendations

    def _recommend(self, rooms: Sequence[Room], mode: str) -> Optional[RouterRecommendation]:
        candidates = self.score_candidates(rooms)
        if not candidates:
            logger.info("No calibrated rooms; no router recommendation")
            return None
        eligible = [c for c in candidates if not is_weak(c.room, self.config)]
        excluded = len(candidates) - len(eligible) if eligible else 0
        best = min(eligible or candidates, key=RouterCandidate.rank_key)
        logger.info(f"Router recommendation ({mode}): {best.room.label} score={best.score:.3f}")
        return RouterRecommendation(
            floor=best.room.floor,
            room=best.room,
            score=best.score,
            reasoning=self._reasoning(best, len(candidates), excluded),
            position=best.room.position,
            factors=tuple((f, best.term(f)) for f in FACTORS),
            mode=mode,
        )

    def _centrality(self, points: np.ndarray) -> np.ndarray:
        """1 - distance to centroid / max distance; all ones when rooms coincide."""
        distances = np.linalg.norm(points - points.mean(axis=0), axis=1)
        farthest = distances.max()
        if farthest <= 1e-9:
            return np.ones(len(points))
        return np.clip(1.0 - distances / farthest, 0.0, 1.0)

    def _breadth(self, points: np.ndarray, index: int) -> float:
        others = np.delete(points, index, axis=0)
        if len(others) == 0:
            return 1.0
        predicted = self.surfaces.predict_from_source(points[index], others, self.config.router_strength)
        return float(np.clip(predicted.mean(), 0.0, 1.0))

    @staticmethod
    def _height_suitability(heights: np.ndarray) -> np.ndarray:
        """Prefer about half a unit above the average sample height."""
        ideal = heights.mean() + 0.5
        return np.clip(1.0 - np.abs(heights - ideal) / 3.0, 0.0, 1.0)

    def _reasoning(self, best: RouterCandidate, pool_size: int, excluded: int = 0) -> str:
        contributions = {f: getattr(self.weights, f) * best.term(f) for f in FACTORS}
        top = max(contributions.values())
        dominant = [f for f in sorted(FACTORS, key=lambda f: -contributions[f])
                    if top > 0 and contributions[f] >= DOMINANCE_RATIO * top][:3]

        phrases = {
            'signal': f"Strong existing signal strength ({best.signal:.0%})",
            'centrality': "Central location relative to all calibrated rooms",
            'breadth': f"Best projected coverage of the other rooms ({best.breadth:.0%} average)",
            'height': "Good mounting height",
            'location_type': "Main living area suitable for router placement",
        }
        reasons = [phrases[f] for f in dominant]
        if pool_size == 1:
            reasons.append("Only calibrated room, so it is the only candidate")
        if excluded:
            reasons.append(f"Chosen among rooms with usable signal ({excluded} weak room(s) skipped)")
        if best.room.is_estimated:
            reasons.append("Position estimated from the room name; confirm with a layout")
        if not reasons:
            reasons.append("No candidate stands out; walk more rooms for a firmer answer")
        return f"Place the router in {best.room.label}: " + " • ".join(reasons)
