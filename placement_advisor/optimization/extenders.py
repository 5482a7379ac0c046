"""Extender recommendations for weak rooms, anchored on nearby rooms with usable signal."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import networkx as nx
import numpy as np

from placement_advisor.config import DEFAULT_CONFIG, AdvisorConfig
from placement_advisor.coverage_analyzer import is_weak
from placement_advisor.data_collection.sample_store import LocationType
from placement_advisor.floor_plan_analyzer import Room
from placement_advisor.propagation.engines import SignalSurfaceModel

logger = logging.getLogger(__name__)


class ExtenderType(Enum):
    ROOM_EXTENDER = "room_extender"
    HALLWAY_EXTENDER = "hallway_extender"

    @property
    def description(self) -> str:
        return "Hallway WiFi Extender" if self is ExtenderType.HALLWAY_EXTENDER else "Room WiFi Extender"


class DeviceStrategy(Enum):
    """Kind of hardware the weak-room count points to."""
    NONE = "none"
    EXTENDER = "extender"
    MESH = "mesh"

    @classmethod
    def for_weak_rooms(cls, weak_count: int) -> 'DeviceStrategy':
        if weak_count == 0:
            return cls.NONE
        return cls.EXTENDER if weak_count <= 2 else cls.MESH

    @property
    def description(self) -> str:
        return {
            DeviceStrategy.NONE: "Coverage is adequate; no additional hardware needed",
            DeviceStrategy.EXTENDER: "A single WiFi extender should cover the weak areas",
            DeviceStrategy.MESH: "Several weak areas; a mesh system will cover them better than extenders",
        }[self]


@dataclass(frozen=True)
class ExtenderRecommendation:
    """
    Where to put one extender. ``signal_improvement`` is the projected signal
    at the target room with the extender in place; ``signal_gain`` is the
    difference from the measured signal.
    """
    floor: int
    target_room: Room
    placement_room: Optional[Room]
    recommended_position: Tuple[float, float]
    signal_improvement: float
    reasoning: str
    priority: int
    extender_type: ExtenderType = ExtenderType.ROOM_EXTENDER
    signal_gain: float = 0.0
    is_marginal: bool = False
    is_estimated: bool = False


def build_adjacency_graph(rooms: Sequence[Room], config: AdvisorConfig = DEFAULT_CONFIG) -> nx.Graph:
    """
    Rooms are adjacent on the same floor within ``same_floor_adjacency``
    (or when their layout footprints touch), and on neighbouring floors
    within ``adjacent_floor_adjacency`` of horizontal distance.
    Edge weight is the 3D distance between room centers.
    """
    rooms = sorted(rooms, key=lambda r: (r.floor, r.order))
    G = nx.Graph()
    for room in rooms:
        G.add_node(room.key, room=room)
    for i, a in enumerate(rooms):
        for b in rooms[i + 1:]:
            floor_gap = abs(a.floor - b.floor)
            horizontal = float(np.hypot(a.position[0] - b.position[0], a.position[1] - b.position[1]))
            if floor_gap == 0:
                adjacent = horizontal <= config.same_floor_adjacency or (
                    a.has_explicit_layout and b.has_explicit_layout and
                    a.boundary.expanded(config.layout_proximity_margin).intersects(b.boundary))
            elif floor_gap == 1:
                adjacent = horizontal <= config.adjacent_floor_adjacency
            else:
                adjacent = False
            if adjacent:
                G.add_edge(a.key, b.key, weight=float(np.linalg.norm(np.subtract(a.position_3d, b.position_3d))))
    return G


class ExtenderRecommendationEngine:
    """Pairs each weak room with an anchor and simulates an extender between them."""

    def __init__(self, config: AdvisorConfig = DEFAULT_CONFIG, surfaces: Optional[SignalSurfaceModel] = None):
        self.config = config
        self.surfaces = surfaces

    def recommend(self, rooms: Sequence[Room], graph: Optional[nx.Graph] = None) -> List[ExtenderRecommendation]:
        """Weakest-first recommendations, capped at ``max_extenders``."""
        rooms = sorted(rooms, key=lambda r: (r.floor, r.order))
        targets = sorted((r for r in rooms if is_weak(r, self.config)),
                         key=lambda r: (r.signal, r.floor, r.order))
        if not targets:
            logger.info("No weak rooms; no extenders recommended")
            return []

        surfaces = self.surfaces if self.surfaces is not None else SignalSurfaceModel.from_rooms(rooms, self.config)
        graph = graph if graph is not None else build_adjacency_graph(rooms, self.config)

        if len(targets) > self.config.max_extenders:
            logger.info(f"{len(targets)} weak rooms; keeping the {self.config.max_extenders} weakest")
        recommendations = [
            self._recommend_one(target, self.find_anchor(target, graph), surfaces, priority)
            for priority, target in enumerate(targets[:self.config.max_extenders], start=1)
        ]
        marginal = sum(1 for r in recommendations if r.is_marginal)
        logger.info(f"Recommended {len(recommendations)} extenders ({marginal} marginal)")
        return recommendations

    def find_anchor(self, target: Room, graph: nx.Graph) -> Optional[Room]:
        """Nearest adjacent room that is not weak itself; ties go to walk order."""
        if target.key not in graph:
            return None
        candidates = []
        for neighbour in graph.neighbors(target.key):
            room = graph.nodes[neighbour]['room']
            if room.key == target.key or is_weak(room, self.config):
                continue
            candidates.append((graph.edges[target.key, neighbour]['weight'], room.floor, room.order, room))
        if not candidates:
            return None
        return min(candidates, key=lambda c: c[:3])[3]

    def _recommend_one(self, target: Room, anchor: Optional[Room],
                       surfaces: SignalSurfaceModel, priority: int) -> ExtenderRecommendation:
        if anchor is not None:
            position = ((target.position[0] + anchor.position[0]) / 2,
                        (target.position[1] + anchor.position[1]) / 2)
        else:
            position = target.position

        simulated = surfaces.with_source(position, target.floor, self.config.extender_strength)
        projected = float(np.clip(simulated.predict(target.position, target.floor), 0.0, 1.0))
        gain = projected - target.signal
        marginal = gain <= 1e-9
        estimated = anchor is None or target.is_estimated or anchor.is_estimated

        return ExtenderRecommendation(
            floor=target.floor,
            target_room=target,
            placement_room=anchor,
            recommended_position=(float(position[0]), float(position[1])),
            signal_improvement=projected,
            reasoning=self._reasoning(target, anchor, projected, gain, marginal),
            priority=priority,
            extender_type=(ExtenderType.HALLWAY_EXTENDER if target.location_type is LocationType.HALLWAY
                           else ExtenderType.ROOM_EXTENDER),
            signal_gain=float(gain),
            is_marginal=marginal,
            is_estimated=estimated,
        )

    @staticmethod
    def _reasoning(target: Room, anchor: Optional[Room], projected: float, gain: float, marginal: bool) -> str:
        reasons = [f"Weak signal area in {target.label} ({target.signal:.0%})"]
        if anchor is not None:
            where = "" if anchor.floor == target.floor else f" on floor {anchor.floor}"
            reasons.append(f"Placement between {target.name} and {anchor.name}{where} ({anchor.signal:.0%} signal)")
        else:
            reasons.append(f"No adjacent room with usable signal; place the extender inside {target.name} "
                           "(low confidence)")
        if marginal:
            reasons.append(f"Marginal: a simulated extender does not improve on the measured {target.signal:.0%}")
        else:
            reasons.append(f"Projected signal {projected:.0%} (+{gain:.0%})")
        return " • ".join(reasons)
