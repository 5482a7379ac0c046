#!/usr/bin/env python3
"""
Room and Layout Resolver
Maps calibration samples to named, positioned rooms using an explicit layout when
one is supplied, measured sample positions when present, and a deterministic
name-keyword placement otherwise.
"""

import hashlib
import json
import logging
import os
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from placement_advisor.config import DEFAULT_CONFIG, AdvisorConfig
from placement_advisor.data_collection.sample_store import CalibrationPoint, LocationType, SampleStore
from placement_advisor.utils.error_handling import InputValidator, InvalidLayoutError

logger = logging.getLogger(__name__)

# Keyword placement inside the house square, front is +y
KEYWORD_POSITIONS: Tuple[Tuple[Tuple[str, ...], Tuple[float, float]], ...] = (
    (('living', 'lounge'), (-4.0, 4.0)),     # Front left
    (('kitchen',), (4.0, 4.0)),               # Front right
    (('bedroom', 'master'), (-4.0, -4.0)),    # Back left
    (('bathroom', 'bath'), (4.0, -4.0)),      # Back right
    (('dining',), (0.0, 6.0)),                # Front center
    (('office', 'study'), (-6.0, 0.0)),       # Left center
    (('garage',), (6.0, 0.0)),                # Right center
    (('hallway', 'corridor'), (0.0, 0.0)),    # Center
)


class PlacementSource(Enum):
    """Where a room's position came from."""
    LAYOUT = "layout"
    MEASURED = "measured"
    HEURISTIC = "heuristic"


@dataclass(frozen=True)
class RoomBoundary:
    """Axis-aligned footprint of a room on its floor."""
    x_min: float
    y_min: float
    x_max: float
    y_max: float

    @classmethod
    def around(cls, center: Tuple[float, float], size: Tuple[float, float]) -> 'RoomBoundary':
        half_w, half_d = size[0] / 2, size[1] / 2
        return cls(center[0] - half_w, center[1] - half_d, center[0] + half_w, center[1] + half_d)

    @property
    def width(self) -> float:
        return self.x_max - self.x_min

    @property
    def depth(self) -> float:
        return self.y_max - self.y_min

    @property
    def area(self) -> float:
        return self.width * self.depth

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.x_min + self.x_max) / 2, (self.y_min + self.y_max) / 2)

    def contains_point(self, x: float, y: float) -> bool:
        return self.x_min <= x <= self.x_max and self.y_min <= y <= self.y_max

    def expanded(self, margin: float) -> 'RoomBoundary':
        return RoomBoundary(self.x_min - margin, self.y_min - margin,
                            self.x_max + margin, self.y_max + margin)

    def intersects(self, other: 'RoomBoundary') -> bool:
        """Check if this footprint touches or overlaps another."""
        return not (self.x_max < other.x_min or self.x_min > other.x_max or
                    self.y_max < other.y_min or self.y_min > other.y_max)


@dataclass(frozen=True)
class Room:
    """A named place on one floor, aggregated from its calibration samples."""
    name: str
    floor: int
    location_type: LocationType
    position: Tuple[float, float]
    size: Tuple[float, float]
    signal: float
    elevation: float
    relative_height: float = 0.0
    placement: PlacementSource = PlacementSource.HEURISTIC
    order: int = 0
    sample_ids: Tuple[str, ...] = ()
    recommendations: Tuple[str, ...] = field(default=(), compare=False)

    @property
    def key(self) -> Tuple[str, int]:
        return (self.name, self.floor)

    @property
    def is_estimated(self) -> bool:
        """True when the position is a keyword/hash guess rather than data."""
        return self.placement is PlacementSource.HEURISTIC

    @property
    def has_explicit_layout(self) -> bool:
        return self.placement is PlacementSource.LAYOUT

    @property
    def position_3d(self) -> Tuple[float, float, float]:
        return (self.position[0], self.position[1], self.elevation)

    @property
    def boundary(self) -> RoomBoundary:
        return RoomBoundary.around(self.position, self.size)

    @property
    def label(self) -> str:
        return f"{self.name} (floor {self.floor})"


@dataclass(frozen=True)
class LayoutRoom:
    """One explicitly placed room of a user-edited layout."""
    room_id: str
    floor: int
    position: Tuple[float, float]
    size: Tuple[float, float]
    sample_id: Optional[str] = None


def _objects(value: Any, where: str) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        raise InvalidLayoutError(f"{where} must be a list, got {type(value).__name__}")
    for i, entry in enumerate(value):
        if not isinstance(entry, dict):
            raise InvalidLayoutError(f"{where}[{i}] must be an object, got {type(entry).__name__}")
    return value


@dataclass(frozen=True)
class Layout:
    """Optional explicit per-floor room placement linked to sample ids."""
    rooms: Tuple[LayoutRoom, ...] = ()

    def __post_init__(self):
        linked = [r.sample_id for r in self.rooms if r.sample_id is not None]
        duplicates = sorted({s for s in linked if linked.count(s) > 1})
        if duplicates:
            raise InvalidLayoutError(f"Samples linked by more than one layout room: {', '.join(duplicates)}")

    @property
    def floors(self) -> List[int]:
        return sorted({r.floor for r in self.rooms})

    def for_sample(self, sample_id: str) -> Optional[LayoutRoom]:
        for room in self.rooms:
            if room.sample_id == sample_id:
                return room
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Layout':
        """
        Parse a layout mapping. Accepts either ``{"floors": [{"floor": 1,
        "rooms": [...]}]}`` or a flat ``{"rooms": [...]}`` with a floor per room.
        Each room has ``id``, ``position`` [x, y], ``size`` [w, d] and an
        optional ``sample_id``.
        """
        if not isinstance(data, dict):
            raise InvalidLayoutError("Layout must be a JSON object")
        entries = []
        for f, floor_entry in enumerate(_objects(data.get('floors', []), 'layout.floors')):
            floor = floor_entry.get('floor')
            for room in _objects(floor_entry.get('rooms', []), f'layout.floors[{f}].rooms'):
                entries.append(dict(room, floor=room.get('floor', floor)))
        entries.extend(_objects(data.get('rooms', []), 'layout.rooms'))

        rooms = []
        for i, entry in enumerate(entries):
            validator = InputValidator(InvalidLayoutError, context=f"layout.rooms[{i}]")
            try:
                position = tuple(entry['position'])
                size = tuple(entry.get('size', LocationType.ROOM.default_size))
            except (KeyError, TypeError) as e:
                raise InvalidLayoutError(f"layout.rooms[{i}] needs a position: {e}") from e
            if len(position) != 2 or len(size) != 2:
                raise InvalidLayoutError(f"layout.rooms[{i}] position and size need two values")
            sample_id = entry.get('sample_id', entry.get('sampleId'))
            rooms.append(LayoutRoom(
                room_id=str(entry.get('id', entry.get('room_id', f'room_{i + 1}'))),
                floor=validator.check_integer(entry.get('floor', 1), 'floor', {'min': 1}),
                position=(validator.check_number(position[0], 'position.x'),
                          validator.check_number(position[1], 'position.y')),
                size=(validator.check_number(size[0], 'size.width', {'min': 0.0}),
                      validator.check_number(size[1], 'size.depth', {'min': 0.0})),
                sample_id=None if sample_id is None else str(sample_id),
            ))
        return cls(tuple(rooms))


def load_layout(json_path: Optional[str]) -> Optional[Layout]:
    """Load a layout JSON file; ``None`` means no layout and heuristic placement."""
    if not json_path:
        return None
    if not os.path.exists(json_path):
        raise FileNotFoundError(f"Layout file not found: {json_path}")
    with open(json_path, 'r') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidLayoutError(f"Layout file is not valid JSON: {e}") from e
    layout = Layout.from_dict(data)
    logger.info(f"Loaded layout with {len(layout.rooms)} rooms on floors {layout.floors}")
    return layout


def heuristic_position(name: str, floor: int, half_extent: float = 8.0) -> Tuple[float, float]:
    """
    Deterministic keyword placement for a room name.

    Unmatched names get coordinates from a stable digest of name and floor,
    bounded to [-half_extent, half_extent] on both axes.
    """
    lowered = name.lower()
    for keywords, position in KEYWORD_POSITIONS:
        if any(k in lowered for k in keywords):
            return position
    digest = hashlib.sha1(f"{lowered.strip()}|{floor}".encode('utf-8')).digest()
    x_frac = int.from_bytes(digest[0:4], 'big') / 0xFFFFFFFF
    y_frac = int.from_bytes(digest[4:8], 'big') / 0xFFFFFFFF
    return (round((2 * x_frac - 1) * half_extent, 6), round((2 * y_frac - 1) * half_extent, 6))


def room_recommendations(location_type: LocationType, signal: float, floor: int) -> Tuple[str, ...]:
    """Short advice strings for a single room."""
    recommendations = []
    if signal < 0.3:
        recommendations.append("Poor signal - Consider WiFi extender")
    elif signal < 0.6:
        recommendations.append("Moderate signal - May need signal boost")
    elif signal < 0.8:
        recommendations.append("Good signal strength")
    else:
        recommendations.append("Excellent signal strength")

    if location_type is LocationType.ROOM:
        if signal < 0.5:
            recommendations.append("Consider mesh node in this room")
    elif location_type is LocationType.HALLWAY:
        recommendations.append("Strategic location for WiFi extender")
    else:
        recommendations.append("Important transition point - consider coverage")

    if floor > 1 and signal < 0.6:
        recommendations.append("Upper floor may need dedicated access point")
    return tuple(recommendations)


class RoomLayoutResolver:
    """Turns an ordered sample set and an optional layout into positioned rooms."""

    def __init__(self, config: AdvisorConfig = DEFAULT_CONFIG):
        self.config = config

    def resolve(self, store: SampleStore, layout: Optional[Layout] = None) -> List[Room]:
        """
        Resolve rooms in walk order: floor, earliest sample time, name, sample id.

        Samples sharing a name on a floor are averaged into one room.
        """
        if not store:
            return []
        if layout is None:
            logger.info("No layout supplied; using measured or heuristic room placement")

        groups: "OrderedDict[Tuple[str, int], List[CalibrationPoint]]" = OrderedDict()
        for point in store.walk_order():
            groups.setdefault((point.name.strip(), point.floor), []).append(point)

        ordered = sorted(groups.items(),
                         key=lambda item: (item[0][1], item[1][0].timestamp, item[0][0], item[1][0].id))
        rooms = [self._build_room(name, floor, points, layout, order)
                 for order, ((name, floor), points) in enumerate(ordered)]

        estimated = sum(1 for r in rooms if r.is_estimated)
        logger.info(f"Resolved {len(rooms)} rooms from {len(store)} samples "
                    f"({estimated} with heuristic placement)")
        return rooms

    def _build_room(self, name: str, floor: int, points: Sequence[CalibrationPoint],
                    layout: Optional[Layout], order: int) -> Room:
        signal = float(np.mean([p.signal for p in points]))
        location_type = points[0].location_type
        position, size, placement = self._place(name, floor, points, layout, location_type)
        return Room(
            name=name,
            floor=floor,
            location_type=location_type,
            position=position,
            size=size,
            signal=signal,
            elevation=self.floor_elevation(floor),
            relative_height=float(np.mean([p.relative_height for p in points])),
            placement=placement,
            order=order,
            sample_ids=tuple(p.id for p in points),
            recommendations=room_recommendations(location_type, signal, floor),
        )

    def _place(self, name: str, floor: int, points: Sequence[CalibrationPoint],
               layout: Optional[Layout], location_type: LocationType):
        if layout is not None:
            for point in points:
                entry = layout.for_sample(point.id)
                if entry is None:
                    continue
                if entry.floor != floor:
                    logger.warning(f"Layout room {entry.room_id} is on floor {entry.floor} "
                                   f"but sample {point.id} was taken on floor {floor}; using floor {floor}")
                return entry.position, entry.size, PlacementSource.LAYOUT

        measured = [p.position for p in points if p.position is not None]
        if measured:
            xs, ys = zip(*measured)
            return (float(np.mean(xs)), float(np.mean(ys))), location_type.default_size, PlacementSource.MEASURED

        position = heuristic_position(name, floor, self.config.house_half_extent)
        logger.debug(f"Heuristic placement for {name} on floor {floor}: {position}")
        return position, location_type.default_size, PlacementSource.HEURISTIC

    def floor_elevation(self, floor: int) -> float:
        return (floor - 1) * self.config.floor_height


def group_by_floor(rooms: Sequence[Room]) -> Dict[int, List[Room]]:
    """Rooms per floor, floors ascending, walk order kept within a floor."""
    floors: Dict[int, List[Room]] = {}
    for room in sorted(rooms, key=lambda r: (r.floor, r.order)):
        floors.setdefault(room.floor, []).append(room)
    return floors
