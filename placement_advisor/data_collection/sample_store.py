"""Immutable store of calibration samples collected during a guided walk-through."""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from placement_advisor.utils.error_handling import InputValidator, InvalidSampleError

logger = logging.getLogger(__name__)

STAIR_WORDS = {"stair", "stairs", "staircase", "stairway", "stairwell"}
HALLWAY_WORDS = {"hall", "hallway", "corridor", "passage", "passageway"}


class LocationType(Enum):
    """Kind of place a sample was taken in."""
    ROOM = "room"
    HALLWAY = "hallway"
    STAIRCASE = "staircase"

    @property
    def description(self) -> str:
        return {
            LocationType.ROOM: "Living space or specific room",
            LocationType.HALLWAY: "Corridor or passage",
            LocationType.STAIRCASE: "Stairway between floors",
        }[self]

    @property
    def default_size(self) -> Tuple[float, float]:
        """Footprint (width, depth) in house units used when no layout is given."""
        return {
            LocationType.ROOM: (2.0, 2.0),
            LocationType.HALLWAY: (2.67, 1.0),
            LocationType.STAIRCASE: (1.33, 1.33),
        }[self]

    @classmethod
    def infer(cls, name: str) -> 'LocationType':
        """Guess the location type from a free-text name; whole words only."""
        words = set(re.findall(r'[a-z]+', name.lower()))
        if words & STAIR_WORDS:
            return cls.STAIRCASE
        if words & HALLWAY_WORDS:
            return cls.HALLWAY
        return cls.ROOM

    @classmethod
    def parse(cls, value: Any) -> 'LocationType':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidSampleError(f"Unknown location type: {value!r}")


def _epoch(value: Any) -> float:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    if isinstance(value, str):
        text = value.strip()
        # fromisoformat only takes a trailing Z from Python 3.11 on
        if text[-1:] in ('Z', 'z'):
            text = text[:-1] + '+00:00'
        try:
            return _epoch(datetime.fromisoformat(text))
        except ValueError:
            raise InvalidSampleError(f"Invalid timestamp: {value!r}")
    return value


@dataclass(frozen=True)
class CalibrationPoint:
    """
    One measured reading from the guided walk-through.

    Malformed records raise InvalidSampleError at construction. A finite
    signal outside [0, 1] is clamped and logged; heading is wrapped into
    [0, 360).
    """
    id: str
    name: str
    floor: int
    signal: float
    position: Optional[Tuple[float, float]] = None
    relative_height: float = 0.0
    heading: float = 0.0
    timestamp: float = 0.0
    step_count: int = 0
    location_type: Optional[LocationType] = None
    validation_warnings: Tuple[str, ...] = field(default=(), compare=False, repr=False)

    def __post_init__(self):
        validator = InputValidator(InvalidSampleError, context=f"sample[{self.id}]")
        validator.require_text(self.id, 'id')
        validator.require_text(self.name, 'name')
        floor = validator.check_integer(self.floor, 'floor', {'min': 1})
        signal = validator.check_number(self.signal, 'signal', {'min': 0.0, 'max': 1.0}, clamp=True)
        height = validator.check_number(self.relative_height, 'relative_height')
        heading = validator.check_number(self.heading, 'heading') % 360.0
        timestamp = validator.check_number(_epoch(self.timestamp), 'timestamp')
        steps = validator.check_integer(self.step_count, 'step_count', {'min': 0})

        position = self.position
        if position is not None:
            if len(position) != 2:
                raise InvalidSampleError(f"sample[{self.id}].position must have two coordinates")
            position = (validator.check_number(position[0], 'position.x'),
                        validator.check_number(position[1], 'position.y'))

        location_type = self.location_type
        location_type = LocationType.infer(self.name) if location_type is None else LocationType.parse(location_type)

        object.__setattr__(self, 'floor', floor)
        object.__setattr__(self, 'signal', signal)
        object.__setattr__(self, 'relative_height', height)
        object.__setattr__(self, 'heading', heading)
        object.__setattr__(self, 'timestamp', timestamp)
        object.__setattr__(self, 'step_count', steps)
        object.__setattr__(self, 'position', position)
        object.__setattr__(self, 'location_type', location_type)
        object.__setattr__(self, 'validation_warnings',
                           tuple(e.message for e in validator.validation_errors))

    @classmethod
    def from_dict(cls, data: Dict[str, Any], index: int = 0) -> 'CalibrationPoint':
        """Create a point from a JSON-style mapping (camelCase keys accepted)."""
        if not isinstance(data, dict):
            raise InvalidSampleError(f"Sample #{index} must be an object, got {type(data).__name__}")
        if 'signal' not in data and 'signalStrength' not in data:
            raise InvalidSampleError(f"Sample #{index} has no signal value")

        def pick(*keys, default=None):
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return default

        position = pick('position', 'coordinates')
        if isinstance(position, dict):
            position = (position.get('x'), position.get('y'))
        elif position is not None:
            position = tuple(position)

        return cls(
            id=str(pick('id', default=f"sample-{index + 1}")),
            name=pick('name', default=""),
            floor=pick('floor', default=1),
            signal=pick('signal', 'signalStrength'),
            position=position,
            relative_height=pick('relative_height', 'relativeHeight', default=0.0),
            heading=pick('heading', default=0.0),
            timestamp=pick('timestamp', default=0.0),
            step_count=pick('step_count', 'stepCount', default=0),
            location_type=pick('location_type', 'type'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'floor': self.floor,
            'signal': self.signal,
            'position': list(self.position) if self.position is not None else None,
            'relative_height': self.relative_height,
            'heading': self.heading,
            'timestamp': self.timestamp,
            'step_count': self.step_count,
            'location_type': self.location_type.value,
        }


class SampleStore:
    """
    Immutable, ordered collection of calibration points.

    Keeps the arrival order for reference but exposes ``walk_order()`` as the
    canonical order every downstream computation uses.
    """

    def __init__(self, points: Iterable[CalibrationPoint] = ()):
        self._points: Tuple[CalibrationPoint, ...] = tuple(points)
        seen = set()
        for point in self._points:
            if not isinstance(point, CalibrationPoint):
                raise InvalidSampleError(f"Expected CalibrationPoint, got {type(point).__name__}")
            if point.id in seen:
                raise InvalidSampleError(f"Duplicate sample id: {point.id}")
            seen.add(point.id)
        clamped = sum(1 for p in self._points if p.validation_warnings)
        if clamped:
            logger.warning(f"{clamped} sample(s) were clamped during ingestion")

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> 'SampleStore':
        return cls(CalibrationPoint.from_dict(r, i) for i, r in enumerate(records))

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[CalibrationPoint]:
        return iter(self._points)

    def __bool__(self) -> bool:
        return bool(self._points)

    @property
    def points(self) -> Tuple[CalibrationPoint, ...]:
        return self._points

    @property
    def floors(self) -> List[int]:
        return sorted({p.floor for p in self._points})

    def get(self, sample_id: str) -> Optional[CalibrationPoint]:
        for point in self._points:
            if point.id == sample_id:
                return point
        return None

    def walk_order(self) -> List[CalibrationPoint]:
        """Points sorted by content so shuffled input yields the same sequence."""
        return sorted(self._points, key=lambda p: (p.timestamp, p.floor, p.name, p.id))

    def for_floor(self, floor: int) -> List[CalibrationPoint]:
        return [p for p in self.walk_order() if p.floor == floor]


def load_samples(path: str) -> SampleStore:
    """Load a JSON file holding a list of samples (or ``{"samples": [...]}``)."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Samples file not found: {path}")
    with open(path, 'r') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidSampleError(f"Samples file is not valid JSON: {e}") from e
    if isinstance(data, dict):
        data = data.get('samples', [])
    if not isinstance(data, list):
        raise InvalidSampleError("Samples file must contain a list of samples")
    store = SampleStore.from_records(data)
    logger.info(f"Loaded {len(store)} calibration samples from {path}")
    return store
