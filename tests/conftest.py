"""Pytest configuration and fixtures."""

import pytest
import sys
import os

# Add repository root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from placement_advisor.data_collection.sample_store import CalibrationPoint, SampleStore


def make_point(name, signal, floor=1, timestamp=0.0, **kwargs):
    """Build a calibration point with an id derived from name and floor."""
    sample_id = kwargs.pop('id', f"{name.lower().replace(' ', '-')}-{floor}-{timestamp:g}")
    return CalibrationPoint(id=sample_id, name=name, floor=floor, signal=signal, timestamp=timestamp, **kwargs)


@pytest.fixture
def three_room_points():
    """Living strong, Kitchen moderate, Bedroom weak; heuristic placement."""
    return [
        make_point('Living Room', 0.9, timestamp=0),
        make_point('Bedroom', 0.3, timestamp=1),
        make_point('Kitchen', 0.6, timestamp=2),
    ]


@pytest.fixture
def three_room_store(three_room_points):
    return SampleStore(three_room_points)


@pytest.fixture
def two_floor_points():
    """Strong ground floor, weak upper floor."""
    return [
        make_point('Living Room', 0.9, floor=1, timestamp=0),
        make_point('Kitchen', 0.85, floor=1, timestamp=1),
        make_point('Dining Room', 0.8, floor=1, timestamp=2),
        make_point('Office', 0.8, floor=1, timestamp=3),
        make_point('Bedroom', 0.2, floor=2, timestamp=4),
        make_point('Bathroom', 0.3, floor=2, timestamp=5),
    ]


@pytest.fixture
def sample_records():
    """JSON-style records as produced by the walk-through app."""
    return [
        {'id': 's1', 'name': 'Living Room', 'floor': 1, 'signalStrength': 0.9,
         'relativeHeight': 0.2, 'heading': 90, 'timestamp': '2024-05-01T10:00:00', 'stepCount': 0},
        {'id': 's2', 'name': 'Hallway', 'floor': 1, 'signalStrength': 0.55,
         'timestamp': '2024-05-01T10:01:00', 'stepCount': 12, 'type': 'hallway'},
        {'id': 's3', 'name': 'Bedroom', 'floor': 1, 'signalStrength': 0.25,
         'timestamp': '2024-05-01T10:02:00', 'stepCount': 25},
    ]
