"""Tests for router placement."""

import sys
import os
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from conftest import make_point
from placement_advisor.config import AdvisorConfig, RouterWeights
from placement_advisor.data_collection.sample_store import SampleStore
from placement_advisor.floor_plan_analyzer import RoomLayoutResolver
from placement_advisor.optimization.router import FACTORS, RouterPlacementOptimizer
from placement_advisor.propagation.engines import SignalSurfaceModel


def resolve(points, config=None):
    return RoomLayoutResolver(config or AdvisorConfig()).resolve(SampleStore(points))


class TestRouterPlacementOptimizer:
    """Test candidate scoring and selection."""

    def test_no_rooms(self):
        """Test no rooms gives no recommendation."""
        optimizer = RouterPlacementOptimizer()
        assert optimizer.recommend([]) is None
        assert optimizer.recommend_per_floor([]) == []

    def test_single_room(self):
        """Test a lone room is central, fully broad and recommended."""
        rooms = resolve([make_point('Kitchen', 0.3)])
        candidate = RouterPlacementOptimizer().score_candidates(rooms)[0]
        assert candidate.centrality == 1.0
        assert candidate.breadth == 1.0
        rec = RouterPlacementOptimizer().recommend(rooms)
        assert rec.room.name == 'Kitchen'
        assert "Only calibrated room" in rec.reasoning

    def test_terms_in_unit_range(self, two_floor_points):
        """Test every term and score is in [0, 1]."""
        for candidate in RouterPlacementOptimizer().score_candidates(resolve(two_floor_points)):
            assert 0.0 <= candidate.score <= 1.0
            for factor in FACTORS:
                assert 0.0 <= candidate.term(factor) <= 1.0

    def test_coincident_rooms(self):
        """Test degenerate geometry gives full centrality and no NaN."""
        rooms = resolve([make_point('Den', 0.5, timestamp=0, position=(1.0, 1.0)),
                         make_point('Nook', 0.6, timestamp=1, position=(1.0, 1.0))])
        for candidate in RouterPlacementOptimizer().score_candidates(rooms):
            assert candidate.centrality == 1.0
            assert candidate.score == candidate.score

    def test_three_rooms(self, three_room_points):
        """Test the central strong room wins with readable reasoning."""
        rec = RouterPlacementOptimizer().recommend(resolve(three_room_points))
        assert rec.room.name == 'Living Room'
        assert rec.floor == 1
        assert rec.position == (-4.0, 4.0)
        assert rec.reasoning.startswith("Place the router in Living Room (floor 1)")
        assert "Central location" in rec.reasoning
        assert "estimated from the room name" in rec.reasoning
        assert set(rec.factor_scores) == set(FACTORS)

    def test_two_floors_router_on_strong_floor(self, two_floor_points):
        """Test the global pick lands on the strong floor."""
        rec = RouterPlacementOptimizer().recommend(resolve(two_floor_points))
        assert rec.floor == 1
        assert rec.room.name == 'Living Room'
        assert rec.mode == 'global'

    def test_per_floor(self, two_floor_points):
        """Test one recommendation per floor in per-floor mode."""
        recs = RouterPlacementOptimizer().recommend_per_floor(resolve(two_floor_points))
        assert [r.floor for r in recs] == [1, 2]
        assert all(r.mode == 'per_floor' for r in recs)

    def test_tie_breaks_by_walk_order(self):
        """Test mirror-image rooms tie and the earlier one wins."""
        first = [make_point('Alpha', 0.5, timestamp=0, position=(-2.0, 0.0)),
                 make_point('Beta', 0.5, timestamp=1, position=(2.0, 0.0))]
        assert RouterPlacementOptimizer().recommend(resolve(first)).room.name == 'Alpha'
        second = [make_point('Alpha', 0.5, timestamp=1, position=(-2.0, 0.0)),
                  make_point('Beta', 0.5, timestamp=0, position=(2.0, 0.0))]
        assert RouterPlacementOptimizer().recommend(resolve(second)).room.name == 'Beta'

    def test_tie_breaks_by_lowest_floor(self):
        """Test equal scores on different floors prefer the lower floor."""
        points = [make_point('Alpha', 0.5, floor=2, timestamp=0, position=(0.0, 0.0)),
                  make_point('Beta', 0.5, floor=1, timestamp=1, position=(0.0, 0.0))]
        assert RouterPlacementOptimizer().recommend(resolve(points)).room.name == 'Beta'

    def test_order_independent(self, two_floor_points):
        """Test shuffled input gives the same recommendation."""
        forward = RouterPlacementOptimizer().recommend(resolve(two_floor_points))
        backward = RouterPlacementOptimizer().recommend(resolve(list(reversed(two_floor_points))))
        assert forward == backward

    def test_idempotent(self, three_room_points):
        """Test repeated runs are identical."""
        rooms = resolve(three_room_points)
        optimizer = RouterPlacementOptimizer()
        assert optimizer.recommend(rooms) == optimizer.recommend(rooms)

    def test_staircase_penalized(self):
        """Test location type breaks otherwise equal candidates."""
        points = [make_point('Stairs', 0.5, timestamp=0, position=(-2.0, 0.0)),
                  make_point('Den', 0.5, timestamp=1, position=(2.0, 0.0))]
        assert RouterPlacementOptimizer().recommend(resolve(points)).room.name == 'Den'

    def test_shared_surface_model(self, three_room_points):
        """Test a prebuilt surface model gives the same answer."""
        rooms = resolve(three_room_points)
        surfaces = SignalSurfaceModel.from_rooms(rooms)
        assert (RouterPlacementOptimizer(surfaces=surfaces).recommend(rooms) ==
                RouterPlacementOptimizer().recommend(rooms))

    def test_custom_weights(self, three_room_points):
        """Test signal-heavy weights make measured signal the stated reason."""
        config = AdvisorConfig(router_weights=RouterWeights(signal=0.4, centrality=0.3, breadth=0.2,
                                                            height=0.0, location_type=0.0)).validate()
        rec = RouterPlacementOptimizer(config).recommend(resolve(three_room_points, config))
        assert rec.room.name == 'Living Room'
        assert "Strong existing signal" in rec.reasoning

    def test_central_weak_room_not_chosen(self):
        """Test a weak room at the centre of the house loses to rooms with usable signal."""
        corners = [(-4.0, 4.0), (4.0, 4.0), (-4.0, -4.0), (4.0, -4.0)]
        points = [make_point(f'Corner {i}', 0.9, timestamp=i, position=xy) for i, xy in enumerate(corners)]
        points.append(make_point('Loft', 0.3, floor=2, timestamp=4, position=(0.0, 0.0)))
        rooms = resolve(points)
        loft = next(c for c in RouterPlacementOptimizer().score_candidates(rooms) if c.room.name == 'Loft')
        assert loft.centrality > 0.0
        rec = RouterPlacementOptimizer().recommend(rooms)
        assert rec.floor == 1
        assert rec.room.name == 'Corner 0'
        assert "1 weak room(s) skipped" in rec.reasoning

    def test_all_weak_rooms_still_recommend(self):
        """Test a walk with only weak rooms still gets a router pick."""
        points = [make_point('Bedroom', 0.2, timestamp=0), make_point('Study', 0.3, timestamp=1)]
        rec = RouterPlacementOptimizer().recommend(resolve(points))
        assert rec is not None
        assert "skipped" not in rec.reasoning
