"""Signal surface engines: continuous predicted signal from sparse room samples."""

import logging
import concurrent.futures
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
from scipy.spatial import cKDTree

from placement_advisor.config import DEFAULT_CONFIG, AdvisorConfig
from placement_advisor.floor_plan_analyzer import Room, group_by_floor

logger = logging.getLogger(__name__)

# Below this many kernels a dense distance matrix beats building a KD-tree
INDEX_THRESHOLD = 64


class SurfaceEngine(ABC):
    """
    Abstract base class for signal surface engines.

    Every sample owns a radial kernel whose radius grows with its own signal:
    full strength out to ``kernel_plateau`` of the radius, a linear fall to
    zero at ``kernel_cutoff`` of the radius, nothing beyond.
    """

    name = "abstract"

    def __init__(self, config: AdvisorConfig = DEFAULT_CONFIG):
        self.config = config

    def radius(self, signal):
        """Kernel radius for a signal (scalar or array)."""
        return self.config.kernel_radius_base + self.config.kernel_radius_per_signal * np.asarray(signal, dtype=float)

    def support(self, signal):
        """Distance beyond which a kernel contributes nothing."""
        return self.config.kernel_cutoff * self.radius(signal)

    def kernel(self, distances: np.ndarray, signals: np.ndarray, radii: np.ndarray) -> np.ndarray:
        """
        Kernel values, broadcasting ``distances`` (..., n) against per-kernel
        ``signals`` and ``radii`` (n,).
        """
        distances = np.asarray(distances, dtype=float)
        plateau = self.config.kernel_plateau * radii
        cutoff = self.config.kernel_cutoff * radii
        span = np.where(cutoff > plateau, cutoff - plateau, 1.0)
        falloff = np.clip((cutoff - distances) / span, 0.0, 1.0)
        values = np.where(distances <= plateau, 1.0, np.where(distances < cutoff, falloff, 0.0))
        return values * signals

    def source_profile(self, distances, strength: float) -> np.ndarray:
        """Signal seen at ``distances`` from a single source of ``strength``."""
        strength = float(strength)
        return self.kernel(np.asarray(distances, dtype=float), np.array(strength), self.radius(strength))

    @abstractmethod
    def combine(self, kernel_values: np.ndarray, distances: np.ndarray) -> np.ndarray:
        """Reduce (queries, kernels) kernel values to one prediction per query."""
        pass


class MaxKernelEngine(SurfaceEngine):
    """Prediction is the strongest overlapping kernel; sources never add up."""

    name = "max_kernel"

    def combine(self, kernel_values, distances):
        if kernel_values.shape[-1] == 0:
            return np.zeros(kernel_values.shape[:-1])
        return kernel_values.max(axis=-1)


class InverseDistanceEngine(SurfaceEngine):
    """
    Inverse-distance blend of the kernels that reach a query point.

    Smoother than the max rule between two strong samples; still zero
    outside every kernel's support.
    """

    name = "inverse_distance"

    def __init__(self, config: AdvisorConfig = DEFAULT_CONFIG, power: float = 2.0, epsilon: float = 1e-6):
        super().__init__(config)
        self.power = power
        self.epsilon = epsilon

    def combine(self, kernel_values, distances):
        if kernel_values.shape[-1] == 0:
            return np.zeros(kernel_values.shape[:-1])
        reach = kernel_values > 0
        weights = np.where(reach, 1.0 / (distances ** self.power + self.epsilon), 0.0)
        total = weights.sum(axis=-1)
        blended = (weights * kernel_values).sum(axis=-1)
        return np.where(total > 0, blended / np.where(total > 0, total, 1.0), 0.0)


class SurfaceEngineFactory:
    @staticmethod
    def create(engine_type: str, config: AdvisorConfig = DEFAULT_CONFIG) -> SurfaceEngine:
        if engine_type == 'max_kernel':
            return MaxKernelEngine(config)
        elif engine_type == 'inverse_distance':
            return InverseDistanceEngine(config)
        else:
            raise ValueError(f"Unknown surface engine: {engine_type}")


class SignalSurface:
    """Predicted signal over one floor. Immutable; ``with_source`` returns a copy."""

    def __init__(self, engine: SurfaceEngine, positions=(), signals=()):
        self.engine = engine
        self.positions = np.array(positions, dtype=float).reshape(-1, 2)
        self.signals = np.array(signals, dtype=float).reshape(-1)
        if len(self.positions) != len(self.signals):
            raise ValueError("positions and signals must have the same length")
        self.radii = engine.radius(self.signals).reshape(-1)
        self.positions.setflags(write=False)
        self.signals.setflags(write=False)
        self._tree = cKDTree(self.positions) if len(self.signals) >= INDEX_THRESHOLD else None

    def __len__(self) -> int:
        return len(self.signals)

    def with_source(self, position: Tuple[float, float], strength: float) -> 'SignalSurface':
        """A new surface with one extra kernel, e.g. a simulated extender."""
        return SignalSurface(self.engine,
                             np.vstack([self.positions, np.asarray(position, dtype=float).reshape(1, 2)]),
                             np.append(self.signals, float(strength)))

    def predict(self, point: Tuple[float, float]) -> float:
        return float(self.predict_many([point])[0])

    def predict_many(self, points) -> np.ndarray:
        """Vectorized prediction for an (m, 2) array of query points."""
        points = np.asarray(points, dtype=float).reshape(-1, 2)
        if len(self.signals) == 0:
            return np.zeros(len(points))
        if self._tree is None:
            distances = np.linalg.norm(points[:, None, :] - self.positions[None, :, :], axis=-1)
            values = self.engine.kernel(distances, self.signals, self.radii)
            return self.engine.combine(values, distances)
        return self._predict_indexed(points)

    def _predict_indexed(self, points: np.ndarray) -> np.ndarray:
        reach = float(self.engine.support(self.signals.max()))
        neighbours = self._tree.query_ball_point(points, r=reach)
        out = np.zeros(len(points))
        for i, idx in enumerate(neighbours):
            if not idx:
                continue
            idx = np.sort(np.asarray(idx, dtype=int))
            distances = np.linalg.norm(self.positions[idx] - points[i], axis=-1)
            values = self.engine.kernel(distances, self.signals[idx], self.radii[idx])
            out[i] = self.engine.combine(values[None, :], distances[None, :])[0]
        return out


@dataclass(frozen=True)
class Heatmap:
    """Regular grid of predicted signal for one floor."""
    floor: int
    xs: np.ndarray
    ys: np.ndarray
    values: np.ndarray  # shape (len(ys), len(xs))

    @property
    def resolution(self) -> float:
        return float(self.xs[1] - self.xs[0]) if len(self.xs) > 1 else 0.0


class SignalSurfaceModel:
    """Per-floor signal surfaces built from resolved rooms."""

    def __init__(self, surfaces: Dict[int, SignalSurface], engine: SurfaceEngine):
        self._surfaces = dict(surfaces)
        self.engine = engine

    @classmethod
    def from_rooms(cls, rooms: Sequence[Room], config: AdvisorConfig = DEFAULT_CONFIG,
                   engine: Optional[SurfaceEngine] = None) -> 'SignalSurfaceModel':
        engine = engine or SurfaceEngineFactory.create(config.surface_engine, config)
        surfaces = {
            floor: SignalSurface(engine, [r.position for r in floor_rooms], [r.signal for r in floor_rooms])
            for floor, floor_rooms in group_by_floor(rooms).items()
        }
        logger.debug(f"Built {engine.name} surfaces for floors {sorted(surfaces)}")
        return cls(surfaces, engine)

    @property
    def floors(self) -> List[int]:
        return sorted(self._surfaces)

    def surface(self, floor: int) -> SignalSurface:
        """Surface of a floor; a floor without samples predicts zero everywhere."""
        return self._surfaces.get(floor) or SignalSurface(self.engine)

    def predict(self, point: Tuple[float, float], floor: int) -> float:
        """Predicted signal at ``point`` on ``floor``."""
        return self.surface(floor).predict(point)

    def predict_many(self, points, floor: int) -> np.ndarray:
        return self.surface(floor).predict_many(points)

    def with_source(self, position: Tuple[float, float], floor: int, strength: float) -> 'SignalSurfaceModel':
        surfaces = dict(self._surfaces)
        surfaces[floor] = self.surface(floor).with_source(position, strength)
        return SignalSurfaceModel(surfaces, self.engine)

    def predict_from_source(self, source: Tuple[float, float, float],
                            targets: Iterable[Tuple[float, float, float]], strength: float) -> np.ndarray:
        """Signal at 3D ``targets`` if a lone transmitter of ``strength`` sat at ``source``."""
        targets = np.asarray(list(targets), dtype=float).reshape(-1, 3)
        distances = np.linalg.norm(targets - np.asarray(source, dtype=float), axis=-1)
        return self.engine.source_profile(distances, strength)

    def bounds(self, floor: int, margin: Optional[float] = None) -> Tuple[float, float, float, float]:
        """(x_min, y_min, x_max, y_max) covering every kernel on a floor."""
        surface = self.surface(floor)
        if len(surface) == 0:
            half = self.engine.config.house_half_extent
            return (-half, -half, half, half)
        reach = float(self.engine.support(surface.signals.max())) if margin is None else margin
        mins = surface.positions.min(axis=0) - reach
        maxs = surface.positions.max(axis=0) + reach
        return (float(mins[0]), float(mins[1]), float(maxs[0]), float(maxs[1]))

    def heatmap(self, floor: int, resolution: float = 0.5,
                bounds: Optional[Tuple[float, float, float, float]] = None) -> Heatmap:
        """Sample the floor's surface on a regular grid for rendering."""
        if resolution <= 0:
            raise ValueError(f"resolution must be positive, got {resolution}")
        x_min, y_min, x_max, y_max = bounds or self.bounds(floor)
        xs = np.arange(x_min, x_max + resolution / 2, resolution)
        ys = np.arange(y_min, y_max + resolution / 2, resolution)
        grid_x, grid_y = np.meshgrid(xs, ys)
        values = self.predict_many(np.column_stack([grid_x.ravel(), grid_y.ravel()]), floor)
        return Heatmap(floor=floor, xs=xs, ys=ys, values=values.reshape(grid_x.shape))

    def heatmaps(self, resolution: float = 0.5, parallel: bool = False) -> Dict[int, Heatmap]:
        """Heatmaps for every floor; floors are independent and may run on a thread pool."""
        if not parallel or len(self.floors) < 2:
            return {floor: self.heatmap(floor, resolution) for floor in self.floors}
        with concurrent.futures.ThreadPoolExecutor() as executor:
            results = list(executor.map(lambda f: self.heatmap(f, resolution), self.floors))
        return {h.floor: h for h in results}
