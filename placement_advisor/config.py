"""Tunable configuration for the placement advisor with documented defaults."""

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Optional

from placement_advisor.utils.error_handling import ConfigurationError

logger = logging.getLogger(__name__)

SURFACE_ENGINES = ('max_kernel', 'inverse_distance')
ROUTER_MODES = ('global', 'per_floor')

VALIDATION_LIMITS = {
    'floor_height': 50.0,       # Max vertical distance between floors
    'kernel_radius': 100.0,     # Max kernel radius coefficient
    'adjacency': 100.0,         # Max adjacency threshold
    'max_extenders': 50,        # Max extender recommendations returned
    'config_bytes': 1_000_000,  # Max size of a config file on disk
}


@dataclass(frozen=True)
class RouterWeights:
    """Weights of the router score terms. Normalized to sum to 1 on use."""
    signal: float = 0.15        # Measured signal at the candidate
    centrality: float = 0.35    # Closeness to the centroid of all rooms
    breadth: float = 0.35       # Mean predicted signal at other rooms
    height: float = 0.10        # Mounting height suitability
    location_type: float = 0.05 # Rooms preferred over hallways and stairs

    def normalized(self) -> 'RouterWeights':
        total = sum(getattr(self, f.name) for f in fields(self))
        if total <= 0:
            raise ConfigurationError("Router weights must sum to a positive value")
        return RouterWeights(**{f.name: getattr(self, f.name) / total for f in fields(self)})

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class AdvisorConfig:
    """Configuration for the coverage and placement analysis."""
    # Signal classification
    weak_threshold: float = 0.4
    strong_threshold: float = 0.7

    # Geometry
    floor_height: float = 4.0       # Vertical offset per floor in house units
    house_half_extent: float = 8.0  # Hash-placed rooms land in [-h, h] squared

    # Signal surface kernels: radius = base + per_signal * signal
    kernel_radius_base: float = 3.0
    kernel_radius_per_signal: float = 9.0
    kernel_plateau: float = 0.4     # Fraction of radius at full strength
    kernel_cutoff: float = 0.7      # Fraction of radius where influence ends
    surface_engine: str = 'max_kernel'

    # Extenders
    same_floor_adjacency: float = 9.0      # Threshold A
    adjacent_floor_adjacency: float = 4.0  # Threshold B, horizontal distance
    layout_proximity_margin: float = 0.35  # Touching layout rectangles are adjacent
    extender_strength: float = 0.8
    max_extenders: int = 5

    # Router
    router_strength: float = 1.0
    router_mode: str = 'global'
    router_weights: RouterWeights = field(default_factory=RouterWeights)

    def validate(self) -> 'AdvisorConfig':
        """Raise ConfigurationError if any value is out of range."""
        if not 0.0 <= self.weak_threshold <= self.strong_threshold <= 1.0:
            raise ConfigurationError(
                f"Thresholds must satisfy 0 <= weak ({self.weak_threshold}) "
                f"<= strong ({self.strong_threshold}) <= 1"
            )
        if not 0.0 < self.floor_height <= VALIDATION_LIMITS['floor_height']:
            raise ConfigurationError(f"floor_height out of range: {self.floor_height}")
        if self.house_half_extent <= 0:
            raise ConfigurationError(f"house_half_extent must be positive: {self.house_half_extent}")
        if self.kernel_radius_base < 0 or self.kernel_radius_per_signal < 0:
            raise ConfigurationError("Kernel radius coefficients must be non-negative")
        if self.kernel_radius_base + self.kernel_radius_per_signal <= 0:
            raise ConfigurationError("Kernel radius must be positive for a full-strength sample")
        if max(self.kernel_radius_base, self.kernel_radius_per_signal) > VALIDATION_LIMITS['kernel_radius']:
            raise ConfigurationError("Kernel radius coefficients exceed limit")
        if not 0.0 <= self.kernel_plateau < self.kernel_cutoff <= 1.0:
            raise ConfigurationError(
                f"Kernel fractions must satisfy 0 <= plateau ({self.kernel_plateau}) "
                f"< cutoff ({self.kernel_cutoff}) <= 1"
            )
        if self.surface_engine not in SURFACE_ENGINES:
            raise ConfigurationError(f"Unknown surface_engine: {self.surface_engine}")
        for name in ('same_floor_adjacency', 'adjacent_floor_adjacency', 'layout_proximity_margin'):
            value = getattr(self, name)
            if not 0.0 <= value <= VALIDATION_LIMITS['adjacency']:
                raise ConfigurationError(f"{name} out of range: {value}")
        if self.adjacent_floor_adjacency > self.same_floor_adjacency:
            raise ConfigurationError("Adjacent-floor threshold must not exceed the same-floor threshold")
        for name in ('extender_strength', 'router_strength'):
            value = getattr(self, name)
            if not 0.0 < value <= 1.0:
                raise ConfigurationError(f"{name} must be in (0, 1]: {value}")
        if not 0 <= self.max_extenders <= VALIDATION_LIMITS['max_extenders']:
            raise ConfigurationError(f"max_extenders out of range: {self.max_extenders}")
        if self.router_mode not in ROUTER_MODES:
            raise ConfigurationError(f"Unknown router_mode: {self.router_mode}")

        weights = self.router_weights
        if min(getattr(weights, f.name) for f in fields(weights)) < 0:
            raise ConfigurationError("Router weights must be non-negative")
        # The measured signal comes from the existing router position, not the candidate
        if weights.centrality + weights.breadth <= weights.signal:
            raise ConfigurationError("Centrality and breadth weights must outweigh the signal weight")
        weights.normalized()
        return self

    def kernel_radius(self, signal: float) -> float:
        return self.kernel_radius_base + self.kernel_radius_per_signal * signal

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AdvisorConfig':
        """Build a validated config from a plain mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")
        values = {k: v for k, v in data.items() if k in known}
        weights = values.pop('router_weights', None)
        try:
            if isinstance(weights, dict):
                values['router_weights'] = RouterWeights(**weights)
            elif weights is not None:
                values['router_weights'] = weights
            config = cls(**values)
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e
        return config.validate()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


DEFAULT_CONFIG = AdvisorConfig()


def load_config(config_path: Optional[str]) -> AdvisorConfig:
    """Loads and validates an advisor configuration JSON file."""
    if not config_path:
        logging.info("No advisor config provided. Using defaults.")
        return DEFAULT_CONFIG

    if ".." in config_path.replace("\\", "/").split("/"):
        logging.error("Security Error: Path traversal detected. Aborting.")
        raise ConfigurationError("Invalid configuration file path.")

    if not os.path.exists(config_path):
        logging.error(f"Configuration file not found: {config_path}. Aborting.")
        raise FileNotFoundError(f"Config file not found: {config_path}")

    if os.path.getsize(config_path) > VALIDATION_LIMITS['config_bytes']:
        raise ConfigurationError(f"Config file too large: {config_path}")

    with open(config_path, 'r') as f:
        try:
            config_data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Config file is not valid JSON: {e}") from e

    if not isinstance(config_data, dict):
        raise ConfigurationError("Config file must contain a JSON object")

    config = AdvisorConfig.from_dict(config_data)
    logging.info("Configuration loaded and validated successfully.")
    return config
