"""Tests for configuration and input validation."""

import sys
import os
import json
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from placement_advisor.config import DEFAULT_CONFIG, AdvisorConfig, RouterWeights, load_config
from placement_advisor.utils.error_handling import (
    ConfigurationError, ErrorSeverity, InputValidator, InvalidSampleError
)


class TestAdvisorConfig:
    """Test defaults and validation."""

    def test_defaults(self):
        """Test documented default values."""
        config = DEFAULT_CONFIG
        assert config.weak_threshold == 0.4
        assert config.strong_threshold == 0.7
        assert config.floor_height == 4.0
        assert config.kernel_radius(0.5) == pytest.approx(7.5)
        assert config.same_floor_adjacency == 9.0
        assert config.adjacent_floor_adjacency == 4.0
        assert config.extender_strength == 0.8
        assert config.max_extenders == 5
        assert config.router_mode == 'global'
        assert config.validate() is config

    def test_weights_normalized(self):
        """Test weights are rescaled to sum to one."""
        weights = RouterWeights(signal=1, centrality=2, breadth=2, height=0, location_type=0).normalized()
        assert sum(weights.as_dict().values()) == pytest.approx(1.0)
        assert weights.centrality == pytest.approx(0.4)

    @pytest.mark.parametrize('overrides', [
        {'weak_threshold': 0.8},
        {'strong_threshold': 1.2},
        {'floor_height': 0.0},
        {'kernel_plateau': 0.8},
        {'surface_engine': 'ray_tracing'},
        {'router_mode': 'per_room'},
        {'adjacent_floor_adjacency': 12.0},
        {'extender_strength': 0.0},
        {'max_extenders': -1},
        {'router_weights': RouterWeights(signal=0.8, centrality=0.2, breadth=0.2)},
        {'router_weights': RouterWeights(signal=0, centrality=0, breadth=0, height=0, location_type=0)},
    ])
    def test_invalid(self, overrides):
        """Test out-of-range values raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            AdvisorConfig(**overrides).validate()

    def test_from_dict(self, caplog):
        """Test mapping input with nested weights and unknown keys."""
        with caplog.at_level('WARNING'):
            config = AdvisorConfig.from_dict({
                'weak_threshold': 0.3,
                'router_weights': {'signal': 0.1, 'centrality': 0.4, 'breadth': 0.4, 'height': 0.1,
                                   'location_type': 0.0},
                'colour': 'blue',
            })
        assert config.weak_threshold == 0.3
        assert config.router_weights.centrality == 0.4
        assert 'colour' in caplog.text

    def test_from_dict_bad_weights(self):
        """Test unknown weight names raise."""
        with pytest.raises(ConfigurationError):
            AdvisorConfig.from_dict({'router_weights': {'speed': 1.0}})

    def test_round_trip_keys(self):
        """Test to_dict feeds back into from_dict."""
        assert AdvisorConfig.from_dict(DEFAULT_CONFIG.to_dict()) == DEFAULT_CONFIG


class TestLoadConfig:
    """Test loading configuration files."""

    def test_none_gives_defaults(self):
        """Test no path means defaults."""
        assert load_config(None) is DEFAULT_CONFIG

    def test_load(self, tmp_path):
        """Test a valid file."""
        path = tmp_path / 'config.json'
        path.write_text(json.dumps({'router_mode': 'per_floor', 'max_extenders': 3}))
        config = load_config(str(path))
        assert config.router_mode == 'per_floor'
        assert config.max_extenders == 3

    def test_path_traversal(self):
        """Test parent-directory paths are refused."""
        with pytest.raises(ConfigurationError):
            load_config('../etc/config.json')

    def test_missing(self, tmp_path):
        """Test a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / 'missing.json'))

    @pytest.mark.parametrize('content', ['{oops', '[1, 2]', '{"floor_height": -1}'])
    def test_bad_content(self, tmp_path, content):
        """Test invalid JSON, non-objects and bad values."""
        path = tmp_path / 'config.json'
        path.write_text(content)
        with pytest.raises(ConfigurationError):
            load_config(str(path))


class TestInputValidator:
    """Test the structured validator."""

    def test_records_clamp(self):
        """Test clamped values are recorded with medium severity."""
        validator = InputValidator(InvalidSampleError, context='sample')
        assert validator.check_number(2.0, 'signal', {'min': 0.0, 'max': 1.0}, clamp=True) == 1.0
        assert validator.has_warnings
        error = validator.validation_errors[0]
        assert error.field_name == 'sample.signal'
        assert error.constraint == 'max=1.0'
        assert error.severity is ErrorSeverity.MEDIUM

    def test_raises_configured_error(self):
        """Test hard violations raise the configured class and are recorded."""
        validator = InputValidator(ConfigurationError)
        with pytest.raises(ConfigurationError):
            validator.check_number(-1, 'count', {'min': 0})
        assert validator.validation_errors[0].severity is ErrorSeverity.HIGH

    def test_type_checks(self):
        """Test strings and bools are not numbers; floats are not integers."""
        validator = InputValidator(InvalidSampleError)
        with pytest.raises(InvalidSampleError):
            validator.check_number('0.5', 'signal')
        with pytest.raises(InvalidSampleError):
            validator.check_integer(False, 'floor')
        with pytest.raises(InvalidSampleError):
            validator.check_integer(1.5, 'floor')
        assert validator.check_integer(3, 'floor') == 3
