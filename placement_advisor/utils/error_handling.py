"""
Error Handling and Input Validation

This module provides:
- The exception hierarchy raised for malformed input records
- Structured validation error records with severity levels
- An input validator that checks, clamps and logs numeric fields
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)


class AdvisorError(Exception):
    """Base class for all placement advisor errors."""


class InvalidSampleError(AdvisorError, ValueError):
    """A calibration sample is malformed and cannot enter analysis."""


class InvalidLayoutError(AdvisorError, ValueError):
    """A layout entry is malformed."""


class ConfigurationError(AdvisorError, ValueError):
    """Advisor configuration is out of range or inconsistent."""


class ErrorSeverity(Enum):
    """Error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ValidationError:
    """Structured validation error information."""
    field_name: str
    value: Any
    expected_type: str
    constraint: str
    severity: ErrorSeverity
    message: str


class InputValidator:
    """
    Validates raw input values and records every violation it sees.

    Hard violations (wrong type, non-finite numbers, values below a hard
    minimum) raise the configured exception class. Soft violations on
    clampable fields are logged, recorded and clamped into range.
    """

    def __init__(self, error_cls: type = AdvisorError, context: str = ""):
        self.error_cls = error_cls
        self.context = context
        self.validation_errors: List[ValidationError] = []

    def _label(self, field_name: str) -> str:
        return f"{self.context}.{field_name}" if self.context else field_name

    def _fail(self, error: ValidationError):
        self.validation_errors.append(error)
        logger.error(f"Validation error: {error.message}")
        raise self.error_cls(error.message)

    def require_type(self, value: Any, expected_type: Union[type, Tuple[type, ...]],
                     field_name: str) -> Any:
        """Raise unless ``value`` is an instance of ``expected_type``."""
        # bool is an int subclass but never a valid numeric reading
        if isinstance(value, bool) or not isinstance(value, expected_type):
            self._fail(ValidationError(
                field_name=self._label(field_name),
                value=value,
                expected_type=str(expected_type),
                constraint="type",
                severity=ErrorSeverity.HIGH,
                message=f"{self._label(field_name)}: expected {expected_type}, got {type(value).__name__}"
            ))
        return value

    def require_text(self, value: Any, field_name: str) -> str:
        """Raise unless ``value`` is a non-blank string."""
        self.require_type(value, str, field_name)
        if not value.strip():
            self._fail(ValidationError(
                field_name=self._label(field_name),
                value=value,
                expected_type="string",
                constraint="min_length=1",
                severity=ErrorSeverity.HIGH,
                message=f"{self._label(field_name)}: must not be blank"
            ))
        return value

    def check_number(self, value: Any, field_name: str,
                     constraints: Optional[Dict[str, Any]] = None,
                     clamp: bool = False) -> float:
        """
        Validate a numeric field.

        Args:
            value: Value to validate
            field_name: Name of the field being validated
            constraints: Optional ``min`` / ``max`` bounds
            clamp: Clamp out-of-range values instead of raising

        Returns:
            The value as a float, clamped when ``clamp`` is set
        """
        self.require_type(value, (int, float, np.number), field_name)
        number = float(value)
        if not math.isfinite(number):
            self._fail(ValidationError(
                field_name=self._label(field_name),
                value=value,
                expected_type="finite number",
                constraint="finite",
                severity=ErrorSeverity.CRITICAL,
                message=f"{self._label(field_name)}: {value!r} is not a finite number"
            ))

        constraints = constraints or {}
        for bound, too_far in (('min', lambda v, b: v < b), ('max', lambda v, b: v > b)):
            if bound not in constraints or not too_far(number, constraints[bound]):
                continue
            limit = constraints[bound]
            word = "below minimum" if bound == 'min' else "above maximum"
            error = ValidationError(
                field_name=self._label(field_name),
                value=value,
                expected_type="numeric",
                constraint=f"{bound}={limit}",
                severity=ErrorSeverity.MEDIUM if clamp else ErrorSeverity.HIGH,
                message=f"{self._label(field_name)}: value {number} is {word} {limit}"
            )
            if not clamp:
                self._fail(error)
            self.validation_errors.append(error)
            logger.warning(f"Constraint violation, clamping: {error.message}")
            number = float(limit)
        return number

    def check_integer(self, value: Any, field_name: str,
                      constraints: Optional[Dict[str, Any]] = None) -> int:
        """Validate an integral field; never clamps."""
        self.require_type(value, (int, np.integer), field_name)
        self.check_number(value, field_name, constraints)
        return int(value)

    @property
    def has_warnings(self) -> bool:
        return bool(self.validation_errors)
