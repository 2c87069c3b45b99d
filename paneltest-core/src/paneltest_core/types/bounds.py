"""Bound check types for configurable acceptance limits.

Each bound check evaluates a measured value, describes itself as a
human-readable condition for the step record, and round-trips through a
tagged dictionary so limits can live in the station YAML file.

Bound Check Types:
    GreaterThan: Value strictly greater than limit.
    LessThan: Value strictly less than limit.
    GoodInterval: Value within inclusive [low, high] interval.
    AnyValue: Always passes (informational measurements).

Example:
    >>> check = bound_check_from_dict({"good_interval": [2.8, 3.2]})
    >>> check.check(3.3)
    False
    >>> check.describe("3V3")
    '2.8V <= 3V3 <= 3.2V'
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from paneltest_core.errors import ThresholdError


@runtime_checkable
class BoundCheck(Protocol):
    """Protocol defining the interface for all bound check types."""

    def check(self, value: float) -> bool:
        """Return True if the value satisfies this bound."""

    def describe(self, label: str, unit: str = "V") -> str:
        """Return the acceptance condition as text, e.g. "B+ > 4.0V"."""

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a tagged dictionary."""


@dataclass(frozen=True)
class GreaterThan:
    """Check that value is strictly greater than a limit.

    Attributes:
        limit: The lower limit (exclusive).
    """

    limit: float

    def check(self, value: float) -> bool:
        return value > self.limit

    def describe(self, label: str, unit: str = "V") -> str:
        return f"{label} > {self.limit}{unit}"

    def to_dict(self) -> dict[str, Any]:
        return {"greater_than": self.limit}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GreaterThan:
        return cls(limit=float(data["greater_than"]))


@dataclass(frozen=True)
class LessThan:
    """Check that value is strictly less than a limit.

    Attributes:
        limit: The upper limit (exclusive).
    """

    limit: float

    def check(self, value: float) -> bool:
        return value < self.limit

    def describe(self, label: str, unit: str = "V") -> str:
        return f"{label} < {self.limit}{unit}"

    def to_dict(self) -> dict[str, Any]:
        return {"less_than": self.limit}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LessThan:
        return cls(limit=float(data["less_than"]))


@dataclass(frozen=True)
class GoodInterval:
    """Check that value lies within an inclusive interval.

    Attributes:
        low: Lower bound (inclusive).
        high: Upper bound (inclusive).

    Raises:
        ThresholdError: If low is greater than high.
    """

    low: float
    high: float

    def __post_init__(self) -> None:
        """Validate interval ordering."""
        if self.low > self.high:
            raise ThresholdError(
                f"GoodInterval low must be <= high, got [{self.low}, {self.high}]"
            )

    def check(self, value: float) -> bool:
        return self.low <= value <= self.high

    def describe(self, label: str, unit: str = "V") -> str:
        return f"{self.low}{unit} <= {label} <= {self.high}{unit}"

    def to_dict(self) -> dict[str, Any]:
        return {"good_interval": [self.low, self.high]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GoodInterval:
        args = data["good_interval"]
        if not isinstance(args, (list, tuple)) or len(args) != 2:
            raise ThresholdError(f"good_interval needs [low, high], got {args!r}")
        return cls(low=float(args[0]), high=float(args[1]))


@dataclass(frozen=True)
class AnyValue:
    """Bound that accepts every value. Used for informational rails."""

    def check(self, value: float) -> bool:
        return True

    def describe(self, label: str, unit: str = "V") -> str:
        return "none"

    def to_dict(self) -> dict[str, Any]:
        return {"any": None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnyValue:
        return cls()


_BOUND_REGISTRY: dict[str, Any] = {
    "greater_than": GreaterThan,
    "less_than": LessThan,
    "good_interval": GoodInterval,
    "any": AnyValue,
}


def bound_check_from_dict(data: dict[str, Any]) -> BoundCheck:
    """Create a BoundCheck from a tagged dictionary.

    Args:
        data: Dictionary with exactly one key identifying the bound type.

    Returns:
        A BoundCheck instance.

    Raises:
        ThresholdError: If the dictionary is malformed or the key is unknown.
    """
    if not isinstance(data, dict) or len(data) != 1:
        raise ThresholdError(f"Bound check must be a mapping with exactly one key, got {data!r}")
    key = next(iter(data))
    bound_cls = _BOUND_REGISTRY.get(key)
    if bound_cls is None:
        raise ThresholdError(f"Unknown bound check type: {key!r}")
    try:
        bound: BoundCheck = bound_cls.from_dict(data)
    except (TypeError, ValueError) as exc:
        raise ThresholdError(f"Invalid {key} bound: {exc}") from exc
    return bound
