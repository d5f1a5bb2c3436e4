"""
Base product definitions and common enums.

A product exposes the fixing times at which the pricer must know the
underlying spots, the payment time, and a vectorized payoff.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Union
import numpy as np

# number of days in a year, used for daily monitoring
DAYS_PER_YEAR = 365.25


class PayoffType(str, Enum):
    """Call or put."""

    CALL = "call"
    PUT = "put"

    @property
    def phi(self) -> float:
        """+1 for calls, -1 for puts."""
        return 1.0 if self is PayoffType.CALL else -1.0

    @classmethod
    def coerce(cls, value: Union["PayoffType", str, int]) -> "PayoffType":
        """Accept an enum, its name/value, or the 1 (call) / -1 (put) convention."""
        if isinstance(value, cls):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            if value == 1:
                return cls.CALL
            if value == -1:
                return cls.PUT
            raise ValueError(f"payoff type must be 1 (call) or -1 (put), got {value}")
        return cls(str(value).lower())


class BarrierType(str, Enum):
    """Barrier direction and knock type."""

    UP_OUT = "uo"
    UP_IN = "ui"
    DOWN_OUT = "do"
    DOWN_IN = "di"

    @property
    def is_up(self) -> bool:
        return self.value[0] == "u"

    @property
    def is_knock_in(self) -> bool:
        return self.value[1] == "i"


class Frequency(str, Enum):
    """Barrier monitoring frequency."""

    MONTHLY = "monthly"
    WEEKLY = "weekly"
    DAILY = "daily"

    @property
    def per_year(self) -> float:
        """Number of fixings per year."""
        return {
            Frequency.MONTHLY: 12.0,
            Frequency.WEEKLY: 52.0,
            Frequency.DAILY: DAYS_PER_YEAR,
        }[self]


class Product(ABC):
    """
    Abstract base class for Monte Carlo priceable products.

    Subclasses set `fix_times` (strictly increasing, positive year
    fractions) and `pay_time`.
    """

    fix_times: np.ndarray
    pay_time: float

    @property
    def n_assets(self) -> int:
        """The number of assets this product depends on."""
        return 1

    @abstractmethod
    def payoff(self, spots: np.ndarray) -> np.ndarray:
        """
        Evaluate undiscounted payoffs on a block of spot paths.

        Args:
            spots: [num_paths, len(fix_times) + 1, n_assets], column 0 holding
                the initial spots

        Returns:
            Payment amounts at `pay_time` [num_paths]
        """
        pass

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """Serialize product to dictionary."""
        pass
