"""
European and discretely monitored barrier call/put options.
"""

from typing import Any, Dict, Union
import math
import numpy as np

from bridgepricer.products.base import BarrierType, Frequency, PayoffType, Product

# Guards the fixing count against T * frequency landing a hair above an integer
_FIXING_TOLERANCE = 1e-9


class EuropeanCallPut(Product):
    """
    European call/put on a single asset, fixed and paid at expiry.

    Attributes:
        payoff_type: Call or put
        strike: Strike price
        time_to_exp: Time to expiry in years
    """

    def __init__(
        self,
        payoff_type: Union[PayoffType, str, int],
        strike: float,
        time_to_exp: float
    ) -> None:
        self.payoff_type = PayoffType.coerce(payoff_type)
        if strike < 0.0:
            raise ValueError(f"EuropeanCallPut: the strike must be non-negative, got {strike}")
        if time_to_exp <= 0.0:
            raise ValueError(f"EuropeanCallPut: the option has expired (time_to_exp={time_to_exp})")
        self.strike = float(strike)
        self.time_to_exp = float(time_to_exp)
        self.fix_times = np.array([self.time_to_exp])
        self.pay_time = self.time_to_exp

    def payoff(self, spots: np.ndarray) -> np.ndarray:
        s_t = spots[:, -1, 0]
        return np.maximum(self.payoff_type.phi * (s_t - self.strike), 0.0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "european",
            "payoff_type": self.payoff_type.value,
            "strike": self.strike,
            "time_to_exp": self.time_to_exp,
        }


class BarrierCallPut(Product):
    """
    Barrier call/put monitored on a regular fixing grid.

    Fixings are spaced 1/frequency apart and end at expiry; when the
    expiry is not a whole number of periods the first fixing is a short
    stub. The initial spot is monitored as well.

    A knock-out option pays the vanilla payoff if the barrier was never
    touched, a knock-in option only if it was. Up barriers are touched
    when S >= barrier, down barriers when S <= barrier.
    """

    def __init__(
        self,
        payoff_type: Union[PayoffType, str, int],
        strike: float,
        barrier: float,
        barrier_type: Union[BarrierType, str],
        frequency: Union[Frequency, str],
        time_to_exp: float
    ) -> None:
        self.payoff_type = PayoffType.coerce(payoff_type)
        if strike < 0.0:
            raise ValueError(f"BarrierCallPut: the strike must be non-negative, got {strike}")
        if barrier < 0.0:
            raise ValueError(f"BarrierCallPut: the barrier must be non-negative, got {barrier}")
        if time_to_exp <= 0.0:
            raise ValueError(f"BarrierCallPut: the option has expired (time_to_exp={time_to_exp})")

        self.strike = float(strike)
        self.barrier = float(barrier)
        self.barrier_type = BarrierType(barrier_type)
        self.frequency = Frequency(frequency)
        self.time_to_exp = float(time_to_exp)

        per_year = self.frequency.per_year
        n_fix = max(1, math.ceil(self.time_to_exp * per_year - _FIXING_TOLERANCE))
        periods_before_expiry = np.arange(n_fix - 1, -1, -1)
        self.fix_times = self.time_to_exp - periods_before_expiry / per_year
        self.pay_time = self.time_to_exp

    def is_touched(self, spots: np.ndarray) -> np.ndarray:
        """Barrier touched on any monitored date, per path [num_paths]."""
        s = spots[:, :, 0]
        if self.barrier_type.is_up:
            return np.any(s >= self.barrier, axis=1)
        return np.any(s <= self.barrier, axis=1)

    def payoff(self, spots: np.ndarray) -> np.ndarray:
        s_t = spots[:, -1, 0]
        vanilla = np.maximum(self.payoff_type.phi * (s_t - self.strike), 0.0)
        touched = self.is_touched(spots)
        alive = touched if self.barrier_type.is_knock_in else ~touched
        return np.where(alive, vanilla, 0.0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "barrier",
            "payoff_type": self.payoff_type.value,
            "strike": self.strike,
            "barrier": self.barrier,
            "barrier_type": self.barrier_type.value,
            "frequency": self.frequency.value,
            "time_to_exp": self.time_to_exp,
        }
