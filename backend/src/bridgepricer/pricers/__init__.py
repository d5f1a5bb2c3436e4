"""Pricers: Monte Carlo engine driving the path generators."""

from bridgepricer.pricers.monte_carlo import MonteCarloPricer, MonteCarloConfig

__all__ = [
    "MonteCarloPricer",
    "MonteCarloConfig",
]
