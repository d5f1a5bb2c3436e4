"""Market inputs: correlation handling."""

from bridgepricer.market.correlation import (
    CorrelationMatrix,
    validate_and_fix_correlation,
    compute_cholesky,
)

__all__ = [
    "CorrelationMatrix",
    "validate_and_fix_correlation",
    "compute_cholesky",
]
