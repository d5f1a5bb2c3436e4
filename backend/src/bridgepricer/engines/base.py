"""
Pricing result structure shared by the Monte Carlo pricer.
"""

from dataclasses import dataclass, field
from typing import Dict, Any


@dataclass
class PricingResult:
    """
    Complete pricing result from a Monte Carlo run.

    Contains PV, its standard error, and run diagnostics.
    """

    # Primary outputs
    pv: float                           # Present value
    pv_std_error: float = 0.0           # Standard error of the MC estimate

    # Diagnostics
    num_paths: int = 0
    computation_time_ms: float = 0.0

    # Additional metadata (generator, source, grid size, ...)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def confidence_interval(self, z: float = 1.96) -> tuple:
        """Symmetric confidence interval around the PV (95% by default)."""
        return (self.pv - z * self.pv_std_error, self.pv + z * self.pv_std_error)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize result to dictionary."""
        return {
            "pv": self.pv,
            "pv_std_error": self.pv_std_error,
            "num_paths": self.num_paths,
            "computation_time_ms": self.computation_time_ms,
            "metadata": dict(self.metadata),
        }
