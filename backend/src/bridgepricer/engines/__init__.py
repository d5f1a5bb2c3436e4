"""Engines: deviate sources, path generators (Brownian bridge, sequential) and results."""

from bridgepricer.engines.base import PricingResult
from bridgepricer.engines.normal_source import (
    NormalDeviateSource,
    PseudoRandomNormalSource,
    SobolNormalSource,
    make_normal_source,
)
from bridgepricer.engines.path_generator import (
    PathGenerator,
    SequentialPathGenerator,
    augment_time_grid,
    levels_to_increments,
    apply_correlation,
)
from bridgepricer.engines.brownian_bridge import (
    BridgePoint,
    BrownianBridge,
    build_bridge_points,
    MIDPOINT_EPSILON,
)

__all__ = [
    "PricingResult",
    # Deviate sources
    "NormalDeviateSource",
    "PseudoRandomNormalSource",
    "SobolNormalSource",
    "make_normal_source",
    # Path generators
    "PathGenerator",
    "SequentialPathGenerator",
    "augment_time_grid",
    "levels_to_increments",
    "apply_correlation",
    # Brownian bridge
    "BridgePoint",
    "BrownianBridge",
    "build_bridge_points",
    "MIDPOINT_EPSILON",
]
