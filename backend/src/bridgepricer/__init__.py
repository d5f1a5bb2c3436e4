"""
Bridge Pricer - Monte Carlo pricing with Brownian bridge path generation.

A library for simulating correlated multi-factor Brownian paths with a
Brownian bridge construction and pricing path-dependent options on them:
- Priority-ordered bridge points built once per time grid
- Pseudo-random (PCG64, Mersenne Twister) and Sobol' deviate sources
- Cholesky correlation across factors
- European and discretely monitored barrier calls/puts

Example:
    >>> from bridgepricer import BrownianBridge
    >>> bb = BrownianBridge([0.5, 1.0, 1.5, 2.0], n_factors=2, seed=7)
    >>> increments = bb.next()          # shape (4, 2)

    >>> from bridgepricer import load_term_sheet, price_term_sheet
    >>> result = price_term_sheet(load_term_sheet("barrier_call.json"))
    >>> print(f"PV: {result.pv:.4f} +/- {result.pv_std_error:.4f}")
"""

__version__ = "0.1.0"

# Errors
from bridgepricer.exceptions import (
    BridgeError,
    OrderingViolation,
    ShapeMismatch,
)

# Path generation
from bridgepricer.engines.brownian_bridge import (
    BridgePoint,
    BrownianBridge,
    build_bridge_points,
    MIDPOINT_EPSILON,
)
from bridgepricer.engines.path_generator import (
    PathGenerator,
    SequentialPathGenerator,
)
from bridgepricer.engines.normal_source import (
    NormalDeviateSource,
    PseudoRandomNormalSource,
    SobolNormalSource,
    make_normal_source,
)
from bridgepricer.market.correlation import CorrelationMatrix

# Products and pricing
from bridgepricer.products import (
    Product,
    PayoffType,
    BarrierType,
    Frequency,
    EuropeanCallPut,
    BarrierCallPut,
)
from bridgepricer.pricers.monte_carlo import MonteCarloPricer, MonteCarloConfig
from bridgepricer.engines.base import PricingResult

# Term sheets
from bridgepricer.schema import (
    OptionTermSheet,
    MarketInputs,
    BarrierSpec,
    RunConfig,
    load_term_sheet,
    validate_term_sheet_json,
    build_product,
    build_mc_config,
    price_term_sheet,
    print_term_sheet_summary,
    print_pricing_report,
)

__all__ = [
    # Version
    "__version__",
    # Errors
    "BridgeError",
    "OrderingViolation",
    "ShapeMismatch",
    # Path generation
    "BridgePoint",
    "BrownianBridge",
    "build_bridge_points",
    "MIDPOINT_EPSILON",
    "PathGenerator",
    "SequentialPathGenerator",
    "NormalDeviateSource",
    "PseudoRandomNormalSource",
    "SobolNormalSource",
    "make_normal_source",
    "CorrelationMatrix",
    # Products and pricing
    "Product",
    "PayoffType",
    "BarrierType",
    "Frequency",
    "EuropeanCallPut",
    "BarrierCallPut",
    "MonteCarloPricer",
    "MonteCarloConfig",
    "PricingResult",
    # Term sheets
    "OptionTermSheet",
    "MarketInputs",
    "BarrierSpec",
    "RunConfig",
    "load_term_sheet",
    "validate_term_sheet_json",
    "build_product",
    "build_mc_config",
    "price_term_sheet",
    "print_term_sheet_summary",
    "print_pricing_report",
]
