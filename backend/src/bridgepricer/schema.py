"""
Strict Pydantic schema for option term sheets and run configuration.

A term sheet JSON file fully describes one Monte Carlo pricing run:
the option, the flat market inputs and the simulation settings.
"""

from typing import Optional, Union
from pathlib import Path
import json

from pydantic import BaseModel, ConfigDict, Field

from bridgepricer.products.base import BarrierType, Frequency, PayoffType, Product
from bridgepricer.products.options import BarrierCallPut, EuropeanCallPut
from bridgepricer.engines.base import PricingResult
from bridgepricer.pricers.monte_carlo import MonteCarloConfig, MonteCarloPricer


# ============================================================================
# Sub-schemas
# ============================================================================

class MarketInputs(BaseModel):
    """Flat Black-Scholes market inputs for a single underlying."""
    model_config = ConfigDict(extra="forbid")

    spot: float = Field(..., gt=0, description="Current spot price")
    rate: float = Field(default=0.0, ge=-0.1, le=0.5, description="Risk-free rate (cont. cmpd.)")
    div_yield: float = Field(default=0.0, ge=0, le=0.5, description="Dividend yield (cont. cmpd.)")
    vol: float = Field(..., gt=0, le=2.0, description="Volatility (e.g., 0.25 for 25%)")


class BarrierSpec(BaseModel):
    """Barrier level, type and monitoring frequency."""
    model_config = ConfigDict(extra="forbid")

    level: float = Field(..., gt=0, description="Absolute barrier level")
    barrier_type: BarrierType
    frequency: Frequency = Frequency.DAILY


class RunConfig(BaseModel):
    """Monte Carlo run settings."""
    model_config = ConfigDict(extra="forbid")

    num_paths: int = Field(default=100_000, ge=1, le=10_000_000)
    seed: Optional[int] = Field(default=42)
    block_size: int = Field(default=10_000, ge=1)
    path_generator: str = Field(default="bridge", pattern="^(bridge|sequential)$")
    normal_source: str = Field(default="pseudo", pattern="^(pseudo|mt19937|sobol)$")


# ============================================================================
# Main Term Sheet Schema
# ============================================================================

class OptionTermSheet(BaseModel):
    """
    Term sheet for a European or barrier call/put.

    A missing `barrier` means a plain European option.
    """
    model_config = ConfigDict(extra="forbid")

    product_id: str = Field(default="OPTION", min_length=1)
    payoff_type: PayoffType
    strike: float = Field(..., ge=0)
    time_to_exp: float = Field(..., gt=0, le=50.0, description="Years to expiry")
    barrier: Optional[BarrierSpec] = None
    market: MarketInputs
    run_config: RunConfig = Field(default_factory=RunConfig)


# ============================================================================
# Loading and conversion functions
# ============================================================================

def load_term_sheet(path: Union[str, Path]) -> OptionTermSheet:
    """
    Load and validate a term sheet from JSON file.

    Raises:
        FileNotFoundError: If file doesn't exist
        ValidationError: If JSON doesn't match schema
    """
    filepath = Path(path)
    if not filepath.exists():
        raise FileNotFoundError(f"Term sheet not found: {path}")

    with open(filepath, "r") as f:
        data = json.load(f)

    return OptionTermSheet(**data)


def validate_term_sheet_json(data: dict) -> OptionTermSheet:
    """Validate term sheet data dictionary."""
    return OptionTermSheet(**data)


def build_product(ts: OptionTermSheet) -> Product:
    """Create the product described by a term sheet."""
    if ts.barrier is None:
        return EuropeanCallPut(ts.payoff_type, ts.strike, ts.time_to_exp)
    return BarrierCallPut(
        ts.payoff_type,
        ts.strike,
        ts.barrier.level,
        ts.barrier.barrier_type,
        ts.barrier.frequency,
        ts.time_to_exp,
    )


def build_mc_config(ts: OptionTermSheet) -> MonteCarloConfig:
    """Create the engine configuration from a term sheet's run settings."""
    rc = ts.run_config
    return MonteCarloConfig(
        num_paths=rc.num_paths,
        seed=rc.seed,
        block_size=rc.block_size,
        path_generator=rc.path_generator,
        normal_source=rc.normal_source,
    )


def price_term_sheet(ts: OptionTermSheet) -> PricingResult:
    """Price a term sheet with the Monte Carlo engine it configures."""
    pricer = MonteCarloPricer(build_mc_config(ts))
    m = ts.market
    return pricer.price(build_product(ts), m.spot, m.rate, m.div_yield, m.vol)


def print_term_sheet_summary(ts: OptionTermSheet) -> None:
    """Print a clean summary of the term sheet."""
    print("=" * 70)
    print(f"TERM SHEET SUMMARY: {ts.product_id}")
    print("=" * 70)

    print(f"\n--- OPTION ---")
    print(f"  Payoff:          {ts.payoff_type.value}")
    print(f"  Strike:          {ts.strike:,.2f}")
    print(f"  Expiry:          {ts.time_to_exp:.4f} years")

    if ts.barrier:
        print(f"\n--- BARRIER ---")
        print(f"  Level:           {ts.barrier.level:,.2f}")
        print(f"  Type:            {ts.barrier.barrier_type.value}")
        print(f"  Monitoring:      {ts.barrier.frequency.value}")

    m = ts.market
    print(f"\n--- MARKET ---")
    print(f"  Spot={m.spot:,.2f}, Vol={m.vol:.1%}, Rate={m.rate:.2%}, Div={m.div_yield:.2%}")

    rc = ts.run_config
    print(f"\n--- SIMULATION ---")
    print(f"  Generator:       {rc.path_generator} / {rc.normal_source}")
    print(f"  Paths:           {rc.num_paths:,} (block {rc.block_size:,}, seed {rc.seed})")

    print("=" * 70)
    print("VALIDATION: PASSED")
    print("=" * 70)


def print_pricing_report(ts: OptionTermSheet, result: PricingResult) -> None:
    """Print formatted pricing report."""
    print("\n" + "=" * 70)
    print(f"PRICING REPORT: {ts.product_id}")
    print("=" * 70)

    lo, hi = result.confidence_interval()
    print(f"\n--- PRICING RESULTS ---")
    print(f"  PV:              {result.pv:,.6f}")
    print(f"  Std Error:       {result.pv_std_error:,.6f}")
    print(f"  95% CI:          [{lo:,.6f}, {hi:,.6f}]")

    print(f"\n--- DIAGNOSTICS ---")
    print(f"  Paths:           {result.num_paths:,}")
    print(f"  Steps:           {result.metadata.get('num_steps')}")
    print(f"  Generator:       {result.metadata.get('path_generator')}")
    print(f"  Deviates:        {result.metadata.get('normal_source')}")
    print(f"  Time:            {result.computation_time_ms:.1f} ms")

    print("=" * 70)
