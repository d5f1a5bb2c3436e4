#!/usr/bin/env python3
"""
Example: Load, validate, and price an option term sheet.

Usage:
    python examples/run_price.py [term_sheet.json] [--paths N] [--seed S]
        [--generator bridge|sequential] [--source pseudo|mt19937|sobol] [--verbose]
"""

import sys
from pathlib import Path
import argparse
import logging
import traceback

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bridgepricer.schema import (
    OptionTermSheet,
    load_term_sheet,
    price_term_sheet,
    print_pricing_report,
    print_term_sheet_summary,
)


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Price a European or barrier option from a JSON term sheet"
    )
    parser.add_argument(
        "term_sheet",
        type=str,
        nargs="?",
        default=str(Path(__file__).parent / "barrier_call_monthly.json"),
        help="Path to JSON term sheet file"
    )
    parser.add_argument(
        "--paths", "-n",
        type=int,
        default=None,
        help="Number of Monte Carlo paths (overrides the term sheet)"
    )
    parser.add_argument(
        "--seed", "-s",
        type=int,
        default=None,
        help="Random seed for reproducibility (overrides the term sheet)"
    )
    parser.add_argument(
        "--generator", "-g",
        choices=["bridge", "sequential"],
        default=None,
        help="Path construction (overrides the term sheet)"
    )
    parser.add_argument(
        "--source",
        choices=["pseudo", "mt19937", "sobol"],
        default=None,
        help="Normal deviate source (overrides the term sheet)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Print detailed output and debug logging"
    )

    args = parser.parse_args()
    term_sheet_path = Path(args.term_sheet)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 70)
    print("BROWNIAN BRIDGE OPTION PRICER")
    print("=" * 70)

    try:
        # 1. Load and validate term sheet
        print(f"\n[1/3] Loading term sheet: {term_sheet_path.name}")
        ts = load_term_sheet(term_sheet_path)

        overrides = {
            "num_paths": args.paths,
            "seed": args.seed,
            "path_generator": args.generator,
            "normal_source": args.source,
        }
        overrides = {k: v for k, v in overrides.items() if v is not None}
        if overrides:
            data = ts.model_dump()
            data["run_config"].update(overrides)
            ts = OptionTermSheet(**data)

        if args.verbose:
            print_term_sheet_summary(ts)
        else:
            print(f"      Product ID: {ts.product_id}")
            kind = "European" if ts.barrier is None else f"Barrier ({ts.barrier.barrier_type.value})"
            print(f"      Option: {kind} {ts.payoff_type.value}, K={ts.strike:,.2f}")

        # 2. Run pricer
        rc = ts.run_config
        print(f"\n[2/3] Running Monte Carlo simulation...")
        print(f"      Paths: {rc.num_paths:,}")
        print(f"      Seed: {rc.seed}")
        print(f"      Generator: {rc.path_generator} / {rc.normal_source}")

        result = price_term_sheet(ts)

        # 3. Print results
        print(f"\n[3/3] Generating report...")
        print_pricing_report(ts, result)

        return 0

    except FileNotFoundError as e:
        print(f"\nERROR: {e}")
        return 1

    except Exception as e:
        print(f"\nERROR: {type(e).__name__}: {e}")
        if args.verbose:
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
