"""
Shared pytest fixtures for bridgepricer tests.

Provides reusable time grids, correlation matrices, a deterministic
deviate source and term sheet data.
"""

import json
import pytest
import numpy as np
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from bridgepricer.engines.normal_source import NormalDeviateSource


class FixedNormalSource(NormalDeviateSource):
    """Replays a fixed list of deviate vectors, cycling when exhausted."""

    def __init__(self, values) -> None:
        values = np.atleast_2d(np.asarray(values, dtype=np.float64))
        super().__init__(values.shape[1])
        self.values = values
        self._cursor = 0

    def _standard_block(self, n: int) -> np.ndarray:
        idx = (self._cursor + np.arange(n)) % len(self.values)
        self._cursor += n
        return self.values[idx].copy()

    def reset(self, seed: Optional[int] = None) -> None:
        self._cursor = 0


@pytest.fixture
def fixed_source() -> Callable[..., FixedNormalSource]:
    """Factory for deterministic deviate sources."""
    return FixedNormalSource


@pytest.fixture
def uniform_grid() -> np.ndarray:
    """Quarterly grid over two years."""
    return np.linspace(0.25, 2.0, 8)


@pytest.fixture
def irregular_grid() -> np.ndarray:
    """Unevenly spaced grid with clustered dates."""
    return np.array([0.02, 0.05, 0.1, 0.25, 0.26, 0.5, 0.9, 1.0, 1.75, 3.0])


@pytest.fixture
def correlation_3x3() -> np.ndarray:
    """Valid 3x3 correlation matrix."""
    return np.array([
        [1.0, 0.6, 0.3],
        [0.6, 1.0, 0.5],
        [0.3, 0.5, 1.0],
    ])


@pytest.fixture
def barrier_term_sheet_dict() -> Dict[str, Any]:
    """Down-and-out call term sheet as a dictionary."""
    return {
        "product_id": "TEST-DOC-001",
        "payoff_type": "call",
        "strike": 100.0,
        "time_to_exp": 1.0,
        "barrier": {
            "level": 85.0,
            "barrier_type": "do",
            "frequency": "monthly",
        },
        "market": {
            "spot": 100.0,
            "rate": 0.03,
            "div_yield": 0.01,
            "vol": 0.25,
        },
        "run_config": {
            "num_paths": 4_000,
            "seed": 42,
            "block_size": 1_000,
            "path_generator": "bridge",
            "normal_source": "pseudo",
        },
    }


@pytest.fixture
def term_sheet_file(tmp_path: Path, barrier_term_sheet_dict: Dict[str, Any]) -> Path:
    """Term sheet written to a temporary JSON file."""
    path = tmp_path / "doc_call.json"
    path.write_text(json.dumps(barrier_term_sheet_dict))
    return path


# Helper functions for test assertions

def bs_price(phi: float, S: float, K: float, T: float, r: float, q: float, sigma: float) -> float:
    """Black-Scholes reference price for MC checks."""
    from scipy.stats import norm
    sig_t = sigma * np.sqrt(T)
    d1 = (np.log(S / K) + (r - q + 0.5 * sigma**2) * T) / sig_t
    d2 = d1 - sig_t
    return float(phi * (S * np.exp(-q * T) * norm.cdf(phi * d1)
                        - K * np.exp(-r * T) * norm.cdf(phi * d2)))


@pytest.fixture
def black_scholes() -> Callable[..., float]:
    """Closed-form European price used as MC reference."""
    return bs_price
