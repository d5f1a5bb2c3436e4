"""
Standard normal deviate sources for Monte Carlo path generation.

A path generator consumes one vector of `dimension` deviates per simulated
path. The sources below provide that vector from either a pseudo-random
bit generator or a scrambled Sobol' sequence, and can be reconstructed from
the same seed to reproduce a run.
"""

from abc import ABC, abstractmethod
from typing import Optional
import logging
import numpy as np
from numpy.random import Generator, MT19937, PCG64
from scipy.stats import norm, qmc

logger = logging.getLogger(__name__)

# Largest dimension supported by scipy's Sobol' direction numbers
SOBOL_MAX_DIMENSION = 21201

# Keeps the inverse normal CDF finite at the unit interval endpoints
UNIFORM_CLIP = 1e-12


class NormalDeviateSource(ABC):
    """
    Capability interface: produces vectors of independent normal deviates.

    Attributes:
        dimension: Number of deviates per draw
        mean: Mean of the deviates
        stdev: Standard deviation of the deviates
        seed: Seed the stream was (re)constructed with
    """

    def __init__(
        self,
        dimension: int,
        mean: float = 0.0,
        stdev: float = 1.0,
        seed: Optional[int] = None
    ) -> None:
        if dimension < 1:
            raise ValueError(f"dimension must be positive, got {dimension}")
        if stdev < 0:
            raise ValueError(f"stdev must be non-negative, got {stdev}")
        self.dimension = int(dimension)
        self.mean = float(mean)
        self.stdev = float(stdev)
        self.seed = seed

    @abstractmethod
    def _standard_block(self, n: int) -> np.ndarray:
        """Draw n standard normal vectors, shape [n, dimension]."""
        pass

    @abstractmethod
    def reset(self, seed: Optional[int] = None) -> None:
        """Reconstruct the stream from seed (or the current seed)."""
        pass

    def next_block(self, n: int) -> np.ndarray:
        """
        Draw n independent deviate vectors.

        Returns:
            Array of shape [n, dimension]
        """
        if n < 0:
            raise ValueError(f"block size must be non-negative, got {n}")
        z = self._standard_block(n)
        if self.mean != 0.0 or self.stdev != 1.0:
            z = self.mean + self.stdev * z
        return z

    def next(self, out: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Draw one deviate vector of length `dimension`.

        If `out` is supplied it is filled in place and returned.
        """
        z = self.next_block(1)[0]
        if out is None:
            return z
        if out.shape != (self.dimension,):
            raise ValueError(
                f"output vector shape {out.shape} != ({self.dimension},)"
            )
        out[:] = z
        return out


class PseudoRandomNormalSource(NormalDeviateSource):
    """
    Normal deviates from a numpy bit generator.

    bit_generator is "pcg64" (numpy default) or "mt19937" (Mersenne Twister).
    """

    _BIT_GENERATORS = {
        "pcg64": PCG64,
        "mt19937": MT19937,
    }

    def __init__(
        self,
        dimension: int,
        mean: float = 0.0,
        stdev: float = 1.0,
        seed: Optional[int] = None,
        bit_generator: str = "pcg64"
    ) -> None:
        super().__init__(dimension, mean, stdev, seed)
        key = bit_generator.lower()
        if key not in self._BIT_GENERATORS:
            raise ValueError(
                f"Unknown bit generator '{bit_generator}', "
                f"expected one of {sorted(self._BIT_GENERATORS)}"
            )
        self.bit_generator = key
        self._rng: Generator = self._make_rng(seed)

    def _make_rng(self, seed: Optional[int]) -> Generator:
        return Generator(self._BIT_GENERATORS[self.bit_generator](seed))

    def reset(self, seed: Optional[int] = None) -> None:
        if seed is not None:
            self.seed = seed
        self._rng = self._make_rng(self.seed)

    def _standard_block(self, n: int) -> np.ndarray:
        return self._rng.standard_normal((n, self.dimension))


class SobolNormalSource(NormalDeviateSource):
    """
    Quasi-random normal deviates from a scrambled Sobol' sequence.

    Points are generated in blocks of 2**log2_block to keep the balance
    properties of the sequence, then mapped through the inverse normal CDF.
    Each draw consumes one point of the sequence, so coordinate k of every
    draw is always the same Sobol' dimension.
    """

    def __init__(
        self,
        dimension: int,
        mean: float = 0.0,
        stdev: float = 1.0,
        seed: Optional[int] = None,
        scramble: bool = True,
        log2_block: int = 10
    ) -> None:
        super().__init__(dimension, mean, stdev, seed)
        if self.dimension > SOBOL_MAX_DIMENSION:
            raise ValueError(
                f"Sobol dimension {self.dimension} exceeds maximum {SOBOL_MAX_DIMENSION}"
            )
        if log2_block < 0:
            raise ValueError(f"log2_block must be non-negative, got {log2_block}")
        self.scramble = scramble
        self.log2_block = log2_block
        self.reset(seed)

    def reset(self, seed: Optional[int] = None) -> None:
        if seed is not None:
            self.seed = seed
        self._sampler = qmc.Sobol(
            d=self.dimension,
            scramble=self.scramble,
            seed=np.random.default_rng(self.seed),
        )
        self._buffer = np.empty((0, self.dimension))
        self._cursor = 0

    def _refill(self) -> None:
        # fixed power-of-two blocks; random_base2 would require the running
        # total to stay a power of two as well
        u = self._sampler.random(n=2 ** self.log2_block)
        u = np.clip(u, UNIFORM_CLIP, 1.0 - UNIFORM_CLIP)
        self._buffer = norm.ppf(u)
        self._cursor = 0

    def _standard_block(self, n: int) -> np.ndarray:
        out = np.empty((n, self.dimension))
        filled = 0
        while filled < n:
            if self._cursor >= len(self._buffer):
                self._refill()
            take = min(n - filled, len(self._buffer) - self._cursor)
            out[filled:filled + take] = self._buffer[self._cursor:self._cursor + take]
            self._cursor += take
            filled += take
        return out


def make_normal_source(
    kind: str,
    dimension: int,
    seed: Optional[int] = None,
    **kwargs
) -> NormalDeviateSource:
    """
    Create a deviate source by name.

    Args:
        kind: "pseudo" (PCG64), "mt19937" or "sobol"
        dimension: Deviates per draw
        seed: Seed for reproducibility
        **kwargs: Passed to the source constructor (mean, stdev, ...)

    Returns:
        NormalDeviateSource instance
    """
    key = kind.lower()
    if key == "pseudo":
        source: NormalDeviateSource = PseudoRandomNormalSource(dimension, seed=seed, **kwargs)
    elif key == "mt19937":
        source = PseudoRandomNormalSource(
            dimension, seed=seed, bit_generator="mt19937", **kwargs
        )
    elif key == "sobol":
        source = SobolNormalSource(dimension, seed=seed, **kwargs)
    else:
        raise ValueError(
            f"Unknown normal source '{kind}', expected 'pseudo', 'mt19937' or 'sobol'"
        )
    logger.debug(f"Created {type(source).__name__} with dimension {dimension}")
    return source
