"""
Deterministic Random Number Generation

Every synthetic parameter in the model is drawn from a RandomSource. The
generator is Mulberry32: a tiny 32-bit generator whose mixing step uses only
integer add, multiply, xor and shift. Because no floating point enters the
mixing step, a given seed produces the same stream on every platform.

Gaussian samples use the Box-Muller transform, consuming two uniform draws
per sample.

There is no module-level generator. The caller creates a RandomSource and
passes it to whatever needs randomness, so several seeded streams can live
side by side.

Classes:
    RandomSource: Seeded uniform and Gaussian generator
"""

import math
from typing import Sequence, Tuple, Union

import numpy as np

UINT32_MASK = 0xFFFFFFFF
MULBERRY32_INCREMENT = 0x6D2B79F5
TWO_POW_32 = 4294967296.0


def _imul(a: int, b: int) -> int:
    """32-bit integer multiply (low 32 bits of the product)."""
    return (a * b) & UINT32_MASK


def mulberry32_step(state: int) -> Tuple[int, float]:
    """
    Advance a Mulberry32 state by one step.

    Args:
        state: Current 32-bit state

    Returns:
        (next_state, value) where value is a float in [0, 1)
    """
    state = (state + MULBERRY32_INCREMENT) & UINT32_MASK
    t = state
    t = _imul(t ^ (t >> 15), t | 1)
    t ^= (t + _imul(t ^ (t >> 7), t | 61)) & UINT32_MASK
    t = (t ^ (t >> 14)) & UINT32_MASK
    return state, t / TWO_POW_32


class RandomSource:
    """
    Seeded pseudo-random generator owned by its caller.

    Example:
        >>> rng = RandomSource(1337)
        >>> u = rng.next()            # uniform in [0, 1)
        >>> g = rng.next_gaussian()   # standard normal
    """

    def __init__(self, seed: int = 0):
        """
        Args:
            seed: Any integer; reduced modulo 2**32
        """
        self._state = int(seed) & UINT32_MASK

    @property
    def state(self) -> int:
        """Current 32-bit generator state."""
        return self._state

    def copy(self) -> "RandomSource":
        """Return an independent generator that continues this stream."""
        clone = RandomSource()
        clone._state = self._state
        return clone

    def next(self) -> float:
        """Draw a uniform float in [0, 1)."""
        self._state, value = mulberry32_step(self._state)
        return value

    def next_gaussian(self) -> float:
        """
        Draw a standard normal sample with the Box-Muller transform.

        Zero draws are rejected so that log(u) stays finite.
        """
        u = 0.0
        v = 0.0
        while u == 0.0:
            u = self.next()
        while v == 0.0:
            v = self.next()
        return math.sqrt(-2.0 * math.log(u)) * math.cos(2.0 * math.pi * v)

    def uniform_array(self, shape: Union[int, Sequence[int]]) -> np.ndarray:
        """Fill an array of the given shape with uniform draws, row-major."""
        shape = (shape,) if isinstance(shape, int) else tuple(shape)
        count = int(np.prod(shape, dtype=np.int64))
        values = [self.next() for _ in range(count)]
        return np.array(values, dtype=np.float64).reshape(shape)

    def gaussian_array(
        self, shape: Union[int, Sequence[int]], scale: float = 1.0
    ) -> np.ndarray:
        """
        Fill an array of the given shape with scaled Gaussian draws.

        Elements are drawn in row-major (C) order, last index fastest. The
        weight initializer relies on this order for reproducibility.
        """
        shape = (shape,) if isinstance(shape, int) else tuple(shape)
        count = int(np.prod(shape, dtype=np.int64))
        values = [self.next_gaussian() * scale for _ in range(count)]
        return np.array(values, dtype=np.float64).reshape(shape)

    def __repr__(self) -> str:
        return f"RandomSource(state={self._state:#010x})"
