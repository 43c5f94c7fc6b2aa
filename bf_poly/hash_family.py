"""Hash families mapping an item to the ``k`` bit indexes it occupies.

Two families are provided:

* ``PolynomialHashFamily`` derives member ``i`` from ``poly_hash(i, item)``
  for consecutive coefficients ``1..k``. Cheap, bounded input length, and only
  defined for filters of at most 65536 bits.
* ``DoubleHashFamily`` combines MurmurHash3 (mmh3) and xxHash64 with the
  Kirsch-Mitzenmacher optimization. It serves as a well-distributed baseline
  when measuring how much the polynomial family's correlated members cost in
  false positives.
"""
from __future__ import annotations

from typing import Iterator, Optional

import mmh3
import xxhash

from .poly_hash import DIGEST_SPACE, poly_hash


class PolynomialHashFamily:
    """Family of polynomial hashes indexed by coefficient."""

    name = "polynomial"
    max_size: Optional[int] = DIGEST_SPACE

    def indexes(self, item: str, num_hashes: int, size: int) -> Iterator[int]:
        """Yield the bit index of ``item`` for coefficients ``1..num_hashes``."""
        for coefficient in range(1, num_hashes + 1):
            yield poly_hash(coefficient, item) % size

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class DoubleHashFamily:
    """Kirsch-Mitzenmacher double hashing over mmh3 and xxHash64."""

    name = "double"
    max_size: Optional[int] = None

    def __init__(self, *, seed1: int = 0, seed2: int = 0) -> None:
        self.seed1 = seed1
        self.seed2 = seed2

    def base_hashes(self, item: str, size: int) -> tuple[int, int]:
        """Return the first index of ``item`` and the nonzero stride between members."""
        data = item.encode("utf-8")
        start = mmh3.hash(data, self.seed1, signed=False) % size
        stride = xxhash.xxh64(data, seed=self.seed2).intdigest() % size
        # zero stride would collapse every member onto the first index
        return start, stride or 1

    def indexes(self, item: str, num_hashes: int, size: int) -> Iterator[int]:
        """Walk ``num_hashes`` steps of the stride from the first index, modulo ``size``."""
        index, stride = self.base_hashes(item, size)
        for _ in range(num_hashes):
            yield index
            index = (index + stride) % size

    def __repr__(self) -> str:
        return f"{type(self).__name__}(seed1={self.seed1}, seed2={self.seed2})"
