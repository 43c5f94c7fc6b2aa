"""Fixed-capacity Bloom filter driven by the polynomial hash family.

The filter owns a ``bytearray`` bitset of ``size`` bits (65536 by default),
packed eight bits per byte with bit ``index % 8`` of byte ``index // 8``
holding position ``index``. Each item sets or checks ``num_hashes`` positions
chosen by the hash family. The bitset is never resized; ``clear`` zeroes it in
place so one instance can be reused across independent trials.
"""
from __future__ import annotations

from typing import Iterable, Optional, Union

from .hash_family import DoubleHashFamily, PolynomialHashFamily
from .poly_hash import DIGEST_SPACE

FILTER_SIZE = DIGEST_SPACE
MAX_NUM_HASHES = 255

HashFamily = Union[PolynomialHashFamily, DoubleHashFamily]


class BloomFilter:
    """Bloom filter backed by a fixed bytearray bitset."""

    def __init__(
        self,
        num_hashes: int,
        size: int = FILTER_SIZE,
        *,
        hash_family: Optional[HashFamily] = None,
    ) -> None:
        """Initialize an empty Bloom filter.

        Args:
            num_hashes: Number of hash functions (``k``), 1 to 255.
            size: Number of bits in the filter.
            hash_family: Source of bit indexes. Defaults to
                ``PolynomialHashFamily``.

        Raises:
            ValueError: If ``num_hashes`` or ``size`` is out of range, or
                ``size`` exceeds what the hash family can address.
        """
        if not 1 <= num_hashes <= MAX_NUM_HASHES:
            raise ValueError(f"num_hashes must be between 1 and {MAX_NUM_HASHES}")
        if size <= 0:
            raise ValueError("size must be positive")

        if hash_family is None:
            hash_family = PolynomialHashFamily()
        if hash_family.max_size is not None and size > hash_family.max_size:
            raise ValueError(
                f"size must not exceed {hash_family.max_size} bits for the {hash_family.name} hash family"
            )

        self.size = size
        self.num_hashes = num_hashes
        self.hash_family = hash_family
        self._bit_array = bytearray((size + 7) // 8)

    def add(self, item: str) -> None:
        """Insert ``item`` into the filter.

        Raises:
            InputTooLongError: If the hash family rejects ``item``. The
                filter is left unchanged.
        """
        for bit_index in self.hash_family.indexes(item, self.num_hashes, self.size):
            self._bit_array[bit_index >> 3] |= 1 << (bit_index & 7)

    def update(self, items: Iterable[str]) -> None:
        """Insert all ``items`` into the filter."""
        for item in items:
            self.add(item)

    def contains(self, item: str) -> bool:
        """Return False if ``item`` was definitely never added, True otherwise."""
        for bit_index in self.hash_family.indexes(item, self.num_hashes, self.size):
            if not (self._bit_array[bit_index >> 3] & (1 << (bit_index & 7))):
                return False
        return True

    def __contains__(self, item: str) -> bool:
        return self.contains(item)

    def clear(self) -> None:
        """Reset every bit to zero without reallocating."""
        self._bit_array[:] = bytes(len(self._bit_array))

    @property
    def bit_array(self) -> memoryview:
        """Read-only view of the underlying bitset for inspection."""
        return memoryview(self._bit_array).toreadonly()

    @property
    def is_empty(self) -> bool:
        return not any(self._bit_array)

    @property
    def fill_ratio(self) -> float:
        """Fraction of bits currently set."""
        set_bits = sum(bin(byte).count("1") for byte in self._bit_array)
        return set_bits / self.size

    def estimated_fp_rate(self) -> float:
        """False-positive probability implied by the current fill ratio."""
        return self.fill_ratio ** self.num_hashes

    def __repr__(self) -> str:
        return (
            f"BloomFilter(num_hashes={self.num_hashes}, size={self.size}, "
            f"hash_family={self.hash_family!r})"
        )
