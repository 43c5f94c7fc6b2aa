"""Polynomial string hash used as the basis of the Bloom filter hash family.

The input is packed pairwise into 16-bit lanes (little-endian: even byte low,
odd byte high) inside a fixed buffer of ``MAX_INPUT_LENGTH // 2`` lanes. The
digest is a Horner-style accumulation over every lane of that buffer, starting
from 1, with 16-bit wraparound after each step::

    acc = 1
    for lane in lanes:
        acc = (acc * coefficient + lane) mod 2**16

Unused lanes are zero but still take part in the accumulation, so digests are
identical to the fixed-buffer reference computation.
"""
from __future__ import annotations

import structlog

logger = structlog.get_logger(__name__)

DIGEST_BITS = 16
DIGEST_SPACE = 1 << DIGEST_BITS
DIGEST_MASK = DIGEST_SPACE - 1

MAX_INPUT_LENGTH = 50
LANE_COUNT = MAX_INPUT_LENGTH // 2


class InputTooLongError(ValueError):
    """Raised when an input does not fit the hash's lane buffer.

    Attributes:
        length: Encoded length of the rejected input, in bytes.
        max_length: Largest accepted encoded length.
    """

    def __init__(self, length: int, max_length: int = MAX_INPUT_LENGTH) -> None:
        self.length = length
        self.max_length = max_length
        super().__init__(
            f"input is {length} bytes long, the limit is {max_length}"
        )


def _pack_lanes(data: bytes) -> list[int]:
    lanes = [0] * LANE_COUNT
    # Bytes are unsigned: 0x80 and above are not sign-extended into the high half
    for i in range(0, len(data), 2):
        lanes[i >> 1] = data[i] | (data[i + 1] << 8 if i + 1 < len(data) else 0)
    return lanes


def poly_hash(coefficient: int, text: str) -> int:
    """Return the 16-bit polynomial digest of ``text`` for ``coefficient``.

    Args:
        coefficient: Multiplier selecting the member of the hash family,
            in ``[0, 65535]``.
        text: String to hash. Its UTF-8 encoding may be at most
            ``MAX_INPUT_LENGTH`` bytes.

    Returns:
        An integer in ``[0, DIGEST_SPACE)``.

    Raises:
        ValueError: If ``coefficient`` is outside the 16-bit range.
        InputTooLongError: If ``text`` is longer than ``MAX_INPUT_LENGTH``.
    """
    if not 0 <= coefficient <= DIGEST_MASK:
        raise ValueError("coefficient must fit in 16 bits")

    data = text.encode("utf-8")
    if len(data) > MAX_INPUT_LENGTH:
        logger.warning("input_too_long", length=len(data), max_length=MAX_INPUT_LENGTH)
        raise InputTooLongError(len(data))

    acc = 1
    for lane in _pack_lanes(data):
        acc = (acc * coefficient + lane) & DIGEST_MASK
    return acc
