"""
Small numeric and caching helpers shared by the value model.
"""

import math
from typing import Any, List, Optional


def expand(n: int) -> int:
    """Rounds `n` up to the next power of two, with a floor of 8."""
    n = max(8, int(n)) - 1
    n |= n >> 1
    n |= n >> 2
    n |= n >> 4
    n |= n >> 8
    n |= n >> 16
    return n + 1


def to_int32(x: float) -> int:
    """Truncates a number to a signed 32-bit integer, wrapping on overflow."""
    if not math.isfinite(x):
        return 0
    n = int(x) & 0xFFFFFFFF
    return n - 0x100000000 if n & 0x80000000 else n


_MASK = 0xFFFFFFFF


def hash_mix(code: int, value: int) -> int:
    value = (value * 0xCC9E2D51) & _MASK
    value = ((value << 15) | (value >> 17)) & _MASK
    value = (value * 0x1B873593) & _MASK
    code ^= value
    code = ((code << 13) | (code >> 19)) & _MASK
    return (code * 5 + 0xE6546B64) & _MASK


def hash_mash(code: int) -> int:
    code ^= code >> 16
    code = (code * 0x85EBCA6B) & _MASK
    code ^= code >> 13
    code = (code * 0xC2B2AE35) & _MASK
    code ^= code >> 16
    return code


def hash_seed(name: str) -> int:
    return hash_mash(hash_mix(0, hash(name) & _MASK))


class _Bucket:
    __slots__ = ("values", "weights")

    def __init__(self):
        # Index 0 is the most frequently hit generation.
        self.values: List[Any] = [None, None, None, None]
        self.weights: List[int] = [0, 0, 0, 0]


class HashGenCacheSet:
    """A fixed-size interning cache.

    Each hash bucket holds four generations of values. A hit bumps the
    generation's weight and promotes it past the next older generation
    once its weight catches up; a miss evicts the lightest generation.
    """

    def __init__(self, size: int):
        self._buckets: List[Optional[_Bucket]] = [None] * size
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return sum(1 for b in self._buckets if b is not None for v in b.values if v is not None)

    def get(self, value: Any) -> Any:
        """Returns the cached value equal to `value`, or None."""
        if not self._buckets:
            return None
        bucket = self._buckets[abs(hash(value)) % len(self._buckets)]
        if bucket is None:
            self.misses += 1
            return None
        for gen in range(4):
            cached = bucket.values[gen]
            if cached is not None and cached == value:
                self._hit(bucket, gen)
                return cached
        self.misses += 1
        return None

    def put(self, value: Any) -> Any:
        """Interns `value`, returning the previously cached equal value if any."""
        if not self._buckets:
            return value
        index = abs(hash(value)) % len(self._buckets)
        bucket = self._buckets[index]
        if bucket is None:
            bucket = _Bucket()
            self._buckets[index] = bucket
        for gen in range(4):
            cached = bucket.values[gen]
            if cached is not None and cached == value:
                self._hit(bucket, gen)
                return cached
        self.misses += 1
        # Evict the lightest of the two youngest generations.
        victim = 3 if bucket.weights[3] <= bucket.weights[2] else 2
        for gen in range(4):
            if bucket.values[gen] is None:
                victim = gen
                break
        bucket.values[victim] = value
        bucket.weights[victim] = 1
        return value

    def _hit(self, bucket: _Bucket, gen: int) -> None:
        self.hits += 1
        bucket.weights[gen] += 1
        if gen > 0 and bucket.weights[gen] >= bucket.weights[gen - 1]:
            values, weights = bucket.values, bucket.weights
            values[gen - 1], values[gen] = values[gen], values[gen - 1]
            weights[gen - 1], weights[gen] = weights[gen], weights[gen - 1]

    def clear(self) -> None:
        self._buckets = [None] * len(self._buckets)
        self.hits = 0
        self.misses = 0
