import pytest

from structure.structure_errors import (
    ImmutableError, InterpreterError, RecordRangeError, ScopeEmptyError, ScopeOverflowError,
    StructureError,
)
from structure.structure_item import Num
from structure.structure_util import HashGenCacheSet, expand, hash_mash, hash_mix, to_int32


@pytest.mark.parametrize("n, expected", [
    (0, 8), (1, 8), (8, 8), (9, 16), (100, 128), (1024, 1024), (1025, 2048),
])
def test_expand(n, expected):
    assert expand(n) == expected


@pytest.mark.parametrize("x, expected", [
    (5.9, 5),
    (-5.9, -5),
    (2 ** 31, -2 ** 31),
    (2 ** 32 + 3, 3),
    (float("nan"), 0),
    (float("inf"), 0),
])
def test_to_int32(x, expected):
    assert to_int32(x) == expected


def test_hash_helpers_stay_32_bit():
    code = hash_mash(hash_mix(0xFFFFFFFF, 0xFFFFFFFF))
    assert 0 <= code <= 0xFFFFFFFF
    assert hash_mash(hash_mix(1, 2)) == hash_mash(hash_mix(1, 2))


def test_cache_returns_the_first_equal_value():
    cache = HashGenCacheSet(16)
    first = Num(1.0)
    second = Num(1.0)
    assert cache.put(first) is first
    assert cache.put(second) is first
    assert cache.get(Num(1.0)) is first
    assert cache.hits == 2
    assert len(cache) == 1


def test_cache_miss_and_clear():
    cache = HashGenCacheSet(16)
    assert cache.get(Num(2.0)) is None
    cache.put(Num(2.0))
    assert cache.misses == 2
    cache.clear()
    assert len(cache) == 0
    assert cache.hits == cache.misses == 0


def test_cache_bucket_holds_four_generations():
    cache = HashGenCacheSet(1)
    values = [Num(float(i)) for i in range(5)]
    for value in values:
        cache.put(value)
    assert len(cache) == 4
    assert cache.get(values[0]) is values[0]


def test_zero_sized_cache_interns_nothing():
    cache = HashGenCacheSet(0)
    value = Num(3.0)
    assert cache.put(value) is value
    assert cache.get(value) is None


def test_error_hierarchy():
    assert issubclass(ImmutableError, TypeError)
    assert issubclass(RecordRangeError, IndexError)
    assert issubclass(ScopeOverflowError, InterpreterError)
    assert issubclass(ScopeEmptyError, InterpreterError)
    assert issubclass(InterpreterError, StructureError)


def test_error_details():
    assert RecordRangeError(3).index == 3
    assert RecordRangeError(1, 2).index == (1, 2)
    assert ScopeOverflowError(1025).depth == 1025
    assert "1025" in str(ScopeOverflowError(1025))
    assert ImmutableError("x").item == "x"
