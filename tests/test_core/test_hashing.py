"""Tests for FingerprintHasher."""

import numpy as np
import pytest

from songprint.core.hashing import FingerprintHasher, quantize
from songprint.utils.errors import ConfigurationError, InputError


def test_quantize_rounds_down():
    assert quantize(43) == 42
    assert quantize(42) == 42
    assert quantize(121) == 120
    assert quantize(44, fuzz_factor=5) == 40
    assert quantize(0) == 0


def test_hash_known_value(hasher):
    # 42 + 80*100 + 120*100000 + 180*100000000
    assert hasher.hash([42, 81, 121, 181]) == 18012008042


def test_hash_ignores_points_after_fourth(hasher):
    assert hasher.hash([42, 81, 121, 181, 250]) == hasher.hash([42, 81, 121, 181, 0])


def test_quantization_tolerates_small_drift(hasher):
    assert hasher.hash([43, 81, 121, 181]) == hasher.hash([42, 80, 120, 180])
    assert hasher.hash([44, 80, 120, 180]) != hasher.hash([42, 80, 120, 180])


@pytest.mark.parametrize("fuzz_factor", [1, 2, 3, 5, 10])
@pytest.mark.parametrize("position", [0, 1, 2, 3])
def test_same_bucket_same_hash(fuzz_factor, position):
    hasher = FingerprintHasher(fuzz_factor=fuzz_factor)
    points = [47, 63, 101, 157, 250]
    bucket_start = (points[position] // fuzz_factor) * fuzz_factor

    for drifted in range(bucket_start, bucket_start + fuzz_factor):
        moved = list(points)
        moved[position] = drifted
        assert hasher.hash(moved) == hasher.hash(points)

    moved = list(points)
    moved[position] = bucket_start + fuzz_factor
    assert hasher.hash(moved) != hasher.hash(points)


def test_fuzz_factor_one_is_identity():
    assert FingerprintHasher(fuzz_factor=1).hash([1, 2, 3, 4]) == 400300201


def test_too_few_points_raise(hasher):
    with pytest.raises(InputError) as exc_info:
        hasher.hash([42, 81, 121])
    assert exc_info.value.expected == 4
    assert exc_info.value.actual == 3


@pytest.mark.parametrize("fuzz_factor", [0, -2])
def test_invalid_fuzz_factor(fuzz_factor):
    with pytest.raises(ConfigurationError):
        FingerprintHasher(fuzz_factor=fuzz_factor)


def test_hash_rows_matches_scalar_hash(hasher):
    rng = np.random.default_rng(5)
    rows = rng.integers(0, 300, size=(50, 5))
    expected = [hasher.hash(row) for row in rows]
    assert hasher.hash_rows(rows).tolist() == expected


def test_hash_rows_empty(hasher):
    assert hasher.hash_rows(np.zeros((0, 5), dtype=np.int64)).shape == (0,)


def test_hash_rows_too_narrow(hasher):
    with pytest.raises(InputError):
        hasher.hash_rows(np.ones((3, 3), dtype=np.int64))


def test_hash_is_pure(hasher):
    points = [40, 66, 102, 170, 290]
    assert hasher.hash(points) == hasher.hash(list(points))
    assert points == [40, 66, 102, 170, 290]
