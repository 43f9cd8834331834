from itertools import permutations

import pytest

from lightcone_basis.errors import ExponentKeyError
from lightcone_basis.transforms import iter_arrangements, minimal_arrangement, permute_key


def _digits(text):
    return [int(c) for c in text]


@pytest.mark.parametrize(
    "start, expected",
    [
        ("222210", [2, 2, 2, 0, 1, 2]),
        ("210012", [0, 1, 2, 2, 1, 0]),
        ("1010", [0, 1, 0, 1]),
        ("1000", [0, 1, 0, 0]),
        ("221001", [1, 2, 2, 1, 0, 0]),
        ("111111", [1, 1, 1, 1, 1, 1]),
        ("1100", [1, 1, 0, 0]),
    ],
)
def test_maximal_key_wraps_to_minimal(start, expected):
    key = _digits(start)
    assert permute_key(key) is False
    assert key == expected


def test_next_permutation_advances():
    key = [0, 1, 0, 0]
    assert permute_key(key) is True
    assert key == [1, 0, 0, 0]


def test_pairs_compare_y_when_x_ties():
    key = [1, 1, 0, 2]
    assert permute_key(key) is True
    assert key == [1, 1, 2, 0]


def test_short_keys_have_no_other_arrangement():
    key = [3, 4]
    assert permute_key(key) is False
    assert key == [3, 4]
    assert permute_key([]) is False


def test_odd_length_key_rejected():
    with pytest.raises(ExponentKeyError):
        permute_key([1, 2, 3])
    with pytest.raises(ExponentKeyError):
        minimal_arrangement((1, 2, 3))


def test_minimal_arrangement_sorts_pairs():
    assert minimal_arrangement((2, 0, 1, 1, 3, 0)) == (0, 1, 2, 3, 0, 1)


@pytest.mark.parametrize(
    "key",
    [
        (0, 1, 2, 0, 0, 0),
        (1, 1, 0, 0, 1, 0),
        (2, 0, 0, 1, 1, 0, 0, 1),
        (1, 1, 1, 0, 0, 0),
    ],
)
def test_arrangements_visit_each_distinct_permutation_once(key):
    half = len(key) // 2
    pairs = [(key[i], key[half + i]) for i in range(half)]
    expected = {
        tuple(p[0] for p in perm) + tuple(p[1] for p in perm)
        for perm in permutations(pairs)
    }
    visited = list(iter_arrangements(key))
    assert len(visited) == len(set(visited))
    assert set(visited) == expected
    assert visited == sorted(visited, key=lambda k: [(k[i], k[half + i]) for i in range(half)])
