"""按粒子对排列指数键，用于对称化。

键 ``(x_0..x_{m-1}, y_0..y_{m-1})`` 的第 ``i`` 个粒子为 ``(x_i, y_i)``；
排列时先比较 ``x``，``x`` 相同时再比较 ``y``。全同粒子交换不会产生新的
排列，因此每个不同的排列只被访问一次。
"""
from __future__ import annotations

from typing import Iterator, List, MutableSequence, Sequence, Tuple

from lightcone_basis.errors import ExponentKeyError


def _pair(key: Sequence[int], half: int, index: int) -> Tuple[int, int]:
    return key[index], key[half + index]


def permute_key(key: MutableSequence[int]) -> bool:
    """原地把 ``key`` 变为字典序的下一个排列。

    Returns
    -------
    bool
        产生了新排列时为 ``True``；若 ``key`` 已是最大排列，则将其重置为
        最小排列并返回 ``False``。长度不超过 2 的键没有其他排列，原样返回
        ``False``。
    """

    if len(key) % 2 != 0:
        raise ExponentKeyError(f"指数键长度必须为偶数，实际为 {len(key)}。")
    if len(key) <= 2:
        return False

    half = len(key) // 2
    i = half - 1
    while i > 0:
        i1 = i
        i -= 1
        if _pair(key, half, i) < _pair(key, half, i1):
            i2 = half - 1
            while not _pair(key, half, i) < _pair(key, half, i2):
                i2 -= 1
            key[i], key[i2] = key[i2], key[i]
            key[half + i], key[half + i2] = key[half + i2], key[half + i]
            key[i1:half] = key[i1:half][::-1]
            key[half + i1:] = key[half + i1:][::-1]
            return True

    key[:half] = key[:half][::-1]
    key[half:] = key[half:][::-1]
    return False


def minimal_arrangement(key: Sequence[int]) -> Tuple[int, ...]:
    """按粒子对升序排列后的键。"""

    if len(key) % 2 != 0:
        raise ExponentKeyError(f"指数键长度必须为偶数，实际为 {len(key)}。")
    half = len(key) // 2
    pairs = sorted(_pair(key, half, i) for i in range(half))
    return tuple(p[0] for p in pairs) + tuple(p[1] for p in pairs)


def iter_arrangements(key: Sequence[int]) -> Iterator[Tuple[int, ...]]:
    """从最小排列开始，逐一给出 ``key`` 的全部不同排列。"""

    current: List[int] = list(minimal_arrangement(key))
    yield tuple(current)
    while permute_key(current):
        yield tuple(current)
