"""多项式系数与组合向量，供指数变换调用。"""
from __future__ import annotations

from functools import lru_cache
from typing import Sequence, Tuple

import math

from sympy.ntheory.multinomial import multinomial_coefficients

Composition = Tuple[int, ...]


@lru_cache(maxsize=None)
def compositions(num_parts: int, order: int) -> Tuple[Tuple[Composition, int], ...]:
    """返回 ``order`` 拆成 ``num_parts`` 个非负整数的全部有序组合及其多项式系数。

    Parameters
    ----------
    num_parts : int
        组合分量个数，必须为正。
    order : int
        分量之和，必须非负。

    Returns
    -------
    tuple
        ``((composition, coefficient), ...)``，按组合的字典序降序排列，
        每个有序组合恰好出现一次。
    """

    if num_parts <= 0:
        raise ValueError("num_parts 必须为正整数。")
    if order < 0:
        raise ValueError("order 必须为非负整数。")

    table = multinomial_coefficients(num_parts, order)
    return tuple(
        (tuple(int(part) for part in comp), int(coeff))
        for comp, coeff in sorted(table.items(), reverse=True)
    )


@lru_cache(maxsize=None)
def _coefficient_table(num_parts: int, order: int) -> dict:
    return dict(compositions(num_parts, order))


def multinomial(parts: Sequence[int]) -> int:
    """``(Σ parts)! / Π parts!``。"""

    parts = tuple(int(p) for p in parts)
    if not parts:
        return 1
    if any(p < 0 for p in parts):
        raise ValueError("组合分量必须非负。")
    return _coefficient_table(len(parts), sum(parts))[parts]


def binomial(n: int, k: int) -> int:
    if k < 0 or k > n:
        return 0
    return math.comb(n, k)


@lru_cache(maxsize=None)
def factorial(n: int) -> int:
    if n < 0:
        raise ValueError("n 必须为非负整数。")
    return math.factorial(n)
