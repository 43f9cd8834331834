"""矩阵种类与只依赖粒子数的归一化前因子。"""
from __future__ import annotations

from enum import Enum
from functools import lru_cache

import math


class MatrixKind(str, Enum):
    INNER = "inner"
    MASS = "mass"
    KINETIC = "kinetic"
    INTERACTION = "interaction"
    N_PLUS_2 = "n_plus_2"

    @property
    def is_direct(self) -> bool:
        return self in (MatrixKind.INNER, MatrixKind.MASS, MatrixKind.KINETIC)


def _check_count(n: int) -> None:
    if n < 2:
        raise ValueError(f"粒子数必须不小于 2，实际为 {n}。")


@lru_cache(maxsize=None)
def inner_product_prefactor(n: int) -> float:
    r"""``1 / (n! 8^{n-1} \pi^{2n-3})``。"""

    _check_count(n)
    return 1.0 / (math.factorial(n) * 8.0 ** (n - 1) * math.pi ** (2 * n - 3))


@lru_cache(maxsize=None)
def mass_prefactor(n: int) -> float:
    return n * inner_product_prefactor(n)


@lru_cache(maxsize=None)
def kinetic_prefactor(n: int) -> float:
    # μ² 的权重由离散化给出
    return inner_product_prefactor(n)


@lru_cache(maxsize=None)
def normalization_prefactor(n: int) -> float:
    r"""``N(n) = 2 / (n! 8^{n-1} \pi^{2n-3})``。"""

    return 2.0 * inner_product_prefactor(n)


@lru_cache(maxsize=None)
def interaction_prefactor(n: int) -> float:
    return normalization_prefactor(n) * n * (n - 1) / (64.0 * math.pi)


@lru_cache(maxsize=None)
def n_plus_2_prefactor(n: int) -> float:
    """``n`` 为粒子数较少一侧。"""

    norm = math.sqrt(normalization_prefactor(n) * normalization_prefactor(n + 2))
    return norm * n * math.comb(n + 2, 3) / (64.0 * math.pi)


def prefactor(kind: MatrixKind, n: int) -> float:
    kind = MatrixKind(kind)
    if kind is MatrixKind.INNER:
        return inner_product_prefactor(n)
    if kind is MatrixKind.MASS:
        return mass_prefactor(n)
    if kind is MatrixKind.KINETIC:
        return kinetic_prefactor(n)
    if kind is MatrixKind.INTERACTION:
        return interaction_prefactor(n)
    return n_plus_2_prefactor(n)
