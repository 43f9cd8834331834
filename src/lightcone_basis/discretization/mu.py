"""μ 分区离散化：把连续矩阵元变成 ``partitions x partitions`` 块。

μ 以截断能标为单位取值于 ``[0, 1]``，等宽分成 ``partitions`` 个区间，
每个区间态在 μ² 上均匀归一化。

同粒子数相互作用的径向积分带有 ``(1-r²)^{-1/2} (1-r²/α²)^{-1/2}`` 核心，
对 ``r`` 的积分用超几何函数闭式完成；区间平均把二维的 ``(μ_行², μ_列²)``
积分化为对 ``t = α²`` 的一维积分，在 ``α = 1`` 处的对数奇点交给
``scipy.integrate.quad`` 处理。``n -> n+2`` 的区间平均仍使用 μ² 上的
Gauss-Legendre 求积。
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Mapping, Protocol, Tuple

import numpy as np
from scipy.integrate import quad
from scipy.special import betaln, hyp2f1

from lightcone_basis.combinatorics import binomial
from lightcone_basis.numerics.quadrature import interval_average_rule

RExponent = Tuple[int, int, int]

_WINDOW_EPSREL = 1e-10
_WINDOW_LIMIT = 200


class Discretization(Protocol):
    """矩阵装配所需的离散化接口。"""

    def direct(self, partitions: int) -> np.ndarray: ...

    def kinetic(self, partitions: int) -> np.ndarray: ...

    def same_n(self, alpha_exp: int, r_exp: int, partitions: int) -> np.ndarray: ...

    def n_plus_2(self, r_exp: int, partitions: int) -> np.ndarray: ...


def expand_r(r: RExponent) -> Dict[Tuple[int, int], int]:
    r"""展开 ``r^{r0} (1-r^2)^{r1/2} (1-r^2/α^2)^{r2/2}`` 的多项式部分。

    ``r`` 为已平移的径向指数，``r1``、``r2`` 为奇数，即半整数次幂。把
    ``(1-r^2)^{r1/2}`` 写成 ``(1-r^2)^{(r1+1)/2} (1-r^2)^{-1/2}``，``r2`` 同理，
    对两个整数次幂做二项式展开；``-1/2`` 次的核心由 :func:`radial_kernel`
    积分。第 ``(i, j)`` 项记在 ``(i - j, r0 + 2i + 2j)`` 下：``α^{-2j}`` 与
    窗口的对称归一化 ``α^{-(r0+2)/2}`` 合并后 α 的指数恰为 ``i - j``。

    ``r1`` 或 ``r2`` 为偶数对应平移前的奇数指数，角向积分为零，返回空表。
    """

    r0, r1, r2 = (int(v) for v in r)
    if r1 % 2 == 0 or r2 % 2 == 0:
        return {}
    half1 = (r1 + 1) // 2
    half2 = (r2 + 1) // 2
    table: Dict[Tuple[int, int], int] = {}
    for i in range(half1 + 1):
        for j in range(half2 + 1):
            coeff = binomial(half1, i) * binomial(half2, j)
            if (i + j) % 2 == 1:
                coeff = -coeff
            key = (i - j, r0 + 2 * i + 2 * j)
            table[key] = table.get(key, 0) + coeff
    return table


def radial_kernel(r_exp: int, alpha):
    r"""``G_b(α) = α^{-(b+2)/2} \int_0^{\min(1,α)} r^{b+1} (1-r^2)^{-1/2} (1-r^2/α^2)^{-1/2} dr``。

    记 ``γ = min(α, 1/α)``，``c = b/2 + 1``，闭式为
    ``½ B(c, ½) γ^c ₂F₁(½, c; c+½; γ²)``，满足 ``G_b(α) = G_b(1/α)``。
    ``α = 1`` 处对数发散。
    """

    alpha = np.asarray(alpha, dtype=float)
    gamma = np.minimum(alpha, 1.0 / alpha)
    c = r_exp / 2.0 + 1.0
    return 0.5 * np.exp(betaln(c, 0.5)) * gamma ** c * hyp2f1(0.5, c, c + 0.5, gamma * gamma)


def _kernel_at(alpha_exp: int, r_exp: int, t: float) -> float:
    # t = α²
    return t ** (alpha_exp / 2.0) * float(radial_kernel(r_exp, math.sqrt(t)))


def _window_below(alpha_exp: int, r_exp: int, x0: float, x1: float, y0: float, y1: float) -> float:
    """行区间 ``[x0, x1]`` 整体位于列区间 ``[y0, y1]`` 之下（μ² 坐标）。"""

    def integrand(t: float) -> float:
        upper = min(y1, x1 / t)
        lower = y0 if x0 == 0.0 else max(y0, x0 / t)
        return _kernel_at(alpha_exp, r_exp, t) * 0.5 * (upper * upper - lower * lower)

    lo = x0 / y1
    hi = x1 / y0
    points = sorted({p for p in (x0 / y0, x1 / y1) if lo < p < hi})
    value, _ = quad(
        integrand, lo, hi, points=points or None,
        epsabs=0.0, epsrel=_WINDOW_EPSREL, limit=_WINDOW_LIMIT,
    )
    return value / ((x1 - x0) * (y1 - y0))


def _window_diagonal(alpha_exp: int, r_exp: int, x0: float, x1: float) -> float:
    """同一区间：``x < y`` 与 ``x > y`` 两半分别换元到 ``s = x/y`` 与 ``y/x``。"""

    def integrand(s: float) -> float:
        weight = x1 * x1 if x0 == 0.0 else x1 * x1 - (x0 / s) ** 2
        both = s ** (alpha_exp / 2.0) + s ** (-alpha_exp / 2.0)
        return 0.5 * weight * both * float(radial_kernel(r_exp, math.sqrt(s)))

    value, _ = quad(
        integrand, x0 / x1, 1.0,
        epsabs=0.0, epsrel=_WINDOW_EPSREL, limit=_WINDOW_LIMIT,
    )
    return value / (x1 - x0) ** 2


def _check_partitions(partitions: int) -> int:
    partitions = int(partitions)
    if partitions < 1:
        raise ValueError("partitions 必须为正整数。")
    return partitions


@dataclass
class MuDiscretization:
    """默认的 μ 离散化实现。

    Parameters
    ----------
    quadrature_order : int
        ``n -> n+2`` 区间平均在每个区间 μ² 上使用的 Gauss-Legendre 点数。
    """

    quadrature_order: int = 8
    _rules: Dict[int, Tuple[np.ndarray, np.ndarray]] = field(
        init=False, default_factory=dict, repr=False
    )
    _blocks: Dict[Tuple[str, int, int, int], np.ndarray] = field(
        init=False, default_factory=dict, repr=False
    )

    def __post_init__(self) -> None:
        if self.quadrature_order < 1:
            raise ValueError("quadrature_order 必须为正整数。")

    def bin_edges(self, partitions: int) -> np.ndarray:
        partitions = _check_partitions(partitions)
        return np.linspace(0.0, 1.0, partitions + 1)

    def _bin_rule(self, partitions: int) -> Tuple[np.ndarray, np.ndarray]:
        """各区间的 μ 节点与归一化权重，形状 ``(partitions, order)``。"""

        rule = self._rules.get(partitions)
        if rule is None:
            edges = self.bin_edges(partitions)
            mus = np.empty((partitions, self.quadrature_order), dtype=float)
            weights = np.empty_like(mus)
            for k in range(partitions):
                s, w = interval_average_rule(
                    edges[k] ** 2, edges[k + 1] ** 2, self.quadrature_order
                )
                mus[k] = np.sqrt(s)
                weights[k] = w
            rule = (mus, weights)
            self._rules[partitions] = rule
        return rule

    def _ratio(self, partitions: int) -> Tuple[np.ndarray, np.ndarray]:
        mus, weights = self._bin_rule(partitions)
        mu1 = mus[:, :, None, None]
        mu2 = mus[None, None, :, :]
        alpha = np.minimum(mu1, mu2) / np.maximum(mu1, mu2)
        return alpha, weights

    def _average(self, values: np.ndarray, weights: np.ndarray) -> np.ndarray:
        return np.einsum("aibj,ai,bj->ab", values, weights, weights)

    def direct(self, partitions: int) -> np.ndarray:
        """内积与质量矩阵：区间态正交归一。"""

        return np.eye(_check_partitions(partitions))

    def kinetic(self, partitions: int) -> np.ndarray:
        """``diag(<μ²>_k)``，μ² 均匀测度下 ``<μ²> = (a² + b²) / 2``。"""

        edges = self.bin_edges(partitions)
        return np.diag(0.5 * (edges[:-1] ** 2 + edges[1:] ** 2))

    def same_n(self, alpha_exp: int, r_exp: int, partitions: int) -> np.ndarray:
        r"""``<α^{a} G_b(α)>``，``α = μ_行 / μ_列``。

        行区间在列区间之下、相同、之上三种情形分别处理；之上的情形等于
        ``-a`` 在转置位置上的值，因此 ``same_n(a, b) = same_n(-a, b).T``。
        """

        partitions = _check_partitions(partitions)
        key = ("same_n", int(alpha_exp), int(r_exp), partitions)
        block = self._blocks.get(key)
        if block is None:
            if r_exp < -1:
                raise ValueError(f"r 指数不能小于 -1，实际为 {r_exp}。")
            if abs(alpha_exp) >= (r_exp + 6) / 2.0:
                raise ValueError(f"α 指数 {alpha_exp} 与 r 指数 {r_exp} 使积分发散。")
            edges = self.bin_edges(partitions) ** 2
            block = np.empty((partitions, partitions), dtype=float)
            for row in range(partitions):
                for col in range(partitions):
                    if row == col:
                        block[row, col] = _window_diagonal(
                            alpha_exp, r_exp, edges[row], edges[row + 1]
                        )
                    elif row < col:
                        block[row, col] = _window_below(
                            alpha_exp, r_exp,
                            edges[row], edges[row + 1], edges[col], edges[col + 1],
                        )
                    else:
                        block[row, col] = _window_below(
                            -alpha_exp, r_exp,
                            edges[col], edges[col + 1], edges[row], edges[row + 1],
                        )
            self._blocks[key] = block
        return block

    def n_plus_2(self, r_exp: int, partitions: int) -> np.ndarray:
        r"""``<α^{r+1} / (r+1)>``。"""

        partitions = _check_partitions(partitions)
        key = ("n_plus_2", 0, int(r_exp), partitions)
        block = self._blocks.get(key)
        if block is None:
            if r_exp < 0:
                raise ValueError("r 指数必须非负。")
            alpha, weights = self._ratio(partitions)
            block = self._average(alpha ** (r_exp + 1) / (r_exp + 1), weights)
            self._blocks[key] = block
        return block


def interaction_block(
    discretization: Discretization,
    terms: Mapping[Tuple[int, int], float],
    partitions: int,
) -> np.ndarray:
    """按 ``(α, r)`` 分组的连续矩阵元求和得到离散块。"""

    block = np.zeros((partitions, partitions), dtype=float)
    for (alpha_exp, r_exp), coeff in terms.items():
        if coeff == 0.0:
            continue
        block += coeff * discretization.same_n(alpha_exp, r_exp, partitions)
    return block


def n_plus_2_block(
    discretization: Discretization,
    terms: Mapping[int, float],
    partitions: int,
) -> np.ndarray:
    block = np.zeros((partitions, partitions), dtype=float)
    for r_exp, coeff in terms.items():
        if coeff == 0.0:
            continue
        block += coeff * discretization.n_plus_2(r_exp, partitions)
    return block
