"""单对单项式之间的矩阵元计算。

流程：提取指数键 -> 坐标变换展开（按键缓存）-> 对右侧（相互作用时两侧）
遍历全部不同排列 -> 逐项卷积 -> 闭式积分 -> 乘以简并度与前因子。
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import math

import numpy as np

from lightcone_basis.basis.monomial import Monomial
from lightcone_basis.combinatorics import factorial
from lightcone_basis.discretization.mu import (
    Discretization,
    MuDiscretization,
    RExponent,
    expand_r,
    interaction_block,
    n_plus_2_block,
)
from lightcone_basis.errors import NonFiniteElementError, ParticleCountError
from lightcone_basis.hamiltonian.combine import (
    combine_final,
    combine_interaction,
    combine_n_plus_2,
)
from lightcone_basis.hamiltonian.operators import MatrixKind, prefactor
from lightcone_basis.hamiltonian.terms import InteractionTerm, NPlus2Term
from lightcone_basis.numerics.integrals import IntegralTables
from lightcone_basis.transforms.exponents import ExponentKey, extract_key
from lightcone_basis.transforms.permutations import iter_arrangements
from lightcone_basis.transforms.terms import FinalTerm, IntermediateTerm
from lightcone_basis.transforms.ytilde import intermediate_terms, theta_from_ytilde

_PairKey = Tuple[ExponentKey, ExponentKey]


@dataclass
class EngineCache:
    """单个引擎实例独占的缓存；表项只写一次。"""

    intermediate: Dict[ExponentKey, Tuple[IntermediateTerm, ...]] = field(default_factory=dict)
    final: Dict[ExponentKey, Tuple[FinalTerm, ...]] = field(default_factory=dict)
    interaction: Dict[_PairKey, Tuple[InteractionTerm, ...]] = field(default_factory=dict)
    n_plus_2: Dict[_PairKey, Tuple[NPlus2Term, ...]] = field(default_factory=dict)
    r_expansions: Dict[RExponent, Dict[Tuple[int, int], int]] = field(default_factory=dict)
    integrals: IntegralTables = field(default_factory=IntegralTables)

    def sizes(self) -> Dict[str, int]:
        return {
            "intermediate": len(self.intermediate),
            "final": len(self.final),
            "interaction": len(self.interaction),
            "n_plus_2": len(self.n_plus_2),
            "r_expansions": len(self.r_expansions),
            "u_integrals": len(self.integrals.u_cache),
            "theta_integrals": len(self.integrals.theta_cache),
        }


def _degeneracy(monomial: Monomial) -> int:
    out = 1
    for count in monomial.count_identical():
        out *= factorial(count)
    return out


@dataclass
class MatrixElementEngine:
    """计算内积、质量、动能以及两类相互作用矩阵元。

    Parameters
    ----------
    discretization : Discretization
        把相互作用的连续矩阵元变成离散块的实现。
    strict : bool
        为 ``True`` 时遇到非有限积分值直接抛出 :class:`NonFiniteElementError`；
        否则打印警告并记录在 ``nonfinite_elements`` 中。
    prune : bool
        是否在组合后立即丢弃积分为零的奇宇称项。
    """

    discretization: Discretization = field(default_factory=MuDiscretization)
    strict: bool = True
    prune: bool = True
    cache: EngineCache = field(default_factory=EngineCache)
    nonfinite_elements: List[Tuple[str, ExponentKey, ExponentKey, float]] = field(
        init=False, default_factory=list
    )

    # ------------------------------------------------------------------
    # 展开项缓存
    # ------------------------------------------------------------------
    def intermediate_terms(self, key: ExponentKey) -> Tuple[IntermediateTerm, ...]:
        key = tuple(key)
        terms = self.cache.intermediate.get(key)
        if terms is None:
            terms = intermediate_terms(key)
            self.cache.intermediate[key] = terms
        return terms

    def final_terms(self, key: ExponentKey) -> Tuple[FinalTerm, ...]:
        key = tuple(key)
        terms = self.cache.final.get(key)
        if terms is None:
            terms = theta_from_ytilde(self.intermediate_terms(key))
            self.cache.final[key] = terms
        return terms

    def interaction_combined(self, key_a: ExponentKey, key_b: ExponentKey) -> Tuple[InteractionTerm, ...]:
        pair = (tuple(key_a), tuple(key_b))
        terms = self.cache.interaction.get(pair)
        if terms is None:
            terms = combine_interaction(
                self.intermediate_terms(pair[0]),
                self.intermediate_terms(pair[1]),
                prune=self.prune,
            )
            self.cache.interaction[pair] = terms
        return terms

    def n_plus_2_combined(self, key_a: ExponentKey, key_b: ExponentKey) -> Tuple[NPlus2Term, ...]:
        pair = (tuple(key_a), tuple(key_b))
        terms = self.cache.n_plus_2.get(pair)
        if terms is None:
            terms = combine_n_plus_2(
                self.intermediate_terms(pair[0]),
                self.intermediate_terms(pair[1]),
                prune=self.prune,
            )
            self.cache.n_plus_2[pair] = terms
        return terms

    def r_expansion(self, r: RExponent) -> Dict[Tuple[int, int], int]:
        r = tuple(int(v) for v in r)
        table = self.cache.r_expansions.get(r)
        if table is None:
            table = expand_r(r)
            self.cache.r_expansions[r] = table
        return table

    # ------------------------------------------------------------------
    # 积分
    # ------------------------------------------------------------------
    def direct_integral(self, term: FinalTerm) -> float:
        tables = self.cache.integrals
        n = term.n_particles
        output = float(term.coefficient)
        for i in range(n - 1):
            output *= tables.u_integral(
                term.u_plus[i] + 3, term.u_minus[i] + 5 * (n - i) - 7
            )
        if n >= 3:
            for i in range(n - 3):
                output *= tables.theta_short(
                    term.sin_theta[i] + n - i - 3, term.cos_theta[i]
                )
            output *= tables.theta_long(term.sin_theta[n - 3], term.cos_theta[n - 3])
        else:
            # n = 2 时没有 θ 积分
            output *= 2.0
        return output

    def mass_integral(self, term: FinalTerm) -> float:
        """对每个粒子处的 ``1/x`` 插入求和。"""

        return sum(self.direct_integral(state) for state in term.mass_insertions())

    def interaction_integral(self, term: InteractionTerm) -> float:
        tables = self.cache.integrals
        pairs = len(term.u) // 2
        u = list(term.u)
        theta = list(term.theta)
        for i in range(pairs - 2):
            u[2 * i] += 3
            u[2 * i + 1] += 5 * (pairs - i) - 3
        for i in range(len(u) - 4, len(u)):
            u[i] += 1
        for k in range(pairs - 4):
            theta[2 * k] += pairs - k - 3

        product = float(term.coefficient)
        for i in range(pairs):
            product *= tables.u_integral(u[2 * i], u[2 * i + 1])
        for k in range(pairs - 3):
            product *= tables.theta_short(theta[2 * k], theta[2 * k + 1])
        return product

    def n_plus_2_integral(self, term: NPlus2Term) -> float:
        tables = self.cache.integrals
        pairs = len(term.u) // 2
        spectators = pairs - 4
        u = list(term.u)
        theta = list(term.theta)
        for i in range(spectators):
            u[2 * i] += 3
            u[2 * i + 1] += 5 * (pairs - i) - 4
        for i in range(len(u) - 8, len(u)):
            u[i] += 1
        for k in range(spectators - 2):
            theta[2 * k] += spectators - k - 1

        product = float(term.coefficient)
        for i in range(pairs):
            product *= tables.u_integral(u[2 * i], u[2 * i + 1])
        for k in range(spectators - 1):
            product *= tables.theta_short(theta[2 * k], theta[2 * k + 1])
        return product

    # ------------------------------------------------------------------
    # 矩阵元
    # ------------------------------------------------------------------
    def _check_finite(
        self,
        kind: MatrixKind,
        key_a: ExponentKey,
        key_b: ExponentKey,
        value: float,
    ) -> float:
        if math.isfinite(value):
            return value
        if self.strict:
            raise NonFiniteElementError(kind.value, key_a, key_b, value)
        print(f"Warning: non-finite {kind.value} element {value!r} for {key_a} x {key_b}")
        self.nonfinite_elements.append((kind.value, key_a, key_b, value))
        return value

    def _direct_element(self, a: Monomial, b: Monomial, kind: MatrixKind) -> float:
        n = a.n_particles
        if b.n_particles != n:
            raise ParticleCountError(
                f"{kind.value} 矩阵元要求粒子数相同：{n} 与 {b.n_particles}。"
            )
        degeneracy = factorial(n) * _degeneracy(b)
        key_a = extract_key(a)
        key_b = extract_key(b)
        terms_a = self.final_terms(key_a)
        integrate = self.mass_integral if kind is MatrixKind.MASS else self.direct_integral

        total = 0.0
        for arrangement in iter_arrangements(key_b):
            for term in combine_final(terms_a, self.final_terms(arrangement)):
                total += integrate(term)
        value = degeneracy * a.coefficient * b.coefficient * prefactor(kind, n) * total
        return self._check_finite(kind, key_a, key_b, value)

    def inner_product(self, a: Monomial, b: Monomial) -> float:
        return self._direct_element(a, b, MatrixKind.INNER)

    def mass_element(self, a: Monomial, b: Monomial) -> float:
        return self._direct_element(a, b, MatrixKind.MASS)

    def kinetic_element(self, a: Monomial, b: Monomial) -> float:
        """动能矩阵元的连续部分；μ² 因子在离散化时加入。"""

        return self._direct_element(a, b, MatrixKind.KINETIC)

    def interaction_terms(self, a: Monomial, b: Monomial) -> Dict[Tuple[int, int], float]:
        """同粒子数相互作用，按 ``(α 指数, r 指数)`` 分组的连续矩阵元。"""

        n = a.n_particles
        if b.n_particles != n:
            raise ParticleCountError(
                f"同粒子数相互作用要求粒子数相同：{n} 与 {b.n_particles}。"
            )
        key_a = extract_key(a)
        key_b = extract_key(b)
        scale = (
            _degeneracy(a) * _degeneracy(b) * a.coefficient * b.coefficient
            * prefactor(MatrixKind.INTERACTION, n)
        )

        grouped: Dict[Tuple[int, int], float] = defaultdict(float)
        for arrangement_a in iter_arrangements(key_a):
            for arrangement_b in iter_arrangements(key_b):
                for term in self.interaction_combined(arrangement_a, arrangement_b):
                    value = self._check_finite(
                        MatrixKind.INTERACTION, key_a, key_b,
                        self.interaction_integral(term),
                    )
                    if value == 0.0:
                        continue
                    radial = self.r_expansion(term.radial_exponents())
                    for group, coeff in radial.items():
                        grouped[group] += scale * value * coeff
        return dict(sorted(grouped.items()))

    def n_plus_2_terms(self, a: Monomial, b: Monomial) -> Dict[int, float]:
        """``n -> n+2`` 相互作用，按 ``r`` 指数分组；``a`` 为粒子数较少的一侧。"""

        n = a.n_particles
        if b.n_particles != n + 2:
            raise ParticleCountError(
                f"n -> n+2 相互作用要求右侧多两个粒子：{n} 与 {b.n_particles}。"
            )
        key_a = extract_key(a)
        key_b = extract_key(b)
        scale = (
            _degeneracy(a) * _degeneracy(b) * a.coefficient * b.coefficient
            * prefactor(MatrixKind.N_PLUS_2, n)
        )

        grouped: Dict[int, float] = defaultdict(float)
        for arrangement_a in iter_arrangements(key_a):
            for arrangement_b in iter_arrangements(key_b):
                for term in self.n_plus_2_combined(arrangement_a, arrangement_b):
                    value = self._check_finite(
                        MatrixKind.N_PLUS_2, key_a, key_b,
                        self.n_plus_2_integral(term),
                    )
                    if value != 0.0:
                        grouped[term.r] += scale * value
        return dict(sorted(grouped.items()))

    def interaction_block(self, a: Monomial, b: Monomial, partitions: int) -> np.ndarray:
        return interaction_block(self.discretization, self.interaction_terms(a, b), partitions)

    def n_plus_2_block(self, a: Monomial, b: Monomial, partitions: int) -> np.ndarray:
        return n_plus_2_block(self.discretization, self.n_plus_2_terms(a, b), partitions)

    def element(self, a: Monomial, b: Monomial, kind: MatrixKind | str) -> float:
        """直接类矩阵元的统一入口。"""

        kind = MatrixKind(kind)
        if not kind.is_direct:
            raise ValueError(f"{kind.value} 不是标量矩阵元，请使用对应的 block 方法。")
        return self._direct_element(a, b, kind)
