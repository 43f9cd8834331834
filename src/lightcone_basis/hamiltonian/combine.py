"""两个单项式展开的逐项卷积。"""
from __future__ import annotations

from typing import List, Sequence, Tuple

from lightcone_basis.errors import ParticleCountError
from lightcone_basis.hamiltonian.terms import InteractionTerm, NPlus2Term
from lightcone_basis.transforms.terms import FinalTerm, IntermediateTerm, add_exponents


def combine_final(
    terms_a: Sequence[FinalTerm],
    terms_b: Sequence[FinalTerm],
) -> Tuple[FinalTerm, ...]:
    """直接矩阵元的笛卡尔积：系数相乘、各指数向量相加。"""

    return tuple(
        FinalTerm(
            coefficient=ta.coefficient * tb.coefficient,
            u_plus=add_exponents(ta.u_plus, tb.u_plus),
            u_minus=add_exponents(ta.u_minus, tb.u_minus),
            sin_theta=add_exponents(ta.sin_theta, tb.sin_theta),
            cos_theta=add_exponents(ta.cos_theta, tb.cos_theta),
        )
        for ta in terms_a
        for tb in terms_b
    )


def _interleaved_theta(y_a: Sequence[int], y_b: Sequence[int], spectators: int) -> Tuple[int, ...]:
    # 旁观粒子上的 (sin, cos) 交错排列
    summed = [y_a[j] + y_b[j] for j in range(spectators)]
    theta: List[int] = []
    for i in range(spectators - 1):
        theta.append(sum(summed[i + 1:spectators]))
        theta.append(summed[i])
    return tuple(theta)


def combine_interaction_pair(f1: IntermediateTerm, f2: IntermediateTerm) -> InteractionTerm:
    size = len(f1.u_plus)
    if len(f2.u_plus) != size:
        raise ParticleCountError(
            f"同粒子数相互作用要求两侧粒子数相同：{size + 1} 与 {len(f2.u_plus) + 1}。"
        )
    spectators = size - 1
    u: List[int] = []
    for i in range(spectators):
        u.append(f1.u_plus[i] + f2.u_plus[i])
        u.append(f1.u_minus[i] + f2.u_minus[i])
    u.extend((f1.u_plus[-1], f1.u_minus[-1], f2.u_plus[-1], f2.u_minus[-1]))
    r0 = sum(f1.y_tilde[i] + f2.y_tilde[i] for i in range(spectators))
    return InteractionTerm(
        coefficient=f1.coefficient * f2.coefficient,
        u=tuple(u),
        theta=_interleaved_theta(f1.y_tilde, f2.y_tilde, spectators),
        r=(r0, f1.y_tilde[-1], f2.y_tilde[-1]),
        alpha=f2.y_tilde[-1],
    )


def combine_interaction(
    terms_a: Sequence[IntermediateTerm],
    terms_b: Sequence[IntermediateTerm],
    *,
    prune: bool = True,
) -> Tuple[InteractionTerm, ...]:
    """同粒子数相互作用的组合；``prune`` 时丢弃 ``r[1]``、``r[2]`` 为奇数的项。"""

    combined = (combine_interaction_pair(f1, f2) for f1 in terms_a for f2 in terms_b)
    if prune:
        return tuple(term for term in combined if not term.is_null())
    return tuple(combined)


def combine_n_plus_2_pair(f1: IntermediateTerm, f2: IntermediateTerm) -> NPlus2Term:
    size_a = len(f1.u_plus)
    size_b = len(f2.u_plus)
    if size_b != size_a + 2:
        raise ParticleCountError(
            f"n -> n+2 相互作用要求粒子数相差 2：{size_a + 1} 与 {size_b + 1}。"
        )
    spectators = size_a - 1
    u: List[int] = []
    for i in range(spectators):
        u.append(f1.u_plus[i] + f2.u_plus[i])
        u.append(f1.u_minus[i] + f2.u_minus[i])
    u.extend((f1.u_plus[-1], f1.u_minus[-1]))
    for i in range(spectators, size_b):
        u.extend((f2.u_plus[i], f2.u_minus[i]))
    return NPlus2Term(
        coefficient=f1.coefficient * f2.coefficient,
        u=tuple(u),
        theta=_interleaved_theta(f1.y_tilde, f2.y_tilde, spectators),
        r=sum(f1.y_tilde) + sum(f2.y_tilde),
    )


def combine_n_plus_2(
    terms_a: Sequence[IntermediateTerm],
    terms_b: Sequence[IntermediateTerm],
    *,
    prune: bool = True,
) -> Tuple[NPlus2Term, ...]:
    """``n -> n+2`` 组合；``terms_a`` 来自粒子数较少的一侧。"""

    combined = (combine_n_plus_2_pair(f1, f2) for f1 in terms_a for f2 in terms_b)
    if prune:
        return tuple(term for term in combined if not term.is_null())
    return tuple(combined)
