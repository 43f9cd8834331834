"""``y -> ỹ -> θ`` 指数变换。

横向指数的变换是整个流水线中最昂贵的一步：先用多项式展开消去最后
一个粒子的 ``y``（动量守恒 ``y_n = -Σ y_i``），再逐个粒子做二项式与
多项式嵌套展开，最后把 ``ỹ`` 改写为 ``sinθ`` 与 ``cosθ`` 的指数。
"""
from __future__ import annotations

from typing import List, Sequence, Tuple

from lightcone_basis.combinatorics import binomial, compositions
from lightcone_basis.errors import ExponentKeyError
from lightcone_basis.transforms.exponents import split_key, u_from_x
from lightcone_basis.transforms.terms import FinalTerm, IntermediateTerm, YTerm


def eliminate_last_y(y: Sequence[int]) -> Tuple[YTerm, ...]:
    """将 ``y[n-1]`` 展开到前 ``n-1`` 个粒子上。

    对 ``y[n-1]`` 拆成 ``n-1`` 份的每个有序组合 ``c`` 输出一项，系数为
    ``(-1)^{y[n-1]} multinomial(c)``，指数为 ``y[i] + c[i]``。
    """

    n = len(y)
    if n < 2:
        raise ExponentKeyError(f"消去 y_n 至少需要两个粒子，实际为 {n}。")
    last = y[-1]
    sign = -1 if last % 2 == 1 else 1
    return tuple(
        YTerm(
            coefficient=sign * coeff,
            y=tuple(y[i] + comp[i] for i in range(n - 1)),
        )
        for comp, coeff in compositions(n - 1, last)
    )


def _position_terms(i: int, a: int, size: int) -> List[IntermediateTerm]:
    """第 ``i`` 个位置上指数 ``a`` 的全部展开项（向量长度 ``size``）。

    ``j < i`` 处 ``u⁻[j] = a + Σ_{k<j} comp[k]``：位置 ``i`` 的整个指数 ``a``
    都落在其前面每个粒子的 ``u⁻`` 上。
    """

    terms: List[IntermediateTerm] = []
    for l in range(a + 1):
        base = binomial(a, l)
        if (a - l) % 2 == 1:
            base = -base
        for comp, coeff in compositions(i, a - l):
            u_plus = [0] * size
            u_minus = [0] * size
            y_tilde = [0] * size
            running = 0
            for j in range(i):
                u_plus[j] = comp[j]
                y_tilde[j] = comp[j]
                u_minus[j] = a + running
                running += comp[j]
            u_plus[i] = 2 * a - l
            u_minus[i] = l
            y_tilde[i] = l
            terms.append(
                IntermediateTerm(
                    coefficient=base * coeff,
                    u_plus=tuple(u_plus),
                    u_minus=tuple(u_minus),
                    y_tilde=tuple(y_tilde),
                )
            )
    return terms


def ytilde_from_y(y: Sequence[int]) -> Tuple[IntermediateTerm, ...]:
    """``y -> (u±, ỹ)``，返回的每一项向量长度均为 ``n-1``。"""

    output: List[IntermediateTerm] = []
    for y_term in eliminate_last_y(y):
        primed = y_term.y
        size = len(primed)
        first = [0] * size
        first[0] = primed[0]
        running = [
            IntermediateTerm(
                coefficient=y_term.coefficient,
                u_plus=tuple(first),
                u_minus=tuple(first),
                y_tilde=tuple(first),
            )
        ]
        for i in range(1, size):
            a = primed[i]
            if a == 0:
                continue
            factors = _position_terms(i, a, size)
            running = [left * right for left in running for right in factors]
        output.extend(running)
    return tuple(output)


def theta_from_ytilde(terms: Sequence[IntermediateTerm]) -> Tuple[FinalTerm, ...]:
    """``sinθ[i] = Σ_{j>i} ỹ[j]``，``cosθ[i] = ỹ[i]``，``i < n-2``。"""

    output = []
    for term in terms:
        size = len(term.y_tilde)
        sines = tuple(sum(term.y_tilde[i + 1:]) for i in range(size - 1))
        output.append(
            FinalTerm(
                coefficient=term.coefficient,
                u_plus=term.u_plus,
                u_minus=term.u_minus,
                sin_theta=sines,
                cos_theta=tuple(term.y_tilde[: size - 1]),
            )
        )
    return tuple(output)


def intermediate_terms(key: Sequence[int]) -> Tuple[IntermediateTerm, ...]:
    """完整的 ``(x, y) -> (u±, ỹ)`` 展开，``u`` 同时包含 ``x`` 与 ``y`` 的贡献。"""

    x, y = split_key(key)
    u_plus, u_minus = u_from_x(x)
    return tuple(term.shifted(u_plus, u_minus) for term in ytilde_from_y(y))


def final_terms(key: Sequence[int]) -> Tuple[FinalTerm, ...]:
    return theta_from_ytilde(intermediate_terms(key))
