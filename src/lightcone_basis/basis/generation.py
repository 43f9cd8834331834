"""给定粒子数与总次数时枚举全部单项式。"""
from __future__ import annotations

from typing import Iterator, List, Optional, Tuple

from .monomial import Basis, Monomial, Particle


def _iter_particle_multisets(
    n: int,
    degree: int,
    upper: Tuple[int, int],
) -> Iterator[Tuple[Particle, ...]]:
    """以 ``(pm, pt)`` 非增顺序枚举粒子多重集，保证每个多重集只出现一次。"""

    if n == 0:
        if degree == 0:
            yield ()
        return
    # 剩余 n-1 个粒子每个至少占用 1 次
    max_weight = degree - (n - 1)
    for weight in range(max_weight, 0, -1):
        for pm in range(weight, 0, -1):
            pair = (pm, weight - pm)
            # 非增顺序：后续粒子的指数对不超过前一个
            if pair > upper:
                continue
            for rest in _iter_particle_multisets(n - 1, degree - weight, pair):
                yield (Particle(*pair),) + rest


def generate_monomials(n: int, degree: int) -> List[Monomial]:
    """返回所有满足 ``Σ (pm + pt) = degree`` 的 ``n`` 粒子单项式。

    Parameters
    ----------
    n : int
        粒子数，必须为正。
    degree : int
        单项式总次数（纵向指数包含 Dirichlet 因子）。

    Returns
    -------
    list of Monomial
        粒子按 ``(pm, pt)`` 降序排列，结果顺序确定。
    """

    if n < 1:
        raise ValueError("粒子数 n 必须为正整数。")
    if degree < n:
        return []
    return [
        Monomial(particles=particles)
        for particles in _iter_particle_multisets(n, degree, (degree, degree))
    ]


def split_parity(basis: Basis) -> Tuple[Basis, Basis]:
    """按横向总次数的奇偶性拆分基组，返回 ``(even, odd)``。"""

    even = [m for m in basis if m.transverse_degree % 2 == 0]
    odd = [m for m in basis if m.transverse_degree % 2 == 1]
    return Basis(tuple(even)), Basis(tuple(odd))


def generate_basis(n: int, degree: int, parity: Optional[str] = None) -> Basis:
    """生成基组；``parity`` 取 ``"even"``、``"odd"`` 或 ``None``（不区分）。"""

    basis = Basis(tuple(generate_monomials(n, degree)))
    if parity is None:
        return basis
    even, odd = split_parity(basis)
    if parity == "even":
        return even
    if parity == "odd":
        return odd
    raise ValueError("parity 只能取 'even'、'odd' 或 None。")
