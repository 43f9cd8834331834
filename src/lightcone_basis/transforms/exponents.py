"""指数键的提取与 ``x -> u`` 变换。"""
from __future__ import annotations

from typing import Sequence, Tuple

from lightcone_basis.basis.monomial import Monomial
from lightcone_basis.errors import ExponentKeyError

ExponentKey = Tuple[int, ...]


def extract_key(monomial: Monomial) -> ExponentKey:
    """返回 ``(x_0, ..., x_{n-1}, y_0, ..., y_{n-1})``，其中 ``x = pm - 1``、``y = pt``。

    单项式中存储的纵向指数包含 Dirichlet 因子，这里将其扣除。
    """

    if monomial.n_particles < 1:
        raise ExponentKeyError("单项式至少需要一个粒子。")
    x = tuple(p.pm - 1 for p in monomial.particles)
    y = tuple(p.pt for p in monomial.particles)
    return x + y


def split_key(key: Sequence[int]) -> Tuple[ExponentKey, ExponentKey]:
    if len(key) == 0:
        raise ExponentKeyError("指数键为空。")
    if len(key) % 2 != 0:
        raise ExponentKeyError(f"指数键长度必须为偶数，实际为 {len(key)}。")
    half = len(key) // 2
    return tuple(key[:half]), tuple(key[half:])


def u_from_x(x: Sequence[int]) -> Tuple[ExponentKey, ExponentKey]:
    """``x -> (u⁺, u⁻)``，两者长度均为 ``n-1``。

    ``u⁺[i] = 2 x[i]``；``u⁻[j]`` 收集所有 ``j < i < n-1`` 的 ``2 x[i]``
    以及最后一个粒子的 ``2 x[n-1]``。
    """

    n = len(x)
    if n < 2:
        raise ExponentKeyError(
            f"x -> u 变换至少需要两个粒子，实际为 {n}。"
        )
    u_plus = [2 * x[i] for i in range(n - 1)]
    u_minus = [2 * x[n - 1]] * (n - 1)
    for i in range(n - 1):
        for j in range(i):
            u_minus[j] += 2 * x[i]
    return tuple(u_plus), tuple(u_minus)
