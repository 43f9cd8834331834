"""两个单项式展开组合后的相互作用项。"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from lightcone_basis.transforms.terms import Exponents


@dataclass(frozen=True)
class InteractionTerm:
    """同粒子数相互作用项。

    ``u`` 交错存放 ``(u⁺, u⁻)``：前 ``n-2`` 对为两侧旁观粒子之和，随后是
    左侧与右侧各自最后一对。``theta`` 交错存放 ``(sin, cos)``，共
    ``max(n-3, 0)`` 对。``alpha`` 为含 α 的径向因子 ``(1 - r²/α²)`` 的指数，
    取右侧尾部的 ``ỹ``。
    """

    coefficient: float
    u: Exponents
    theta: Exponents
    r: Tuple[int, int, int]
    alpha: int

    def __post_init__(self) -> None:
        if len(self.u) < 4 or len(self.u) % 2 != 0:
            raise ValueError(f"u 长度非法：{len(self.u)}。")
        n = len(self.u) // 2
        if len(self.theta) != 2 * max(n - 3, 0):
            raise ValueError(
                f"theta 长度应为 {2 * max(n - 3, 0)}，实际为 {len(self.theta)}。"
            )
        if len(self.r) != 3:
            raise ValueError("r 必须包含三个分量。")

    @property
    def n_particles(self) -> int:
        return len(self.u) // 2

    def is_null(self) -> bool:
        """角向积分为零（``r[1]`` 或 ``r[2]`` 为奇数）。"""

        return self.r[1] % 2 == 1 or self.r[2] % 2 == 1

    def radial_exponents(self) -> Tuple[int, int, int]:
        """径向积分实际使用的指数 ``(r0 + n - 3, r1 - 1, alpha - 1)``。

        平移后 ``r1``、``r2`` 为奇数，两个 ``(1 - r²)`` 型因子是半整数次幂。
        """

        r0, r1, _ = self.r
        # α 只出现在 (1 - r²/α²) 因子上，其指数为右侧尾部的 ỹ
        return (r0 + self.n_particles - 3, r1 - 1, self.alpha - 1)


@dataclass(frozen=True)
class NPlus2Term:
    """``n -> n+2`` 相互作用项，``u`` 含 ``n+2`` 对，``r`` 为单个指数。"""

    coefficient: float
    u: Exponents
    theta: Exponents
    r: int

    def __post_init__(self) -> None:
        if len(self.u) < 8 or len(self.u) % 2 != 0:
            raise ValueError(f"u 长度非法：{len(self.u)}。")
        spectators = len(self.u) // 2 - 4
        if len(self.theta) != 2 * max(spectators - 1, 0):
            raise ValueError(
                f"theta 长度应为 {2 * max(spectators - 1, 0)}，实际为 {len(self.theta)}。"
            )

    @property
    def n_particles(self) -> int:
        """较少一侧的粒子数。"""

        return len(self.u) // 2 - 2

    def is_null(self) -> bool:
        return self.r % 2 == 1
