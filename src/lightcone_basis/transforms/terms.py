"""指数变换各阶段产生的展开项。"""
from __future__ import annotations

from dataclasses import dataclass
from itertools import zip_longest
from typing import Sequence, Tuple

Exponents = Tuple[int, ...]


def add_exponents(a: Sequence[int], b: Sequence[int]) -> Exponents:
    """逐分量相加，较短的向量补零。"""

    return tuple(x + y for x, y in zip_longest(a, b, fillvalue=0))


def _check_length(name: str, values: Sequence[int], expected: int) -> None:
    if len(values) != expected:
        raise ValueError(
            f"{name} 长度应为 {expected}，实际为 {len(values)}。"
        )


@dataclass(frozen=True)
class YTerm:
    """消去最后一个 ``y`` 之后的单项：系数与长度 ``n-1`` 的 ``y'``。"""

    coefficient: int
    y: Exponents


@dataclass(frozen=True)
class IntermediateTerm:
    """``y -> ỹ`` 展开中的一项，三个向量长度均为 ``n-1``。"""

    coefficient: int
    u_plus: Exponents
    u_minus: Exponents
    y_tilde: Exponents

    def __post_init__(self) -> None:
        size = len(self.u_plus)
        _check_length("u_minus", self.u_minus, size)
        _check_length("y_tilde", self.y_tilde, size)

    @property
    def n_particles(self) -> int:
        return len(self.u_plus) + 1

    def __mul__(self, other: "IntermediateTerm") -> "IntermediateTerm":
        return IntermediateTerm(
            coefficient=self.coefficient * other.coefficient,
            u_plus=add_exponents(self.u_plus, other.u_plus),
            u_minus=add_exponents(self.u_minus, other.u_minus),
            y_tilde=add_exponents(self.y_tilde, other.y_tilde),
        )

    def shifted(self, u_plus: Sequence[int], u_minus: Sequence[int]) -> "IntermediateTerm":
        """返回叠加了 ``x`` 贡献的新项。"""

        return IntermediateTerm(
            coefficient=self.coefficient,
            u_plus=add_exponents(self.u_plus, u_plus),
            u_minus=add_exponents(self.u_minus, u_minus),
            y_tilde=self.y_tilde,
        )


@dataclass(frozen=True)
class FinalTerm:
    """直接矩阵元使用的项：``u±`` 长度 ``n-1``，``sinθ``/``cosθ`` 长度 ``n-2``。"""

    coefficient: float
    u_plus: Exponents
    u_minus: Exponents
    sin_theta: Exponents
    cos_theta: Exponents

    def __post_init__(self) -> None:
        size = len(self.u_plus)
        _check_length("u_minus", self.u_minus, size)
        _check_length("sin_theta", self.sin_theta, max(size - 1, 0))
        _check_length("cos_theta", self.cos_theta, max(size - 1, 0))

    @property
    def n_particles(self) -> int:
        return len(self.u_plus) + 1

    def mass_insertions(self) -> Tuple["FinalTerm", ...]:
        """在每个粒子处插入 ``1/x`` 后得到的 ``n`` 个新项。

        第 ``k < n-1`` 个粒子降低 ``u⁺[k]`` 以及全部 ``u⁻[j] (j < k)``；
        最后一个粒子降低全部 ``u⁻``。原项保持不变。
        """

        size = len(self.u_plus)
        states = []
        for k in range(size + 1):
            u_plus = list(self.u_plus)
            u_minus = list(self.u_minus)
            if k < size:
                u_plus[k] -= 2
            for j in range(min(k, size)):
                u_minus[j] -= 2
            states.append(
                FinalTerm(
                    coefficient=self.coefficient,
                    u_plus=tuple(u_plus),
                    u_minus=tuple(u_minus),
                    sin_theta=self.sin_theta,
                    cos_theta=self.cos_theta,
                )
            )
        return tuple(states)
