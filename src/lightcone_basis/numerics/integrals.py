"""``u`` 与 ``θ`` 积分的闭式表达式及其缓存。"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple

import math

from scipy.special import betaln

_PairKey = Tuple[float, float]


def _sorted_pair(a: float, b: float) -> _PairKey:
    a = float(a)
    b = float(b)
    return (a, b) if a <= b else (b, a)


@dataclass
class IntegralTables:
    """``U``、``θ`` 积分的记忆表，键为排序后的指数对。

    两个积分关于参数对称，因此以 ``(min, max)`` 作为键。表项只写入一次，
    之后只读。
    """

    u_cache: Dict[_PairKey, float] = field(default_factory=dict)
    theta_cache: Dict[_PairKey, float] = field(default_factory=dict)

    def u_integral(self, a: float, b: float) -> float:
        r"""``U(a, b) = \int_{-1}^{1} ((1+t)/2)^{a/2} ((1-t)/2)^{b/2} dt = 2 B(a/2+1, b/2+1)``。

        积分变量取 ``t = 2z - 1``，与三角部分一样覆盖完整区间，``U(0, 0) = 2``。
        """

        key = _sorted_pair(a, b)
        value = self.u_cache.get(key)
        if value is None:
            value = 2.0 * math.exp(betaln(key[0] / 2.0 + 1.0, key[1] / 2.0 + 1.0))
            self.u_cache[key] = value
        return value

    def theta_short(self, a: float, b: float) -> float:
        r"""``\int_0^\pi \sin^a θ \cos^b θ dθ``；``b`` 为奇数时为零。"""

        if int(b) % 2 == 1:
            return 0.0
        key = _sorted_pair(a, b)
        value = self.theta_cache.get(key)
        if value is None:
            value = math.exp(betaln((1.0 + key[0]) / 2.0, (1.0 + key[1]) / 2.0))
            self.theta_cache[key] = value
        return value

    def theta_long(self, a: float, b: float) -> float:
        r"""``\int_0^{2\pi} \sin^a θ \cos^b θ dθ``；``a + b`` 为奇数时为零。"""

        if (int(a) + int(b)) % 2 == 1:
            return 0.0
        return 2.0 * self.theta_short(a, b)

    def __len__(self) -> int:
        return len(self.u_cache) + len(self.theta_cache)
