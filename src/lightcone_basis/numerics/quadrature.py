"""高斯求积，用于 μ 分区上的平均。"""
from __future__ import annotations

from typing import Tuple

import math
import numpy as np


def _gauss_legendre_nodes_weights(n: int, tol: float = 1e-14) -> tuple[np.ndarray, np.ndarray]:
    """返回 ``[-1, 1]`` 上 n 点 Gauss-Legendre 求积的节点和权重。"""

    if n <= 0:
        raise ValueError("n 必须为正整数。")

    nodes = np.zeros(n, dtype=float)
    weights = np.zeros(n, dtype=float)
    m = (n + 1) // 2

    for i in range(m):
        # Tricomi 初值
        x = math.cos(math.pi * (i + 0.75) / (n + 0.5))
        dp = 0.0

        for _ in range(100):
            p0 = 1.0
            p1 = x
            for k in range(2, n + 1):
                p0, p1 = p1, ((2 * k - 1) * x * p1 - (k - 1) * p0) / k
            dp = n * (p0 - x * p1) / (1.0 - x * x)
            delta = p1 / dp
            x -= delta
            if abs(delta) < tol:
                break

        if dp == 0.0:
            raise RuntimeError("Gauss-Legendre 节点迭代未能收敛。")

        nodes[i] = -x
        nodes[n - 1 - i] = x
        weight = 2.0 / ((1.0 - x * x) * (dp * dp))
        weights[i] = weight
        weights[n - 1 - i] = weight

    return nodes, weights


def interval_average_rule(lower: float, upper: float, n_points: int) -> Tuple[np.ndarray, np.ndarray]:
    """区间 ``[lower, upper]`` 上求平均值的节点与归一化权重（权重和为 1）。"""

    if upper <= lower:
        raise ValueError("区间上限必须大于下限。")
    x, w = _gauss_legendre_nodes_weights(n_points)
    points = 0.5 * (upper - lower) * x + 0.5 * (upper + lower)
    return points, 0.5 * w
