"""离散光锥量子化单项式基矩阵元计算的核心包。"""

__all__ = [
    "basis",
    "combinatorics",
    "transforms",
    "numerics",
    "hamiltonian",
    "discretization",
    "io",
    "reporting",
]
