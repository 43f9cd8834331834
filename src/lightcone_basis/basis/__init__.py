"""单项式基组的数据结构与生成工具。"""

from .monomial import Basis, Monomial, Particle, as_basis
from .generation import generate_basis, generate_monomials, split_parity

__all__ = [
    "Basis",
    "Monomial",
    "Particle",
    "as_basis",
    "generate_basis",
    "generate_monomials",
    "split_parity",
]
