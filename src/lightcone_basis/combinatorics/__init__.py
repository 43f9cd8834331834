"""组合数学工具。"""

from .multinomial import binomial, compositions, factorial, multinomial

__all__ = [
    "binomial",
    "compositions",
    "factorial",
    "multinomial",
]
