"""单项式指数到积分坐标系的变换。"""

from .exponents import ExponentKey, extract_key, split_key, u_from_x
from .permutations import iter_arrangements, minimal_arrangement, permute_key
from .terms import FinalTerm, IntermediateTerm, YTerm, add_exponents
from .ytilde import (
    eliminate_last_y,
    final_terms,
    intermediate_terms,
    theta_from_ytilde,
    ytilde_from_y,
)

__all__ = [
    "ExponentKey",
    "extract_key",
    "split_key",
    "u_from_x",
    "iter_arrangements",
    "minimal_arrangement",
    "permute_key",
    "FinalTerm",
    "IntermediateTerm",
    "YTerm",
    "add_exponents",
    "eliminate_last_y",
    "final_terms",
    "intermediate_terms",
    "theta_from_ytilde",
    "ytilde_from_y",
]
