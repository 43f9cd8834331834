"""μ 分区离散化。"""

from .mu import (
    Discretization,
    MuDiscretization,
    expand_r,
    interaction_block,
    n_plus_2_block,
    radial_kernel,
)

__all__ = [
    "Discretization",
    "MuDiscretization",
    "expand_r",
    "interaction_block",
    "n_plus_2_block",
    "radial_kernel",
]
