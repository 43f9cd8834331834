"""矩阵元计算、矩阵装配与哈密顿量拼装。"""

from .operators import MatrixKind, prefactor
from .terms import InteractionTerm, NPlus2Term
from .combine import combine_final, combine_interaction, combine_n_plus_2
from .elements import EngineCache, MatrixElementEngine
from .assembly import MatrixAssembler
from .hamiltonian import (
    HamiltonianParameters,
    assemble_hamiltonian,
    diagonal_block,
    n_plus_2_block,
)

__all__ = [
    "MatrixKind",
    "prefactor",
    "InteractionTerm",
    "NPlus2Term",
    "combine_final",
    "combine_interaction",
    "combine_n_plus_2",
    "EngineCache",
    "MatrixElementEngine",
    "MatrixAssembler",
    "HamiltonianParameters",
    "assemble_hamiltonian",
    "diagonal_block",
    "n_plus_2_block",
]
