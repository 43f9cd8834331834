"""哈密顿量分块拼装（不做对角化）。

对每个粒子数 ``n`` 给出对角块
``msq * M + Λ² * T + (λ Λ) * V_{n->n}``，粒子数相差 2 的基组之间给出
``(λ Λ) * V_{n->n+2}`` 及其转置，最后合成一个稀疏矩阵。
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Mapping, Optional

import numpy as np
from scipy.sparse import bmat, csr_matrix

from lightcone_basis.basis.monomial import Basis
from lightcone_basis.hamiltonian.assembly import MatrixAssembler


@dataclass(frozen=True)
class HamiltonianParameters:
    """``msq`` 为质量平方，``coupling`` 为 φ⁴ 耦合 λ，``cutoff`` 为能标 Λ。"""

    msq: float = 1.0
    coupling: float = 0.0
    cutoff: float = 1.0

    @property
    def interacting(self) -> bool:
        return self.coupling != 0.0


def diagonal_block(
    assembler: MatrixAssembler,
    basis: Basis,
    partitions: int,
    params: HamiltonianParameters,
    *,
    progress: bool | str | None = None,
) -> np.ndarray:
    mass = assembler.mass_matrix(basis, partitions, progress=progress)
    kinetic = assembler.kinetic_matrix(basis, partitions, progress=progress)
    block = params.msq * mass + (params.cutoff * params.cutoff) * kinetic
    if params.interacting:
        interaction = assembler.interaction_matrix(basis, partitions, progress=progress)
        block = block + (params.coupling * params.cutoff) * interaction
    return block


def n_plus_2_block(
    assembler: MatrixAssembler,
    basis_a: Basis,
    basis_b: Basis,
    partitions: int,
    params: HamiltonianParameters,
    *,
    progress: bool | str | None = None,
) -> np.ndarray:
    block = assembler.n_plus_2_matrix(basis_a, basis_b, partitions, progress=progress)
    return (params.coupling * params.cutoff) * block


def assemble_hamiltonian(
    assembler: MatrixAssembler,
    bases: Mapping[int, Basis],
    partitions: int,
    params: HamiltonianParameters,
    *,
    progress: bool | str | None = None,
) -> csr_matrix:
    """按粒子数升序拼装完整的稀疏哈密顿矩阵。

    Parameters
    ----------
    bases : Mapping[int, Basis]
        粒子数到基组的映射，空基组会被跳过。
    """

    counts = sorted(n for n, basis in bases.items() if len(basis) > 0)
    for n in counts:
        if bases[n].n_particles != n:
            raise ValueError(f"粒子数 {n} 对应的基组实际含 {bases[n].n_particles} 个粒子。")
    if not counts:
        raise ValueError("没有可用的基组。")

    index = {n: k for k, n in enumerate(counts)}
    grid: List[List[Optional[csr_matrix]]] = [[None] * len(counts) for _ in counts]
    for n in counts:
        grid[index[n]][index[n]] = csr_matrix(diagonal_block(
            assembler, bases[n], partitions, params, progress=progress
        ))

    if params.interacting:
        for n in counts:
            if n + 2 not in index:
                continue
            coupling = n_plus_2_block(
                assembler, bases[n], bases[n + 2], partitions, params, progress=progress
            )
            grid[index[n]][index[n + 2]] = csr_matrix(coupling)
            grid[index[n + 2]][index[n]] = csr_matrix(coupling.T)

    return bmat(grid, format="csr")
