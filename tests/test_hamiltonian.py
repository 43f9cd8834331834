import numpy as np
import pytest
from scipy.sparse import issparse

from lightcone_basis.basis import Basis, Monomial
from lightcone_basis.hamiltonian import (
    HamiltonianParameters,
    assemble_hamiltonian,
    diagonal_block,
    n_plus_2_block,
)


def _bases():
    return {
        2: Basis((Monomial.from_exponents([1, 1]), Monomial.from_exponents([2, 1]))),
        4: Basis((Monomial.from_exponents([1, 1, 1, 1]),)),
    }


def test_parameters_interacting_flag():
    assert not HamiltonianParameters().interacting
    assert HamiltonianParameters(coupling=0.5).interacting


def test_free_diagonal_block(assembler):
    basis = _bases()[2]
    params = HamiltonianParameters(msq=2.0, cutoff=3.0)
    block = diagonal_block(assembler, basis, 2, params)
    expected = 2.0 * assembler.mass_matrix(basis, 2) + 9.0 * assembler.kinetic_matrix(basis, 2)
    np.testing.assert_allclose(block, expected)


def test_interacting_diagonal_block(assembler):
    basis = _bases()[2]
    params = HamiltonianParameters(msq=1.0, coupling=0.5, cutoff=2.0)
    block = diagonal_block(assembler, basis, 2, params)
    expected = (
        assembler.mass_matrix(basis, 2)
        + 4.0 * assembler.kinetic_matrix(basis, 2)
        + 1.0 * assembler.interaction_matrix(basis, 2)
    )
    np.testing.assert_allclose(block, expected)


def test_n_plus_2_block_scaled_by_coupling(assembler):
    bases = _bases()
    params = HamiltonianParameters(coupling=0.25, cutoff=2.0)
    block = n_plus_2_block(assembler, bases[2], bases[4], 3, params)
    np.testing.assert_allclose(
        block, 0.5 * assembler.n_plus_2_matrix(bases[2], bases[4], 3)
    )


def test_free_hamiltonian_is_block_diagonal(assembler):
    matrix = assemble_hamiltonian(assembler, _bases(), 2, HamiltonianParameters())
    assert issparse(matrix)
    assert matrix.shape == (6, 6)
    dense = matrix.toarray()
    np.testing.assert_array_equal(dense[:4, 4:], 0.0)
    np.testing.assert_allclose(dense, dense.T)


def test_interacting_hamiltonian_couples_sectors(assembler):
    params = HamiltonianParameters(coupling=1.0)
    matrix = assemble_hamiltonian(assembler, _bases(), 2, params)
    dense = matrix.toarray()
    assert matrix.shape == (6, 6)
    assert np.abs(dense[:4, 4:]).max() > 0.0
    np.testing.assert_allclose(dense, dense.T, rtol=1e-10, atol=1e-15)


def test_single_sector_hamiltonian(assembler):
    bases = {2: _bases()[2]}
    matrix = assemble_hamiltonian(assembler, bases, 3, HamiltonianParameters())
    assert matrix.shape == (6, 6)


def test_empty_bases_are_skipped(assembler):
    bases = {2: _bases()[2], 4: Basis()}
    matrix = assemble_hamiltonian(assembler, bases, 2, HamiltonianParameters(coupling=1.0))
    assert matrix.shape == (4, 4)


def test_hamiltonian_validation(assembler):
    with pytest.raises(ValueError):
        assemble_hamiltonian(assembler, {}, 2, HamiltonianParameters())
    with pytest.raises(ValueError):
        assemble_hamiltonian(assembler, {3: _bases()[2]}, 2, HamiltonianParameters())
