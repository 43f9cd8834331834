import math
from itertools import permutations

import numpy as np
import pytest

from lightcone_basis.basis import Monomial
from lightcone_basis.errors import NonFiniteElementError, ParticleCountError
from lightcone_basis.hamiltonian import (
    MatrixElementEngine,
    MatrixKind,
    combine_final,
    prefactor,
)
from lightcone_basis.hamiltonian.operators import (
    inner_product_prefactor,
    interaction_prefactor,
    n_plus_2_prefactor,
    normalization_prefactor,
)
from lightcone_basis.hamiltonian.terms import InteractionTerm
from lightcone_basis.numerics import IntegralTables
from lightcone_basis.transforms import FinalTerm, extract_key

U = IntegralTables().u_integral


def mono(pm, pt=None):
    return Monomial.from_exponents(pm, pt)


# ----------------------------------------------------------------------
# 前因子
# ----------------------------------------------------------------------
def test_prefactors_two_particles():
    assert inner_product_prefactor(2) == pytest.approx(1.0 / (16.0 * math.pi))
    assert prefactor(MatrixKind.MASS, 2) == pytest.approx(2.0 / (16.0 * math.pi))
    assert prefactor("kinetic", 2) == prefactor(MatrixKind.INNER, 2)
    assert normalization_prefactor(2) == pytest.approx(1.0 / (8.0 * math.pi))
    assert interaction_prefactor(2) == pytest.approx(1.0 / (256.0 * math.pi ** 2))


def test_n_plus_2_prefactor():
    norm = math.sqrt(normalization_prefactor(3) * normalization_prefactor(5))
    assert n_plus_2_prefactor(3) == pytest.approx(norm * 3 * 10 / (64.0 * math.pi))


def test_prefactor_requires_two_particles():
    with pytest.raises(ValueError):
        inner_product_prefactor(1)


# ----------------------------------------------------------------------
# 直接积分
# ----------------------------------------------------------------------
def test_direct_integral_two_particles(engine):
    term = FinalTerm(1, (0,), (-1,), (), ())
    assert engine.direct_integral(term) == pytest.approx(16.0 / 35.0)


def test_direct_integral_three_particles(engine):
    term = FinalTerm(2.0, (0, 0), (0, 0), (0,), (2,))
    expected = 2.0 * U(3, 8) * U(3, 3) * math.pi
    assert engine.direct_integral(term) == pytest.approx(expected)


def test_direct_integral_odd_angle_vanishes(engine):
    term = FinalTerm(1.0, (0, 0), (0, 0), (1,), (0,))
    assert engine.direct_integral(term) == 0.0


def test_mass_integral_sums_insertions(engine):
    term = FinalTerm(1.0, (4,), (0,), (), ())
    expected = 2.0 * (U(5, 3) + U(7, 1))
    assert engine.mass_integral(term) == pytest.approx(expected)


# ----------------------------------------------------------------------
# 内积与质量矩阵元
# ----------------------------------------------------------------------
def test_inner_product_lowest_monomial(engine):
    a = mono([1, 1])
    assert engine.inner_product(a, a) == pytest.approx(3.0 / 128.0)


def test_inner_product_with_longitudinal_excitation(engine):
    a = mono([2, 1])
    expected = (U(7, 3) + U(5, 5)) / (4.0 * math.pi)
    assert engine.inner_product(a, a) == pytest.approx(expected)


def test_mass_element_with_longitudinal_excitation(engine):
    a = mono([2, 1])
    expected = (2.0 * U(5, 3) + U(7, 1) + U(3, 5)) / (2.0 * math.pi)
    assert engine.mass_element(a, a) == pytest.approx(expected)


def test_kinetic_element_equals_inner_product(engine):
    a = mono([2, 1])
    b = mono([1, 1])
    assert engine.kinetic_element(a, b) == pytest.approx(engine.inner_product(a, b))


def test_coefficients_scale_elements(engine):
    a = Monomial.from_exponents([2, 1], coefficient=3.0)
    b = Monomial.from_exponents([1, 2], coefficient=-0.5)
    plain = engine.inner_product(mono([2, 1]), mono([1, 2]))
    assert engine.inner_product(a, b) == pytest.approx(-1.5 * plain)


def test_inner_product_symmetric_without_transverse_momentum(engine):
    a = mono([3, 1, 1])
    b = mono([2, 2, 1])
    assert engine.inner_product(a, b) == pytest.approx(engine.inner_product(b, a))
    assert engine.mass_element(a, b) == pytest.approx(engine.mass_element(b, a))


@pytest.mark.parametrize(
    "a, b",
    [
        (mono([2, 1, 1], [0, 1, 1]), mono([1, 1, 2], [1, 1, 0])),
        (mono([1, 1, 1], [2, 0, 0]), mono([2, 1, 1], [0, 1, 1])),
        (mono([3, 1, 1], [0, 0, 2]), mono([1, 2, 2], [1, 0, 1])),
    ],
)
def test_direct_elements_symmetric_with_transverse_momentum(engine, a, b):
    assert engine.inner_product(a, b) == pytest.approx(engine.inner_product(b, a), rel=1e-10)
    assert engine.mass_element(a, b) == pytest.approx(engine.mass_element(b, a), rel=1e-10)


def test_inner_product_cauchy_schwarz(engine):
    a = mono([2, 1])
    b = mono([3, 1])
    ab = engine.inner_product(a, b)
    aa = engine.inner_product(a, a)
    bb = engine.inner_product(b, b)
    assert aa > 0.0 and bb > 0.0
    assert ab * ab < aa * bb


def test_inner_product_invariant_under_particle_order(engine):
    # 对右侧遍历全部排列，因此右侧粒子顺序不影响结果
    a = mono([2, 1, 1], [0, 1, 1])
    b1 = mono([1, 2, 1], [2, 0, 0])
    b2 = mono([2, 1, 1], [0, 2, 0])
    assert engine.inner_product(a, b1) == pytest.approx(engine.inner_product(a, b2))


@pytest.mark.parametrize(
    "a, b",
    [
        (mono([2, 1, 1]), mono([1, 1, 2])),
        (mono([2, 1, 1], [0, 1, 1]), mono([1, 1, 2], [1, 1, 0])),
        (mono([1, 1, 1], [2, 0, 0]), mono([1, 1, 1], [1, 1, 0])),
    ],
)
def test_direct_degeneracy_matches_sum_over_all_permutations(engine, a, b):
    n = a.n_particles
    key_a = extract_key(a)
    key_b = extract_key(b)
    half = len(key_b) // 2
    brute = 0.0
    for order in permutations(range(half)):
        permuted = tuple(key_b[i] for i in order) + tuple(key_b[half + i] for i in order)
        for term in combine_final(engine.final_terms(key_a), engine.final_terms(permuted)):
            brute += engine.direct_integral(term)
    expected = math.factorial(n) * prefactor(MatrixKind.INNER, n) * brute
    assert engine.inner_product(a, b) == pytest.approx(expected)


def test_element_dispatch(engine):
    a = mono([2, 1])
    assert engine.element(a, a, "inner") == engine.inner_product(a, a)
    assert engine.element(a, a, MatrixKind.MASS) == engine.mass_element(a, a)
    with pytest.raises(ValueError):
        engine.element(a, a, MatrixKind.INTERACTION)


def test_direct_element_particle_count_mismatch(engine):
    with pytest.raises(ParticleCountError):
        engine.inner_product(mono([1, 1]), mono([1, 1, 1]))


# ----------------------------------------------------------------------
# 相互作用
# ----------------------------------------------------------------------
def test_interaction_lowest_monomial(engine):
    a = mono([1, 1])
    terms = engine.interaction_terms(a, a)
    assert list(terms) == [(0, -1)]
    assert terms[(0, -1)] == pytest.approx(1.0 / 1024.0)


def test_interaction_block_lowest_monomial(engine):
    a = mono([1, 1])
    block = engine.interaction_block(a, a, 3)
    expected = engine.discretization.same_n(0, -1, 3) / 1024.0
    np.testing.assert_allclose(block, expected)


def test_interaction_radial_exponents_are_shifted():
    term = InteractionTerm(1.0, (0,) * 6, (), (2, 4, 2), 2)
    assert term.radial_exponents() == (2, 3, 1)


def test_interaction_keys_follow_particle_count(engine):
    a = mono([1, 1, 1])
    assert list(engine.interaction_terms(a, a)) == [(0, 0)]


@pytest.mark.parametrize(
    "a, b",
    [
        (mono([1, 1], [1, 1]), mono([2, 1])),
        (mono([1, 1, 1], [1, 0, 1]), mono([2, 1, 1])),
    ],
)
def test_interaction_block_swapping_operands_transposes(engine, a, b):
    forward = engine.interaction_block(a, b, 2)
    backward = engine.interaction_block(b, a, 2)
    assert not np.allclose(forward, 0.0)
    np.testing.assert_allclose(forward, backward.T, rtol=1e-9, atol=1e-14)


def test_interaction_three_particles_runs_and_groups(engine):
    a = mono([1, 1, 1], [1, 0, 1])
    b = mono([2, 1, 1])
    terms = engine.interaction_terms(a, b)
    assert terms
    assert all(isinstance(k, tuple) and len(k) == 2 for k in terms)
    assert all(math.isfinite(v) for v in terms.values())


def test_interaction_pruning_does_not_change_result():
    a = mono([1, 1, 1], [1, 0, 1])
    b = mono([1, 2, 1], [0, 2, 0])
    pruned = MatrixElementEngine(prune=True).interaction_terms(a, b)
    full = MatrixElementEngine(prune=False).interaction_terms(a, b)
    assert pruned.keys() == full.keys()
    for key, value in pruned.items():
        assert full[key] == pytest.approx(value)


def test_interaction_particle_count_mismatch(engine):
    with pytest.raises(ParticleCountError):
        engine.interaction_terms(mono([1, 1]), mono([1, 1, 1]))


def test_n_plus_2_lowest_monomials(engine):
    a = mono([1, 1])
    b = mono([1, 1, 1, 1])
    terms = engine.n_plus_2_terms(a, b)
    n2 = 1.0 / (8.0 * math.pi)
    n4 = 2.0 / (24.0 * 512.0 * math.pi ** 5)
    expected = 48.0 * math.sqrt(n2 * n4) * 8.0 / (64.0 * math.pi) * (math.pi / 4.0) ** 4
    assert list(terms) == [0]
    assert terms[0] == pytest.approx(expected)


def test_n_plus_2_block(engine):
    a = mono([1, 1])
    b = mono([1, 1, 1, 1])
    block = engine.n_plus_2_block(a, b, 2)
    expected = engine.n_plus_2_terms(a, b)[0] * engine.discretization.n_plus_2(0, 2)
    np.testing.assert_allclose(block, expected)


def test_n_plus_2_particle_count_mismatch(engine):
    with pytest.raises(ParticleCountError):
        engine.n_plus_2_terms(mono([1, 1]), mono([1, 1, 1]))


# ----------------------------------------------------------------------
# 缓存与非有限值
# ----------------------------------------------------------------------
def test_cache_is_idempotent(engine):
    a = mono([2, 1], [1, 1])
    first = engine.inner_product(a, a)
    sizes = engine.cache.sizes()
    assert engine.inner_product(a, a) == first
    assert engine.cache.sizes() == sizes
    assert engine.final_terms(extract_key(a)) is engine.final_terms(extract_key(a))


def test_engines_do_not_share_caches():
    first = MatrixElementEngine()
    second = MatrixElementEngine()
    first.inner_product(mono([2, 1]), mono([2, 1]))
    assert first.cache.sizes()["final"] > 0
    assert second.cache.sizes()["final"] == 0
    assert len(second.cache.integrals) == 0


def test_non_finite_element_raises_in_strict_mode(engine, monkeypatch):
    monkeypatch.setattr(engine.cache.integrals, "u_integral", lambda a, b: math.inf)
    with pytest.raises(NonFiniteElementError) as info:
        engine.inner_product(mono([1, 1]), mono([1, 1]))
    assert info.value.kind == "inner"
    assert info.value.key_a == (0, 0, 0, 0)
    assert "非有限值" in str(info.value)


def test_non_finite_element_recorded_in_lenient_mode(monkeypatch, capsys):
    engine = MatrixElementEngine(strict=False)
    monkeypatch.setattr(engine.cache.integrals, "u_integral", lambda a, b: math.nan)
    value = engine.mass_element(mono([1, 1]), mono([1, 1]))
    assert math.isnan(value)
    assert len(engine.nonfinite_elements) == 1
    assert engine.nonfinite_elements[0][0] == "mass"
    assert "Warning: non-finite" in capsys.readouterr().out
