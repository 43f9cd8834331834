import pytest

from lightcone_basis.basis import Monomial
from lightcone_basis.errors import ExponentKeyError
from lightcone_basis.transforms import (
    FinalTerm,
    IntermediateTerm,
    add_exponents,
    eliminate_last_y,
    extract_key,
    final_terms,
    intermediate_terms,
    split_key,
    theta_from_ytilde,
    u_from_x,
    ytilde_from_y,
)


def _as_tuples(terms):
    return sorted(
        (t.coefficient, t.u_plus, t.u_minus, t.y_tilde) for t in terms
    )


def test_extract_key_removes_dirichlet_factor():
    mono = Monomial.from_exponents([2, 1, 3], [0, 1, 2])
    assert extract_key(mono) == (1, 0, 2, 0, 1, 2)


def test_split_key():
    assert split_key((1, 0, 2, 3)) == ((1, 0), (2, 3))
    with pytest.raises(ExponentKeyError):
        split_key(())
    with pytest.raises(ExponentKeyError):
        split_key((1, 2, 3))


def test_u_from_x():
    assert u_from_x((1, 2, 3)) == ((2, 4), (10, 6))
    assert u_from_x((0, 0)) == ((0,), (0,))
    assert u_from_x((1, 0, 0, 2)) == ((2, 0, 0), (4, 4, 4))


def test_u_from_x_needs_two_particles():
    with pytest.raises(ExponentKeyError):
        u_from_x((3,))


def test_add_exponents_zero_extends():
    assert add_exponents((1, 2), (3,)) == (4, 2)
    assert add_exponents((), (1, 1)) == (1, 1)


def test_eliminate_last_y():
    terms = eliminate_last_y((1, 0, 1))
    assert [(t.coefficient, t.y) for t in terms] == [(-1, (2, 0)), (-1, (1, 1))]


def test_eliminate_last_y_even_power_keeps_sign():
    terms = eliminate_last_y((0, 2))
    assert [(t.coefficient, t.y) for t in terms] == [(1, (2,))]


def test_eliminate_last_y_without_last_exponent():
    terms = eliminate_last_y((3, 1, 0))
    assert [(t.coefficient, t.y) for t in terms] == [(1, (3, 1))]


def test_eliminate_last_y_needs_two_particles():
    with pytest.raises(ExponentKeyError):
        eliminate_last_y((2,))


def test_ytilde_single_transverse_exponent():
    terms = ytilde_from_y((0, 1, 0))
    assert _as_tuples(terms) == [
        (-1, (1, 2), (1, 0), (1, 0)),
        (1, (0, 1), (1, 1), (0, 1)),
    ]


def test_ytilde_preceding_u_minus_carries_full_exponent():
    terms = ytilde_from_y((0, 2, 0))
    assert _as_tuples(terms) == [
        (-2, (1, 3), (2, 1), (1, 1)),
        (1, (0, 2), (2, 2), (0, 2)),
        (1, (2, 4), (2, 0), (2, 0)),
    ]


def test_ytilde_first_particle_passes_through():
    terms = ytilde_from_y((2, 0, 0))
    assert _as_tuples(terms) == [(1, (2, 0), (2, 0), (2, 0))]


def test_ytilde_vectors_have_length_n_minus_one():
    for term in ytilde_from_y((1, 2, 0, 1)):
        assert len(term.u_plus) == len(term.u_minus) == len(term.y_tilde) == 3


def test_theta_from_ytilde():
    term = IntermediateTerm(
        coefficient=3, u_plus=(0, 0, 0), u_minus=(0, 0, 0), y_tilde=(1, 2, 4)
    )
    (final,) = theta_from_ytilde([term])
    assert final.sin_theta == (6, 4)
    assert final.cos_theta == (1, 2)
    assert final.coefficient == 3


def test_intermediate_terms_include_x_contribution():
    terms = intermediate_terms((1, 2, 3, 0, 1, 0))
    assert _as_tuples(terms) == [
        (-1, (3, 6), (11, 6), (1, 0)),
        (1, (2, 5), (11, 7), (0, 1)),
    ]


def test_final_terms_two_particles_have_no_angles():
    (term,) = final_terms((0, 0, 0, 0))
    assert term == FinalTerm(1, (0,), (0,), (), ())


def test_intermediate_term_length_check():
    with pytest.raises(ValueError):
        IntermediateTerm(1, (0, 0), (0,), (0, 0))


def test_final_term_length_check():
    with pytest.raises(ValueError):
        FinalTerm(1.0, (0, 0), (0, 0), (), ())


def test_intermediate_term_product():
    a = IntermediateTerm(2, (1, 0), (0, 1), (1, 1))
    b = IntermediateTerm(-3, (0, 2), (2, 0), (0, 1))
    product = a * b
    assert product == IntermediateTerm(-6, (1, 2), (2, 1), (1, 2))


def test_mass_insertions_walk():
    term = FinalTerm(1.0, (4, 4), (6, 6), (0,), (0,))
    states = term.mass_insertions()
    assert [(s.u_plus, s.u_minus) for s in states] == [
        ((2, 4), (6, 6)),
        ((4, 2), (4, 6)),
        ((4, 4), (4, 4)),
    ]
    assert term.u_plus == (4, 4)
    assert all(s.sin_theta == (0,) and s.cos_theta == (0,) for s in states)
