import numpy as np
import pytest
import sympy as sp

from pylagfem.errors import DegenerateReferenceElementError, ShapeMismatchError
from pylagfem.fem.reference import ReferenceRegistry, default_registry, get_reference
from pylagfem.fem.reference.catalogue import DEFINITIONS, ElementDefinition
from pylagfem.fem.reference.lagrange import lagrange_basis

NAMES = sorted(DEFINITIONS)


def interior_points(ref, count=6, seed=0):
    """Random points strictly inside the reference domain."""
    rng = np.random.default_rng(seed)
    pts = []
    for _ in range(count):
        if ref.family in ('seg', 'quad', 'hex'):
            pts.append(rng.uniform(-0.9, 0.9, size=ref.dim))
        else:
            lam = rng.uniform(0.05, 1.0, size=ref.dim + 1)
            lam /= lam.sum()
            pts.append(lam[:ref.dim])
    return pts


def test_required_catalogue():
    for name in ("Seg2", "Seg3", "Tri3", "Quad4", "Tet10"):
        assert name in default_registry()
    assert set(default_registry().names()) == set(NAMES)
    assert get_reference("Quad4").description == "4 node bilinear quadrangle element"


@pytest.mark.parametrize("name", NAMES)
def test_kronecker_delta(name):
    ref = get_reference(name)
    B = np.array([ref.basis(ref.node(i)) for i in range(ref.n_nodes)])
    assert np.allclose(B, np.eye(ref.n_nodes), atol=1e-10)


@pytest.mark.parametrize("name", NAMES)
def test_partition_of_unity(name):
    ref = get_reference(name)
    for xi in interior_points(ref):
        assert np.isclose(ref.basis(xi).sum(), 1.0, atol=1e-12)
        # derivatives of a partition of unity sum to zero
        assert np.allclose(ref.basis_derivative(xi).sum(axis=1), 0.0, atol=1e-12)


@pytest.mark.parametrize("name", NAMES)
def test_derivative_matches_central_difference(name):
    ref = get_reference(name)
    eps = 1e-6
    for xi in interior_points(ref, seed=1):
        dN = ref.basis_derivative(xi)
        assert dN.shape == (ref.dim, ref.n_nodes)
        for a in range(ref.dim):
            e = np.zeros(ref.dim)
            e[a] = eps
            fd = (ref.basis(xi + e) - ref.basis(xi - e)) / (2 * eps)
            assert np.allclose(dN[a], fd, atol=1e-7)


def test_quad4_symbolic_basis():
    xi, eta = sp.symbols("xi eta")
    ref = get_reference("Quad4")
    expected = [(1 - xi) * (1 - eta) / 4, (1 + xi) * (1 - eta) / 4,
                (1 + xi) * (1 + eta) / 4, (1 - xi) * (1 + eta) / 4]
    for got, want in zip(ref.basis_sym, expected):
        assert sp.simplify(got - want) == 0


def test_seg2_lagrange_basis():
    x = sp.symbols("x")
    N, dN = lagrange_basis(np.array([[-1.0, 1.0]]), lambda s: [1, s[0]], (x,), name="Seg2")
    assert sp.simplify(N[0] - (1 - x) / 2) == 0
    assert sp.simplify(N[1] - (1 + x) / 2) == 0
    assert dN.shape == (1, 2)
    assert dN[0, 0] == sp.Rational(-1, 2) and dN[0, 1] == sp.Rational(1, 2)


def test_degenerate_layout_is_rejected():
    # three collinear nodes cannot carry a linear triangle basis
    bad = ElementDefinition("Bad3", "collinear triangle", "tri",
                            np.array([[0.0, 1.0, 2.0], [0.0, 0.0, 0.0]]),
                            lambda x: [1, x[0], x[1]])
    with pytest.raises(DegenerateReferenceElementError, match="Bad3"):
        ReferenceRegistry([bad])


def test_degenerate_layout_is_a_value_error():
    bad = ElementDefinition("Bad2", "coincident nodes", "seg",
                            np.array([[0.5, 0.5]]), lambda x: [1, x[0]])
    with pytest.raises(ValueError):
        ReferenceRegistry([bad])


def test_monomial_count_mismatch():
    bad = ElementDefinition("Short", "too few monomials", "quad",
                            get_reference("Quad4").nodes, lambda x: [1, x[0], x[1]])
    with pytest.raises(ShapeMismatchError):
        ReferenceRegistry([bad])


def test_reference_element_is_immutable():
    ref = get_reference("Tri3")
    with pytest.raises(AttributeError):
        ref.n_nodes = 4
    N = ref.basis([0.2, 0.3])
    with pytest.raises(ValueError):
        N[0] = 1.0


def test_wrong_local_coordinate_length():
    with pytest.raises(ValueError):
        get_reference("Quad4").basis([0.0])


def test_unknown_element_type():
    with pytest.raises(KeyError, match="Hex27"):
        get_reference("Hex27")


def test_tet10_corner_and_midside_values():
    ref = get_reference("Tet10")
    N = ref.basis([0.25, 0.25, 0.25])
    # quadratic tet at the centroid: corners -1/8, mid-sides 1/4
    assert np.allclose(N[:4], -0.125)
    assert np.allclose(N[4:], 0.25)
