import numpy as np
import pytest

from pylagfem.core import Element
from pylagfem.errors import DegenerateGeometryError, FieldNotFoundError, ShapeMismatchError
from pylagfem.fem import transform as tr
from pylagfem.integration.quadrature import get_integration_points

UNIT_SQUARE = [[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]]
# x = 1 + xi, y = (1 + eta) / 2
RECTANGLE = [[0.0, 0.0], [2.0, 0.0], [2.0, 1.0], [0.0, 1.0]]


def test_reference_to_global_mapping(make_element):
    e = make_element("Tri3", [[0.0, 0.0], [2.0, 0.0], [0.0, 1.0]])
    x = tr.x_mapping(e, (1 / 3, 1 / 3))
    assert np.allclose(x, [2 / 3, 1 / 3])
    # detJ should be twice area
    assert np.isclose(tr.det_jacobian(e, (0.2, 0.2)), 2 * 1.0)


def test_seg2_length_measure(make_element):
    e = make_element("Seg2", [[0.0, 0.0], [2.0, 0.0]])
    J = tr.jacobian(e, [0.3])
    assert J.shape == (1, 2)
    assert np.isclose(tr.det_jacobian(e, [0.3]), 1.0)


def test_quad4_identity_geometry(make_element):
    e = make_element("Quad4", [[-1.0, -1.0], [1.0, -1.0], [1.0, 1.0], [-1.0, 1.0]])
    for ip in get_integration_points(e.reference, 2):
        assert np.allclose(tr.jacobian(e, ip), np.eye(2))
        assert np.isclose(tr.det_jacobian(e, ip), 1.0)


def test_triangle_in_3d_measure_is_twice_area(make_element):
    e = make_element("Tri3", [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 1.0]])
    assert tr.jacobian(e, (0.1, 0.1)).shape == (2, 3)
    assert np.isclose(tr.det_jacobian(e, (0.1, 0.1)), np.sqrt(2.0))


def test_line_in_3d_measure(make_element):
    e = make_element("Seg2", [[0.0, 0.0, 0.0], [1.0, 2.0, 2.0]])
    assert np.isclose(tr.det_jacobian(e, [0.0]), 1.5)


def test_measure_of_stacks_and_bad_shapes():
    J = np.array([[[2.0, 0.0], [0.0, 3.0]], [[1.0, 1.0], [0.0, 1.0]]])
    assert np.allclose(tr.measure(J), [6.0, 1.0])
    with pytest.raises(ShapeMismatchError):
        tr.measure(np.ones((2, 1)))
    with pytest.raises(ShapeMismatchError):
        tr.measure(np.ones((2, 4)))


def test_interpolate_constant_and_nodal(make_element):
    e = make_element("Quad4", UNIT_SQUARE)
    e.fields.set("thickness", 0.2)
    e.fields.set("temperature", [1.0, 2.0, 3.0, 4.0])
    e.fields.set("velocity", [[1.0, 0.0], [1.0, 0.0], [0.0, 1.0], [0.0, 1.0]])
    assert tr.interpolate(e, "thickness", (0.3, -0.7)) == 0.2
    assert np.isclose(tr.interpolate(e, "temperature", (0.0, 0.0)), 2.5)
    assert np.allclose(tr.interpolate(e, "velocity", (0.0, 1.0)), [0.0, 1.0])


def test_gradient_of_linear_scalar_field(make_element):
    e = make_element("Quad4", RECTANGLE)
    # T = 3x + 4y + 1
    e.fields.set("temperature", [3 * x + 4 * y + 1 for x, y in RECTANGLE])
    for xi in [(0.0, 0.0), (0.5, -0.25), (-0.8, 0.6)]:
        assert np.allclose(tr.gradient(e, "temperature", xi), [3.0, 4.0])


def test_gradient_of_vector_field(make_element):
    e = make_element("Quad4", RECTANGLE)
    # u = (x, 2y): grad[i, k] = du_k / dx_i
    e.fields.set("displacement", [[x, 2 * y] for x, y in RECTANGLE])
    G = tr.gradient(e, "displacement", (0.1, 0.2))
    assert G.shape == (2, 2)
    assert np.allclose(G, [[1.0, 0.0], [0.0, 2.0]])


def test_basis_gradient_sums_to_zero(make_element):
    e = make_element("Tet4", [[0, 0, 0], [2, 0, 0], [0, 1, 0], [0, 0, 3]])
    dN = tr.basis_gradient(e, (0.25, 0.25, 0.25))
    assert dN.shape == (3, 4)
    assert np.allclose(dN.sum(axis=1), 0.0)
    assert np.allclose(dN[:, 1], [0.5, 0.0, 0.0])


def test_gradient_of_constant_field_is_zero(make_element):
    e = make_element("Tri3", [[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]])
    e.fields.set("pressure", 5.0)
    e.fields.set("body force", [0.0, -1.0], constant=True)
    assert np.allclose(tr.gradient(e, "pressure", (0.2, 0.2)), [0.0, 0.0])
    assert tr.gradient(e, "body force", (0.2, 0.2)).shape == (2, 2)


def test_gradient_on_manifold_element_raises(make_element):
    e = make_element("Seg2", [[0.0, 0.0], [1.0, 1.0]])
    e.fields.set("temperature", [0.0, 1.0])
    with pytest.raises(DegenerateGeometryError):
        tr.gradient(e, "temperature", [0.0])


def test_collapsed_element_raises(make_element):
    e = make_element("Quad4", [[0.0, 0.0], [1.0, 0.0], [2.0, 0.0], [3.0, 0.0]])
    e.fields.set("temperature", [0.0, 1.0, 2.0, 3.0])
    with pytest.raises(DegenerateGeometryError) as err:
        tr.gradient(e, "temperature", (0.0, 0.0))
    assert err.value.element is e


def test_singularity_check_is_scale_free(make_element):
    tiny = np.array(UNIT_SQUARE) * 1e-8
    e = make_element("Quad4", tiny)
    e.fields.set("temperature", [x for x, _ in tiny])
    assert np.allclose(tr.gradient(e, "temperature", (0.0, 0.0)), [1.0, 0.0])


def test_deformed_configuration(make_element):
    e = make_element("Quad4", UNIT_SQUARE)
    e.fields.set("displacement", UNIT_SQUARE)
    assert np.isclose(tr.det_jacobian(e, (0.0, 0.0)), 0.25)
    assert np.isclose(tr.det_jacobian(e, (0.0, 0.0), configuration="deformed"), 1.0)
    assert np.allclose(tr.x_mapping(e, (1.0, 1.0), configuration="deformed"), [2.0, 2.0])


def test_deformed_without_displacement_is_reference(make_element):
    e = make_element("Seg2", [[0.0, 0.0], [3.0, 4.0]])
    assert np.isclose(tr.det_jacobian(e, [0.0], configuration="deformed"), 2.5)


def test_time_varying_geometry(make_element):
    e = make_element("Seg2", [[0.0, 0.0], [2.0, 0.0]])
    e.fields.set("geometry", {0.0: [[0.0, 0.0], [2.0, 0.0]], 1.0: [[0.0, 0.0], [4.0, 0.0]]})
    assert np.isclose(tr.det_jacobian(e, [0.0], time=0.0), 1.0)
    assert np.isclose(tr.det_jacobian(e, [0.0], time=1.0), 2.0)
    with pytest.raises(FieldNotFoundError):
        tr.det_jacobian(e, [0.0], time=0.5)


def test_missing_geometry_and_bad_configuration(make_element):
    with pytest.raises(FieldNotFoundError):
        tr.jacobian(Element("Seg2", (1, 2)), [0.0])
    e = make_element("Seg2", [[0.0, 0.0], [2.0, 0.0]])
    with pytest.raises(ValueError):
        tr.jacobian(e, [0.0], configuration="current")


def test_inverse_mapping(make_element):
    e = make_element("Quad4", RECTANGLE)
    assert np.allclose(tr.inverse_mapping(e, [1.5, 0.75]), [0.5, 0.5])
    skew = make_element("Quad4", [[0.0, 0.0], [2.0, 0.0], [2.5, 1.5], [0.0, 1.0]])
    xi = np.array([0.3, -0.4])
    x = tr.x_mapping(skew, xi)
    assert np.allclose(tr.inverse_mapping(skew, x), xi)


def test_element_measures(make_element):
    elements = [
        make_element("Seg2", [[0.0, 0.0], [1.0, 0.0]]),
        make_element("Quad4", RECTANGLE),
        make_element("Tri3", [[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]]),
        make_element("Seg2", [[0.0, 0.0], [3.0, 4.0]]),
    ]
    assert np.allclose(tr.element_measures(elements), [1.0, 2.0, 0.5, 5.0])


def test_element_measures_mixed_physical_dimension(make_element):
    elements = [make_element("Seg2", [[0.0, 0.0], [1.0, 0.0]]),
                make_element("Seg2", [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]])]
    with pytest.raises(ShapeMismatchError):
        tr.element_measures(elements)
