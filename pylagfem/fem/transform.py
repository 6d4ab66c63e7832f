"""pylagfem.fem.transform
Element-level evaluation: basis values, reference -> physical mapping,
Jacobians and their measure, spatial gradients and dual bases.

Conventions
-----------
* local coordinates ``xi`` are array-likes of length ``d`` (reference
  dimension) or :class:`~pylagfem.integration.quadrature.IntegrationPoint`;
* nodal geometry ``X`` has shape ``(n, D)`` with ``D`` the physical dimension;
* the Jacobian is ``J = dN @ X`` of shape ``(d, D)``, so ``J[a, b] = dx_b/dxi_a``.
"""
import logging
from collections import defaultdict
from typing import Optional, Sequence

import numpy as np

from pylagfem.config import get_settings
from pylagfem.errors import DegenerateGeometryError, ShapeMismatchError
from pylagfem.integration.pre_tabulates import tabulate_basis, tabulate_jacobians
from pylagfem.integration.quadrature import IntegrationPoint, get_integration_points, volume

logger = logging.getLogger(__name__)

_CONFIGURATIONS = ("reference", "deformed")
_COND_WARN = 1e8

# ---------- small utilities ----------

def _local(xi) -> np.ndarray:
    if isinstance(xi, IntegrationPoint):
        return xi.xi
    return np.atleast_1d(np.asarray(xi, dtype=float))


def _nodal(element, name, time) -> np.ndarray:
    field = element.fields.field(name)
    if field.constant:
        raise ShapeMismatchError(f"Field '{name}' of {element!r} must be nodal, not constant.")
    X = np.asarray(field.at(time), dtype=float)
    return X.reshape(X.shape[0], -1)


def nodal_coordinates(element, time: Optional[float] = None,
                      configuration: str = "reference") -> np.ndarray:
    """Node positions (n, D) from ``geometry``, plus ``displacement`` when deformed."""
    if configuration not in _CONFIGURATIONS:
        raise ValueError(f"Unknown configuration '{configuration}', expected one of {_CONFIGURATIONS}.")
    X = _nodal(element, "geometry", time)
    if configuration == "deformed" and "displacement" in element.fields:
        u = _nodal(element, "displacement", time)
        if u.shape != X.shape:
            raise ShapeMismatchError(f"Displacement of shape {u.shape} does not match "
                                     f"geometry of shape {X.shape} on {element!r}.")
        X = X + u
    return X


def basis(element, xi) -> np.ndarray:
    """N(xi), shape (n,)."""
    return element.reference.basis(_local(xi))


def basis_derivative(element, xi) -> np.ndarray:
    """dN/dxi, shape (d, n)."""
    return element.reference.basis_derivative(_local(xi))


def interpolate(element, field_name: str, xi, time: Optional[float] = None):
    """Field value at ``xi``. Constant fields are returned as stored."""
    field = element.fields.field(field_name)
    data = field.at(time)
    if field.constant:
        return data
    return np.tensordot(basis(element, xi), data, axes=(0, 0))


def x_mapping(element, xi, time: Optional[float] = None,
              configuration: str = "reference") -> np.ndarray:
    """Physical position of local point ``xi``."""
    return basis(element, xi) @ nodal_coordinates(element, time, configuration)


def jacobian(element, xi, time: Optional[float] = None,
             configuration: str = "reference") -> np.ndarray:
    """J = sum_i outer(dN[:, i], X_i), shape (d, D)."""
    X = nodal_coordinates(element, time, configuration)
    return basis_derivative(element, xi) @ X


def measure(J: np.ndarray):
    """
    Volume/surface/length measure of a Jacobian (or a stack of them, ``(..., d, D)``).

    * ``d == D``: ``det(J)``
    * ``d == 1``: ``|dx/dxi|`` (curve in 2D or 3D)
    * ``d == 2, D == 3``: ``|dx/dxi_1 x dx/dxi_2|`` (surface in 3D)
    """
    J = np.asarray(J, dtype=float)
    d, D = J.shape[-2:]
    if d == D:
        return np.linalg.det(J)
    if d == 1:
        return np.linalg.norm(J[..., 0, :], axis=-1)
    if d == 2 and D == 3:
        return np.linalg.norm(np.cross(J[..., 0, :], J[..., 1, :]), axis=-1)
    raise ShapeMismatchError(f"No measure defined for a Jacobian of shape {(d, D)}.")


def det_jacobian(element, xi, time: Optional[float] = None,
                 configuration: str = "reference") -> float:
    return float(measure(jacobian(element, xi, time, configuration)))


def _inverse(J: np.ndarray, element, xi, tol: Optional[float] = None) -> np.ndarray:
    d, D = J.shape
    if d != D:
        raise DegenerateGeometryError(
            f"Jacobian of shape {J.shape} is not invertible; spatial gradients "
            f"need a volumetric element", element=element)
    if tol is None:
        tol = get_settings().degeneracy_tol
    det = np.linalg.det(J)
    # scale-free: |det J| relative to the lengths of the tangent rows
    scale = float(np.prod(np.linalg.norm(J, axis=1)))
    if scale == 0.0 or abs(det) <= tol * scale:
        raise DegenerateGeometryError(
            f"Singular Jacobian (det J = {det:e}) at local coordinates "
            f"{tuple(np.round(_local(xi), 6))}", element=element)
    return np.linalg.inv(J)


def inv_jacobian(element, xi, time: Optional[float] = None,
                 configuration: str = "reference") -> np.ndarray:
    return _inverse(jacobian(element, xi, time, configuration), element, xi)


def basis_gradient(element, xi, time: Optional[float] = None,
                   configuration: str = "reference") -> np.ndarray:
    """Spatial derivatives of the basis, inv(J) @ dN, shape (D, n)."""
    return inv_jacobian(element, xi, time, configuration) @ basis_derivative(element, xi)


def gradient(element, field_name: str, xi, time: Optional[float] = None,
             configuration: str = "reference") -> np.ndarray:
    """
    Spatial gradient of a field, ``inv(J) @ dN @ values``.

    ``grad[i, ...] = d(field[...])/dx_i``: shape ``(D,)`` for a scalar field,
    ``(D, k)`` for a k-vector field. Constant fields have zero gradient.
    """
    field = element.fields.field(field_name)
    data = field.at(time)
    G = basis_gradient(element, xi, time, configuration)
    if field.constant:
        return np.zeros((G.shape[0],) + np.shape(data))
    return np.tensordot(G, data, axes=(1, 0))


def inverse_mapping(element, x, time: Optional[float] = None, tol: float = 1e-10,
                    maxiter: Optional[int] = None, configuration: str = "reference") -> np.ndarray:
    """Local coordinates of physical point ``x`` (Newton iteration, volumetric elements)."""
    if maxiter is None:
        maxiter = get_settings().newton_maxiter
    x = np.atleast_1d(np.asarray(x, dtype=float))
    # reference centroid as initial guess
    xi = element.reference.nodes.mean(axis=1)
    for iteration in range(maxiter):
        r = x - x_mapping(element, xi, time, configuration)
        invJ = _inverse(jacobian(element, xi, time, configuration), element, xi)
        delta = invJ.T @ r
        xi = xi + delta
        if np.linalg.norm(delta) < tol:
            return xi
    raise ValueError(f"Inverse mapping did not converge after {maxiter} iterations for "
                     f"{element!r}, x={x}, residual={np.linalg.norm(r)}")


# ---------- dual (biorthogonal) basis ----------

def dual_basis(element, time: Optional[float] = None, order: Optional[int] = None,
               configuration: str = "reference"):
    """
    Matrices of the biorthogonal basis used in mortar/contact coupling.

    Returns:
        tuple: ``(D, M, A)`` with ``D = sum w diag(N) detJ``,
            ``M = sum w N^T N detJ`` and ``A = D M^-1``, so that the dual
            basis ``Phi = A N`` satisfies ``int Phi_i N_j = D_ij``.

    Raises:
        DegenerateGeometryError: when ``M`` is singular.
    """
    settings = get_settings()
    if order is None:
        order = settings.dual_basis_order
    n = element.reference.n_nodes
    D = np.zeros((n, n))
    M = np.zeros((n, n))
    for ip in get_integration_points(element.reference, order):
        detJ = det_jacobian(element, ip, time, configuration)
        N = basis(element, ip)
        D += ip.weight * np.diag(N) * detJ
        M += ip.weight * np.outer(N, N) * detJ

    s = np.linalg.svd(M, compute_uv=False)
    if not np.all(np.isfinite(s)) or s[0] == 0.0 or s[-1] <= settings.degeneracy_tol * s[0]:
        raise DegenerateGeometryError(
            f"Singular mass matrix in dual basis computation (singular values "
            f"{s[0]:e} .. {s[-1]:e})", element=element)
    cond = s[0] / s[-1]
    if cond > _COND_WARN:
        logger.warning(f"Ill-conditioned mass matrix for {element!r}: cond = {cond:e}.")
    # A = D M^-1
    A = np.linalg.solve(M.T, D.T).T
    logger.debug(f"Dual basis of {element!r} with {order}-point rule, cond(M) = {cond:.3e}.")
    return D, M, A


def dual_basis_values(element, xi, time: Optional[float] = None, order: Optional[int] = None,
                      configuration: str = "reference") -> np.ndarray:
    """Dual basis functions Phi(xi) = A @ N(xi), shape (n,)."""
    _, _, A = dual_basis(element, time, order, configuration)
    return A @ basis(element, xi)


# ---------- element stacks ----------

def element_measures(elements: Sequence, time: Optional[float] = None, order: int = 2,
                     configuration: str = "reference") -> np.ndarray:
    """Length/area/volume of each element; same-type elements are evaluated in one batch."""
    groups = defaultdict(list)
    for k, element in enumerate(elements):
        groups[element.reference].append(k)

    out = np.empty(len(elements))
    for ref, idx in groups.items():
        pts, wts = volume(ref.family, order)
        _, dN = tabulate_basis(ref, pts)
        coords = [nodal_coordinates(elements[k], time, configuration) for k in idx]
        if len({c.shape for c in coords}) != 1:
            raise ShapeMismatchError(f"{ref.name} elements with different physical dimensions.")
        J = tabulate_jacobians(dN, np.stack(coords))
        out[idx] = measure(J) @ wts
    return out
