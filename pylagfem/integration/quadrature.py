"""pylagfem.integration.quadrature
Quadrature rules for lines, quads, hexes, triangles and tetrahedra.

``order`` is the number of Gauss points per direction. Tensor-product rules
live on [-1, 1]^d; simplex rules on the unit simplex, built by collapsing
the unit cube and absorbing the collapse Jacobian into Gauss-Jacobi weights.
"""
from dataclasses import dataclass
from functools import lru_cache
from typing import Tuple

import numpy as np
from numpy.polynomial.legendre import leggauss
from scipy.special import roots_jacobi


@dataclass(frozen=True, eq=False)
class IntegrationPoint:
    xi: np.ndarray
    weight: float


# -------------------------------------------------------------------------
# 1-D rules
# -------------------------------------------------------------------------
def gauss_legendre(order: int):
    if order < 1:
        raise ValueError(f"Quadrature order must be >= 1, got {order}.")
    return leggauss(order)  # (points, weights)


def _gl01(order: int):
    """Gauss-Legendre nodes and weights mapped to [0,1]."""
    xi, w = gauss_legendre(int(order))
    return 0.5 * (xi + 1.0), 0.5 * w


def _gj01(order: int, alpha: int):
    """Nodes/weights on [0,1] for the weight (1-u)^alpha."""
    if order < 1:
        raise ValueError(f"Quadrature order must be >= 1, got {order}.")
    x, w = roots_jacobi(int(order), alpha, 0)
    return 0.5 * (x + 1.0), w / 2.0 ** (alpha + 1)


# -------------------------------------------------------------------------
# Tensor-product construction
# -------------------------------------------------------------------------
@lru_cache(maxsize=None)
def line_rule(order: int):
    xi, wi = gauss_legendre(order)
    return xi[:, None], wi


@lru_cache(maxsize=None)
def quad_rule(order: int):
    xi, wi = gauss_legendre(order)
    pts = np.array([[x, y] for y in xi for x in xi])
    wts = np.array([wx * wy for wy in wi for wx in wi])
    return pts, wts


@lru_cache(maxsize=None)
def hex_rule(order: int):
    xi, wi = gauss_legendre(order)
    pts = np.array([[x, y, z] for z in xi for y in xi for x in xi])
    wts = np.array([wx * wy * wz for wz in wi for wy in wi for wx in wi])
    return pts, wts


# -------------------------------------------------------------------------
# Collapsed simplex rules
# -------------------------------------------------------------------------
@lru_cache(maxsize=None)
def tri_rule(order: int):
    """(r, s) = (u, v(1-u)), dA = (1-u) du dv."""
    u, wu = _gj01(order, 1)
    v, wv = _gl01(order)
    pts, wts = [], []
    for i, ui in enumerate(u):
        for j, vj in enumerate(v):
            pts.append([ui, vj * (1.0 - ui)])
            wts.append(wu[i] * wv[j])
    return np.array(pts), np.array(wts)


@lru_cache(maxsize=None)
def tet_rule(order: int):
    """(r, s, t) = (u, v(1-u), w(1-u)(1-v)), dV = (1-u)^2 (1-v) du dv dw."""
    u, wu = _gj01(order, 2)
    v, wv = _gj01(order, 1)
    w, ww = _gl01(order)
    pts, wts = [], []
    for i, ui in enumerate(u):
        for j, vj in enumerate(v):
            for k, wk in enumerate(w):
                pts.append([ui, vj * (1.0 - ui), wk * (1.0 - ui) * (1.0 - vj)])
                wts.append(wu[i] * wv[j] * ww[k])
    return np.array(pts), np.array(wts)


_RULES = {
    'seg': line_rule,
    'quad': quad_rule,
    'hex': hex_rule,
    'tri': tri_rule,
    'tet': tet_rule,
}

# -------------------------------------------------------------------------
# Public API
# -------------------------------------------------------------------------
def volume(family: str, order: int = 2):
    """(points, weights) of the reference domain of a topology family."""
    try:
        rule = _RULES[family]
    except KeyError:
        raise KeyError(f"No quadrature rule for element family '{family}'.") from None
    return rule(int(order))


@lru_cache(maxsize=None)
def _integration_points(family: str, order: int) -> Tuple[IntegrationPoint, ...]:
    pts, wts = volume(family, order)
    ips = []
    for p, w in zip(pts, wts):
        p = np.array(p, dtype=float)
        p.setflags(write=False)
        ips.append(IntegrationPoint(p, float(w)))
    return tuple(ips)


def get_integration_points(reference, order: int = 2) -> Tuple[IntegrationPoint, ...]:
    """Integration points for a ReferenceElement (or a family name)."""
    family = reference if isinstance(reference, str) else reference.family
    return _integration_points(family, int(order))
