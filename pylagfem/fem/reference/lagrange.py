"""pylagfem.fem.reference.lagrange
Lagrange basis from a reference-node layout and a monomial basis.
"""
import logging
from typing import Callable, Sequence, Tuple

import numpy as np
import sympy as sp

from pylagfem.errors import DegenerateReferenceElementError, ShapeMismatchError

logger = logging.getLogger(__name__)


def _exact(value) -> sp.Expr:
    """Float coordinate -> exact rational (0.5 -> 1/2)."""
    return sp.nsimplify(value, rational=True)


def lagrange_basis(coordinates: np.ndarray,
                   monomials: Callable[[Tuple[sp.Symbol, ...]], Sequence],
                   symbols: Tuple[sp.Symbol, ...],
                   name: str = "element"):
    """
    Derive the Lagrange basis N(xi) = invA * P(xi) with N_i(X_j) = delta_ij.

    Args:
        coordinates: reference-node coordinates, shape (d, n).
        monomials: the monomial map P, called with the tuple of local
            coordinate symbols and returning n expressions.
        symbols: local coordinate symbols (xi, eta, zeta)[:d].
        name: element name used in error messages.

    Returns:
        tuple: (basis_sym, dbasis_sym) where basis_sym is an (n, 1) sympy
            Matrix and dbasis_sym the (d, n) Matrix of first derivatives.

    Raises:
        ShapeMismatchError: when the number of monomials and nodes differ.
        DegenerateReferenceElementError: when the Vandermonde matrix is singular.
    """
    X = np.atleast_2d(np.asarray(coordinates, dtype=float))
    dim, num_nodes = X.shape
    if len(symbols) != dim:
        raise ShapeMismatchError(
            f"{name}: {len(symbols)} coordinate symbols for a {dim}-dimensional element.")

    P = [sp.sympify(m) for m in monomials(symbols)]
    if len(P) != num_nodes:
        raise ShapeMismatchError(
            f"{name}: monomial basis has {len(P)} terms but the element has {num_nodes} nodes.")

    # 1. Vandermonde-like matrix, row i = P(X[:, i]), in exact arithmetic
    A = sp.zeros(num_nodes, num_nodes)
    for i in range(num_nodes):
        subs = {s: _exact(X[k, i]) for k, s in enumerate(symbols)}
        for j, p in enumerate(P):
            A[i, j] = p.subs(subs)

    # 2. coefficients of the basis functions
    if A.det() == 0:
        raise DegenerateReferenceElementError(
            f"Degenerate reference element '{name}': the node layout does not "
            f"determine a unique interpolant for the given monomials.")
    invA = A.T.inv()

    # 3. basis and its first derivatives
    basis_sym = (invA * sp.Matrix(P)).applyfunc(sp.expand)
    dbasis_sym = basis_sym.jacobian(list(symbols)).T
    logger.debug(f"Derived {num_nodes}-node Lagrange basis for '{name}' (dim={dim}).")
    return basis_sym, dbasis_sym


def lambdify_basis(basis_sym: sp.Matrix, dbasis_sym: sp.Matrix,
                   symbols: Tuple[sp.Symbol, ...]):
    """Numpy callables for the symbolic basis: N(*xi) -> (n,), dN(*xi) -> (d, n)."""
    shape_l = sp.lambdify(symbols, basis_sym, "numpy")
    deriv_l = sp.lambdify(symbols, dbasis_sym, "numpy")
    num_nodes = basis_sym.shape[0]
    dim = dbasis_sym.shape[0]

    def shape(*xi):
        return np.asarray(shape_l(*xi), dtype=float).reshape(num_nodes)

    def deriv(*xi):
        return np.asarray(deriv_l(*xi), dtype=float).reshape(dim, num_nodes)

    return shape, deriv
