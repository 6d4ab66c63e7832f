"""pylagfem.integration.pre_tabulates
Basis tabulation at quadrature points and batched Jacobians for element stacks.
"""
import numba as _nb
import numpy as np


def tabulate_basis(reference, points):
    """
    Tabulates N and dN/dxi of a ReferenceElement at the given local points.

    Returns:
        tuple: N of shape (nQ, n) and dN of shape (nQ, d, n).
    """
    points = np.atleast_2d(np.asarray(points, dtype=float))
    nQ = points.shape[0]
    N = np.empty((nQ, reference.n_nodes))
    dN = np.empty((nQ, reference.dim, reference.n_nodes))
    for q in range(nQ):
        N[q] = reference.basis(points[q])
        dN[q] = reference.basis_derivative(points[q])
    return N, dN


@_nb.njit(cache=True, fastmath=True, parallel=True)
def _jacobians_batched(dN, X, out):
    """
    J[e, q] = dN[q] @ X[e] for every element e of a same-type stack.

    dN  : (nQ, d, n)
    X   : (nE, n, D)
    out : (nE, nQ, d, D)
    """
    nE = X.shape[0]; nQ = dN.shape[0]
    d = dN.shape[1]; n = dN.shape[2]; D = X.shape[2]
    for e in _nb.prange(nE):
        for q in range(nQ):
            for a in range(d):
                for b in range(D):
                    s = 0.0
                    for i in range(n):
                        s += dN[q, a, i] * X[e, i, b]
                    out[e, q, a, b] = s


def tabulate_jacobians(dN: np.ndarray, X: np.ndarray) -> np.ndarray:
    """Jacobians of a stack of elements, shape (nE, nQ, d, D)."""
    dN = np.ascontiguousarray(dN, dtype=np.float64)
    X = np.ascontiguousarray(X, dtype=np.float64)
    if dN.ndim != 3 or X.ndim != 3 or dN.shape[2] != X.shape[1]:
        raise ValueError(f"Incompatible tabulation shapes dN{dN.shape} and X{X.shape}.")
    out = np.empty((X.shape[0], dN.shape[0], dN.shape[1], X.shape[2]), dtype=np.float64)
    _jacobians_batched(dN, X, out)
    return out
