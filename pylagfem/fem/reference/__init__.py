# pylagfem.fem.reference
"""
Reference elements and the element-type registry.
"""
import logging
from functools import lru_cache
from typing import Dict, Iterable, Tuple

import numpy as np
import sympy as sp

from pylagfem.fem.reference.catalogue import DEFINITIONS, ElementDefinition
from pylagfem.fem.reference.lagrange import lagrange_basis, lambdify_basis

logger = logging.getLogger(__name__)

_SYMBOLS = sp.symbols("xi eta zeta")
_CACHE_SIZE = 256


def _frozen(a: np.ndarray) -> np.ndarray:
    a.setflags(write=False)
    return a


class ReferenceElement:
    """
    Immutable descriptor of one Lagrange element type.

    The basis and its derivative are lambdified once at construction. Point
    evaluations are memoised in a cache owned by this instance; returned
    arrays are read-only.
    """

    __slots__ = ("name", "description", "family", "dim", "n_nodes", "nodes",
                 "monomials", "basis_sym", "dbasis_sym", "_shape", "_deriv",
                 "_basis_cached", "_deriv_cached")

    def __init__(self, definition: ElementDefinition):
        X = np.atleast_2d(np.asarray(definition.coordinates, dtype=float))
        dim, n_nodes = X.shape
        symbols = _SYMBOLS[:dim]
        basis_sym, dbasis_sym = lagrange_basis(X, definition.monomials, symbols,
                                               name=definition.name)
        shape, deriv = lambdify_basis(basis_sym, dbasis_sym, symbols)

        setattr_ = object.__setattr__
        setattr_(self, "name", definition.name)
        setattr_(self, "description", definition.description)
        setattr_(self, "family", definition.family)
        setattr_(self, "dim", dim)
        setattr_(self, "n_nodes", n_nodes)
        setattr_(self, "nodes", _frozen(X.copy()))
        setattr_(self, "monomials", tuple(sp.sympify(m) for m in definition.monomials(symbols)))
        setattr_(self, "basis_sym", basis_sym)
        setattr_(self, "dbasis_sym", dbasis_sym)
        setattr_(self, "_shape", shape)
        setattr_(self, "_deriv", deriv)
        setattr_(self, "_basis_cached",
                 lru_cache(maxsize=_CACHE_SIZE)(lambda xi: _frozen(shape(*xi))))
        setattr_(self, "_deriv_cached",
                 lru_cache(maxsize=_CACHE_SIZE)(lambda xi: _frozen(deriv(*xi))))

    def __setattr__(self, name, value):
        raise AttributeError(f"ReferenceElement '{self.name}' is immutable.")

    def __repr__(self):
        return f"ReferenceElement({self.name}, dim={self.dim}, n_nodes={self.n_nodes})"

    def _key(self, xi) -> Tuple[float, ...]:
        xi = np.atleast_1d(np.asarray(xi, dtype=float)).ravel()
        if xi.shape[0] != self.dim:
            raise ValueError(f"{self.name} expects a {self.dim}-dimensional local "
                             f"coordinate, got {xi.shape[0]} components.")
        return tuple(float(v) for v in xi)

    def basis(self, xi) -> np.ndarray:
        """Basis values N(xi), shape (n_nodes,)."""
        return self._basis_cached(self._key(xi))

    def basis_derivative(self, xi) -> np.ndarray:
        """Local derivatives dN/dxi, shape (dim, n_nodes)."""
        return self._deriv_cached(self._key(xi))

    def node(self, i: int) -> np.ndarray:
        """Reference coordinates of local node i."""
        return self.nodes[:, i]


class ReferenceRegistry:
    """
    Builds every reference element of a closed catalogue at initialisation.
    """

    def __init__(self, definitions: Iterable[ElementDefinition] = None):
        if definitions is None:
            definitions = DEFINITIONS.values()
        self._elements: Dict[str, ReferenceElement] = {}
        for definition in definitions:
            if definition.name in self._elements:
                raise ValueError(f"Duplicate element definition '{definition.name}'.")
            self._elements[definition.name] = ReferenceElement(definition)
        logger.debug(f"Reference registry initialised with {len(self._elements)} "
                     f"element types: {', '.join(self._elements)}.")

    def get(self, name: str) -> ReferenceElement:
        try:
            return self._elements[name]
        except KeyError:
            raise KeyError(f"Unknown element type '{name}'. "
                           f"Known types: {', '.join(self._elements)}.") from None

    def __getitem__(self, name: str) -> ReferenceElement:
        return self.get(name)

    def __contains__(self, name) -> bool:
        return name in self._elements

    def __iter__(self):
        return iter(self._elements.values())

    def __len__(self):
        return len(self._elements)

    def names(self) -> Tuple[str, ...]:
        return tuple(self._elements)


@lru_cache(maxsize=None)
def default_registry() -> ReferenceRegistry:
    return ReferenceRegistry()


def get_reference(element_type: str) -> ReferenceElement:
    return default_registry().get(element_type)


__all__ = ["ReferenceElement", "ReferenceRegistry", "default_registry", "get_reference"]
