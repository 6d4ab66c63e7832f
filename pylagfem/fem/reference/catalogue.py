"""pylagfem.fem.reference.catalogue
Closed catalogue of Lagrange element definitions.

Each entry pairs a reference-node layout (d x n, node order as in Abaqus)
with the monomial map whose span defines the interpolation space.
"""
from dataclasses import dataclass
from typing import Callable, Dict, Sequence

import numpy as np


@dataclass(frozen=True)
class ElementDefinition:
    name: str
    description: str
    family: str                 # 'seg' | 'tri' | 'quad' | 'tet' | 'hex'
    coordinates: np.ndarray     # (d, n)
    monomials: Callable[[tuple], Sequence]


def _define(name, description, family, coordinates, monomials):
    X = np.atleast_2d(np.array(coordinates, dtype=float))
    X.setflags(write=False)
    return ElementDefinition(name, description, family, X, monomials)


_DEFINITIONS = (
    # 1d
    _define("Seg2", "2 node linear line element", "seg",
            [[-1.0, 1.0]],
            lambda x: [1, x[0]]),
    _define("Seg3", "3 node quadratic line element", "seg",
            [[-1.0, 1.0, 0.0]],
            lambda x: [1, x[0], x[0]**2]),
    # 2d
    _define("Tri3", "3 node linear triangle element", "tri",
            [[0.0, 1.0, 0.0],
             [0.0, 0.0, 1.0]],
            lambda x: [1, x[0], x[1]]),
    _define("Tri6", "6 node quadratic triangle element", "tri",
            [[0.0, 1.0, 0.0, 0.5, 0.5, 0.0],
             [0.0, 0.0, 1.0, 0.0, 0.5, 0.5]],
            lambda x: [1, x[0], x[1], x[0]**2, x[0]*x[1], x[1]**2]),
    _define("Quad4", "4 node bilinear quadrangle element", "quad",
            [[-1.0,  1.0, 1.0, -1.0],
             [-1.0, -1.0, 1.0,  1.0]],
            lambda x: [1, x[0], x[1], x[0]*x[1]]),
    _define("Quad8", "8 node quadratic serendipity quadrangle element", "quad",
            [[-1.0,  1.0, 1.0, -1.0,  0.0, 1.0, 0.0, -1.0],
             [-1.0, -1.0, 1.0,  1.0, -1.0, 0.0, 1.0,  0.0]],
            lambda x: [1, x[0], x[1], x[0]**2, x[0]*x[1], x[1]**2,
                       x[0]**2*x[1], x[0]*x[1]**2]),
    _define("Quad9", "9 node biquadratic quadrangle element", "quad",
            [[-1.0,  1.0, 1.0, -1.0,  0.0, 1.0, 0.0, -1.0, 0.0],
             [-1.0, -1.0, 1.0,  1.0, -1.0, 0.0, 1.0,  0.0, 0.0]],
            lambda x: [1, x[0], x[1], x[0]**2, x[0]*x[1], x[1]**2,
                       x[0]**2*x[1], x[0]*x[1]**2, x[0]**2*x[1]**2]),
    # 3d
    _define("Tet4", "4 node linear tetrahedron", "tet",
            [[0.0, 1.0, 0.0, 0.0],
             [0.0, 0.0, 1.0, 0.0],
             [0.0, 0.0, 0.0, 1.0]],
            lambda x: [1, x[0], x[1], x[2]]),
    _define("Tet10", "10 node quadratic tetrahedron", "tet",
            [[0.0, 1.0, 0.0, 0.0, 0.5, 0.5, 0.0, 0.0, 0.5, 0.0],
             [0.0, 0.0, 1.0, 0.0, 0.0, 0.5, 0.5, 0.0, 0.0, 0.5],
             [0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 0.5, 0.5, 0.5]],
            lambda x: [1, x[0], x[1], x[2], x[0]**2,
                       x[1]**2, x[2]**2, x[0]*x[1], x[1]*x[2], x[2]*x[0]]),
    _define("Hex8", "8 node trilinear hexahedron", "hex",
            [[-1.0,  1.0,  1.0, -1.0, -1.0,  1.0, 1.0, -1.0],
             [-1.0, -1.0,  1.0,  1.0, -1.0, -1.0, 1.0,  1.0],
             [-1.0, -1.0, -1.0, -1.0,  1.0,  1.0, 1.0,  1.0]],
            lambda x: [1, x[0], x[1], x[2], x[0]*x[1], x[1]*x[2], x[2]*x[0],
                       x[0]*x[1]*x[2]]),
)

DEFINITIONS: Dict[str, ElementDefinition] = {d.name: d for d in _DEFINITIONS}
