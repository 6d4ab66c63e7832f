"""pylagfem.fem.normals
Node-unique normal and tangent directions on boundaries and interfaces.

Normals are averaged over all elements sharing a node:

* 2D (line elements):      ``n_a += w * Q @ J^T @ N_a``, ``Q = [[0, -1], [1, 0]]``
* 3D (surface elements):   ``n_a += w * (t1 x t2) * N_a``

and then normalised. The resulting frame ``[n, t]`` (2D) or ``[n, t1, t2]``
(3D) is stored per node on every element as the fields
``"normal-tangential coordinates"`` (shape ``(n, D, D)``) and ``"normals"``
(shape ``(n, D)``) at the given time.
"""
import logging
from collections import defaultdict
from typing import Dict, Iterable, Optional

import numpy as np

from pylagfem.config import get_settings
from pylagfem.errors import DegenerateGeometryError, ShapeMismatchError
from pylagfem.fem.transform import basis, jacobian
from pylagfem.integration.quadrature import get_integration_points

logger = logging.getLogger(__name__)

NT_FIELD = "normal-tangential coordinates"
NORMALS_FIELD = "normals"

# 90 degree rotation
_Q = np.array([[0.0, -1.0],
               [1.0,  0.0]])


def _frame(normal: np.ndarray) -> np.ndarray:
    """Orthonormal frame with the unit ``normal`` as first column."""
    if normal.shape[0] == 2:
        return np.column_stack([normal, _Q @ normal])
    # coordinate axis following the dominant component is never parallel to normal
    k = (int(np.argmax(np.abs(normal))) + 1) % 3
    v = np.zeros(3)
    v[k] = 1.0
    u = v - np.dot(normal, v) * normal
    t1 = u / np.linalg.norm(u)
    t2 = np.cross(normal, t1)
    return np.column_stack([normal, t1, t2])


def _surface_normal(J: np.ndarray) -> np.ndarray:
    """Unscaled normal of a line in 2D (d=1, D=2) or a surface in 3D (d=2, D=3)."""
    if J.shape == (1, 2):
        return _Q @ J[0]
    if J.shape == (2, 3):
        return np.cross(J[0], J[1])
    raise ShapeMismatchError(
        f"Normals need line elements in 2D or surface elements in 3D, got a "
        f"Jacobian of shape {J.shape}.")


def _store(element, time: float, frames: Dict[int, np.ndarray]) -> None:
    Q = np.array([frames[node_id] for node_id in element.connectivity])
    element.fields.update(NT_FIELD, time, Q, constant=False)
    element.fields.update(NORMALS_FIELD, time, Q[:, :, 0], constant=False)


def calculate_normal_tangential_coordinates(elements: Iterable, time: float,
                                            configuration: str = "deformed",
                                            order: Optional[int] = None) -> Dict[int, np.ndarray]:
    """
    Average normals over ``elements`` so that each node gets one frame.

    Returns:
        dict: global node id -> frame matrix ``(D, D)`` with columns ``[n, t...]``.

    Raises:
        ShapeMismatchError: elements of different or volumetric dimension.
        DegenerateGeometryError: a node whose accumulated normal vanishes.
    """
    elements = list(elements)
    if not elements:
        return {}
    settings = get_settings()
    if order is None:
        order = settings.normal_order
    dim = elements[0].reference.dim
    if any(e.reference.dim != dim for e in elements):
        raise ShapeMismatchError("All elements must have the same reference dimension.")
    if dim not in (1, 2):
        raise ShapeMismatchError(f"Normals are undefined for {dim}-dimensional elements.")
    D = dim + 1

    # phase 1: accumulate over every element before normalising
    acc = defaultdict(lambda: np.zeros(D))
    mag = defaultdict(float)
    for element in elements:
        for ip in get_integration_points(element.reference, order):
            J = jacobian(element, ip, time, configuration)
            if J.shape[1] != D:
                raise ShapeMismatchError(
                    f"{element!r} has {J.shape[1]}D geometry, expected {D}D.")
            c = ip.weight * _surface_normal(J)
            N = basis(element, ip)
            c_norm = np.linalg.norm(c)
            for i, node_id in enumerate(element.connectivity):
                acc[node_id] += c * N[i]
                mag[node_id] += c_norm * abs(N[i])

    # phase 2: normalise and build frames
    frames: Dict[int, np.ndarray] = {}
    for node_id in sorted(acc):
        n = acc[node_id]
        length = np.linalg.norm(n)
        if mag[node_id] == 0.0 or length <= settings.degeneracy_tol * mag[node_id]:
            raise DegenerateGeometryError("Accumulated normal has zero length", node=node_id)
        frames[node_id] = _frame(n / length)

    for element in elements:
        _store(element, time, frames)
    logger.debug(f"Normal-tangential frames for {len(frames)} nodes on "
                 f"{len(elements)} elements at time {time} ({configuration}).")
    return frames


def calculate_element_normal_tangential_coordinates(element, time: float,
                                                    configuration: str = "reference"):
    """
    Frames of a single element evaluated at its reference nodes, without averaging.

    Returns:
        np.ndarray: frames of shape ``(n, D, D)`` in connectivity order.
    """
    frames = {}
    for i, node_id in enumerate(element.connectivity):
        J = jacobian(element, element.reference.node(i), time, configuration)
        n = _surface_normal(J)
        length = np.linalg.norm(n)
        if length == 0.0:
            raise DegenerateGeometryError("Normal has zero length", element=element, node=node_id)
        frames[node_id] = _frame(n / length)
    _store(element, time, frames)
    return np.array([frames[node_id] for node_id in element.connectivity])
