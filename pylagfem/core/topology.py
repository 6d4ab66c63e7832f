from dataclasses import dataclass, field
from numbers import Integral
from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple, Union

from pylagfem.core.field import Field, FieldStore
from pylagfem.errors import ShapeMismatchError
from pylagfem.fem.reference import ReferenceElement, get_reference


@dataclass(slots=True, eq=False)
class Element:
    reference: Union[str, ReferenceElement]   # resolved to a ReferenceElement
    connectivity: Tuple[int, ...]             # Global node ids, in reference-node order
    id: Optional[int] = None
    tag: str = ""
    fields: FieldStore = field(init=False, repr=False)

    def __post_init__(self):
        if isinstance(self.reference, str):
            self.reference = get_reference(self.reference)
        self.connectivity = tuple(int(c) for c in self.connectivity)
        if len(self.connectivity) != self.reference.n_nodes:
            raise ShapeMismatchError(
                f"{self.reference.name} has {self.reference.n_nodes} nodes but the "
                f"connectivity {self.connectivity} has {len(self.connectivity)}.")
        self.fields = FieldStore(self.reference.n_nodes)

    def __setattr__(self, name, value):
        # connectivity and reference are set once, in __post_init__
        if name in ("reference", "connectivity") and hasattr(self, "fields"):
            raise AttributeError(f"'{name}' of {self!r} cannot be reassigned.")
        object.__setattr__(self, name, value)

    def __repr__(self):
        ident = "" if self.id is None else f"{self.id}, "
        return f"Element({ident}{self.reference.name}, {self.connectivity})"

    def __len__(self):
        return self.reference.n_nodes

    def __getitem__(self, name: str) -> Field:
        return self.fields.field(name)

    def __contains__(self, name: str) -> bool:
        return name in self.fields

    @property
    def dim(self) -> int:
        """Reference (manifold) dimension."""
        return self.reference.dim

    def contains_node(self, node_id: int) -> bool:
        return node_id in self.connectivity

    def update(self, name: str, data: Mapping[int, Any], time: Optional[float] = None,
               constant: Optional[bool] = None) -> Field:
        """Set field ``name`` from data keyed by global node id."""
        return self.fields.project(name, data, self.connectivity, time=time, constant=constant)


def update_elements(elements: Iterable[Element], name: str, data,
                    time: Optional[float] = None, constant: Optional[bool] = None,
                    node_map: Optional[bool] = None) -> None:
    """
    Update field ``name`` on several elements at once.

    Node maps (global node id -> value) are projected through each element's
    connectivity; other data is set as is. With ``node_map=None`` a non-empty
    mapping with integer keys is taken as a node map, so a time series keyed
    by integer times needs ``node_map=False``.
    """
    if node_map is None:
        node_map = _is_node_map(data)
    elif node_map and not isinstance(data, Mapping):
        raise TypeError(f"A node map must be a mapping, got {type(data).__name__}.")
    for element in elements:
        if node_map:
            element.update(name, data, time=time, constant=constant)
        else:
            element.fields.set(name, data, time=time, constant=constant)


def _is_node_map(data) -> bool:
    return isinstance(data, Mapping) and len(data) > 0 and all(
        isinstance(k, Integral) and not isinstance(k, bool) for k in data)


def get_nodes(elements: Iterable[Element]) -> Tuple[int, ...]:
    """Sorted unique node ids of a set of elements."""
    nodes = set()
    for element in elements:
        nodes.update(element.connectivity)
    return tuple(sorted(nodes))


def find_elements(elements: Iterable[Element], nodes: Sequence[int]):
    """Elements containing at least one of ``nodes``, in input order."""
    nodes = set(nodes)
    return [e for e in elements if nodes.intersection(e.connectivity)]
