"""pylagfem.core.field
Per-element named fields, either time invariant or a time series of increments.
"""
import bisect
import logging
from dataclasses import dataclass
from numbers import Real
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from pylagfem.config import get_settings
from pylagfem.errors import FieldNotFoundError, ShapeMismatchError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Increment:
    time: Optional[float]   # None for a time-invariant value
    data: Any


def _coerce(value, n_nodes: int, constant: Optional[bool], name: str):
    """Validate one value and return (data, constant).

    Scalars are constant. Arrays are nodal (leading axis == n_nodes) unless
    ``constant`` is True.
    """
    try:
        arr = np.array(value, dtype=float)
    except (TypeError, ValueError) as exc:
        raise ShapeMismatchError(f"Field '{name}': cannot read {value!r} as numeric data "
                                 f"({exc}).") from None
    if constant is None:
        constant = arr.ndim == 0
    if not constant and (arr.ndim == 0 or arr.shape[0] != n_nodes):
        raise ShapeMismatchError(
            f"Field '{name}': nodal data of shape {arr.shape} does not match "
            f"the element's {n_nodes} nodes.")
    arr.setflags(write=False)
    return (arr[()] if arr.ndim == 0 else arr), constant


def _is_pair(value) -> bool:
    return (isinstance(value, tuple) and len(value) == 2
            and isinstance(value[0], Real) and not isinstance(value[0], bool))


def _pairs(value) -> Optional[List[Tuple[float, Any]]]:
    """``(time, data)`` tuples as a list of pairs; None for anything else.

    Only tuples are pairs. Array data is passed as lists or ndarrays.
    """
    if _is_pair(value):
        return [value]
    if (isinstance(value, (list, tuple)) and value
            and all(_is_pair(item) for item in value)):
        return list(value)
    return None


class Field:
    """
    A named field on one element.

    A time-invariant field holds a single value valid at every time. A
    time-varying field holds increments with strictly increasing times and
    is looked up by exact time: there is no interpolation between stored
    times.
    """

    __slots__ = ("name", "constant", "time_varying", "_increments")

    def __init__(self, increments: Sequence[Increment], constant: bool,
                 time_varying: bool, name: str = ""):
        self.name = name
        self.constant = bool(constant)
        self.time_varying = bool(time_varying)
        self._increments = list(increments)
        if not self.time_varying and len(self._increments) != 1:
            raise ValueError(f"Field '{name}': a time-invariant field holds exactly one value.")
        if self.time_varying:
            times = [inc.time for inc in self._increments]
            if any(t1 <= t0 for t0, t1 in zip(times, times[1:])):
                raise ValueError(f"Field '{name}': increment times must be strictly "
                                 f"increasing, got {times}.")

    # ------------------------------------------------------------------
    # constructors
    # ------------------------------------------------------------------
    @classmethod
    def invariant(cls, data, constant: bool, name: str = "") -> "Field":
        return cls([Increment(None, data)], constant, False, name)

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[float, Any]], constant: bool,
                   name: str = "") -> "Field":
        """Time series from (time, data) pairs, sorted on insert."""
        increments = sorted((Increment(float(t), d) for t, d in pairs),
                            key=lambda inc: inc.time)
        return cls(increments, constant, True, name)

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    def __len__(self):
        return len(self._increments)

    def __repr__(self):
        kind = "constant" if self.constant else "nodal"
        if not self.time_varying:
            return f"Field({self.name!r}, {kind}, time invariant)"
        return f"Field({self.name!r}, {kind}, times={self.times()})"

    def times(self) -> Tuple[float, ...]:
        return tuple(inc.time for inc in self._increments if inc.time is not None)

    def last(self):
        return self._increments[-1].data

    def _index(self, time: float, tol: float) -> Optional[int]:
        times = [inc.time for inc in self._increments]
        k = bisect.bisect_left(times, time)
        for j in (k - 1, k):
            if 0 <= j < len(times) and abs(times[j] - time) <= tol:
                return j
        return None

    def at(self, time: Optional[float] = None, tol: Optional[float] = None):
        """Value at ``time``. A time-varying field without ``time`` gives its last value."""
        if not self.time_varying:
            return self._increments[0].data
        if time is None:
            if not self._increments:
                raise FieldNotFoundError(self.name)
            return self.last()
        if tol is None:
            tol = get_settings().time_tol
        j = self._index(float(time), tol)
        if j is None:
            raise FieldNotFoundError(self.name, time)
        return self._increments[j].data

    # ------------------------------------------------------------------
    # mutation
    # ------------------------------------------------------------------
    def push(self, time: float, data, tol: Optional[float] = None) -> None:
        """Insert an increment at ``time``, overwriting one already stored there."""
        if not self.time_varying:
            raise ValueError(f"Field '{self.name}' is time invariant; cannot push at time {time}.")
        if tol is None:
            tol = get_settings().time_tol
        time = float(time)
        j = self._index(time, tol)
        if j is not None:
            self._increments[j] = Increment(self._increments[j].time, data)
            return
        times = [inc.time for inc in self._increments]
        self._increments.insert(bisect.bisect_left(times, time), Increment(time, data))


class FieldStore:
    """Mapping from field name to :class:`Field` for an element with ``n_nodes`` nodes."""

    def __init__(self, n_nodes: int):
        self.n_nodes = int(n_nodes)
        self._fields: Dict[str, Field] = {}

    def __contains__(self, name) -> bool:
        return name in self._fields

    def __len__(self):
        return len(self._fields)

    def __iter__(self):
        return iter(self._fields)

    def has(self, name: str) -> bool:
        return name in self._fields

    def names(self) -> Tuple[str, ...]:
        return tuple(self._fields)

    def field(self, name: str) -> Field:
        try:
            return self._fields[name]
        except KeyError:
            raise FieldNotFoundError(name) from None

    def get(self, name: str, time: Optional[float] = None, tol: Optional[float] = None):
        return self.field(name).at(time, tol)

    def set(self, name: str, value, time: Optional[float] = None,
            constant: Optional[bool] = None) -> Field:
        """
        Insert or overwrite field ``name``.

        Args:
            value: data, a :class:`Field`, a mapping ``{time: data}``, a
                ``(time, data)`` tuple or a sequence of such tuples. Mappings
                and tuples give time series (sorted on insert). Nodal or
                constant array data is passed as a list or ndarray.
            time: time stamp of ``value`` when it is plain data. With
                ``time`` the data becomes a one-increment time series,
                otherwise it is time invariant.
            constant: force the constant (True) or nodal (False) kind.
                Defaults to constant for scalars and nodal for arrays.

        Raises:
            ShapeMismatchError: nodal data whose leading length is not n_nodes.
            ValueError: ``time`` given together with a mapping or a Field, or
                an empty time series.
        """
        if time is not None and isinstance(value, (Field, Mapping)):
            raise ValueError(f"Field '{name}': 'time' cannot be combined with a time series "
                             f"or a Field.")
        if isinstance(value, Field):
            field = self._copy(name, value)
        elif isinstance(value, Mapping):
            field = self._series(name, value.items(), constant)
        elif time is not None:
            field = self._series(name, [(time, value)], constant)
        elif _pairs(value) is not None:
            field = self._series(name, _pairs(value), constant)
        else:
            data, is_const = _coerce(value, self.n_nodes, constant, name)
            field = Field.invariant(data, is_const, name)
        self._fields[name] = field
        return field

    def _copy(self, name, value: Field) -> Field:
        increments = []
        for inc in value._increments:
            data, _ = _coerce(inc.data, self.n_nodes, value.constant, name)
            increments.append(Increment(inc.time, data))
        return Field(increments, value.constant, value.time_varying, name)

    def _series(self, name, pairs, constant) -> Field:
        coerced = []
        kinds = set()
        for t, v in pairs:
            data, is_const = _coerce(v, self.n_nodes, constant, name)
            kinds.add(is_const)
            coerced.append((t, data))
        if not coerced:
            raise ValueError(f"Field '{name}': empty time series.")
        if len(kinds) > 1:
            raise ShapeMismatchError(f"Field '{name}': increments mix constant and nodal data.")
        return Field.from_pairs(coerced, kinds.pop(), name)

    def update(self, name: str, time: float, value, constant: Optional[bool] = None) -> Field:
        """Push ``value`` at ``time`` into time series ``name``, creating it if absent."""
        field = self._fields.get(name)
        if field is None or not field.time_varying:
            return self.set(name, value, time=time, constant=constant)
        data, is_const = _coerce(value, self.n_nodes,
                                 field.constant if constant is None else constant, name)
        if is_const != field.constant:
            raise ShapeMismatchError(f"Field '{name}': cannot mix constant and nodal data.")
        field.push(time, data)
        return field

    def project(self, name: str, data: Mapping[int, Any], connectivity: Sequence[int],
                time: Optional[float] = None, constant: Optional[bool] = None) -> Field:
        """Set field ``name`` from node-keyed ``data``, ordered by ``connectivity``."""
        if len(connectivity) != self.n_nodes:
            raise ShapeMismatchError(f"Connectivity of length {len(connectivity)} for "
                                     f"{self.n_nodes} nodes.")
        values = []
        for node_id in connectivity:
            try:
                values.append(data[node_id])
            except KeyError:
                raise FieldNotFoundError(
                    name, time, f"Field '{name}' has no value for node {node_id}.") from None
        logger.debug(f"Projected field '{name}' through connectivity {tuple(connectivity)}.")
        data, is_const = _coerce(values, self.n_nodes,
                                 False if constant is None else constant, name)
        if time is None:
            field = Field.invariant(data, is_const, name)
            self._fields[name] = field
            return field
        return self.update(name, time, data, constant=is_const)
