"""pylagfem.errors
Exception types raised by the element kernel.
"""


class PyLagFemError(Exception):
    """Base class of every error raised by pylagfem."""


class DegenerateGeometryError(PyLagFemError, ValueError):
    """A matrix that has to be inverted is singular, or a normal has zero length.

    Args:
        message (str): what failed.
        element: the element being evaluated, if any.
        node (int | None): the global node id involved, if any.
    """

    def __init__(self, message: str, element=None, node=None):
        context = []
        if element is not None:
            context.append(f"element {element!r}")
        if node is not None:
            context.append(f"node {node}")
        if context:
            message = f"{message} ({', '.join(context)})"
        super().__init__(message)
        self.element = element
        self.node = node


class DegenerateReferenceElementError(DegenerateGeometryError):
    """The reference-node layout does not define a unique interpolation basis."""


class FieldNotFoundError(PyLagFemError, KeyError):
    """A field is not set, or a time-varying field has no value at the requested time."""

    def __init__(self, name: str, time=None, message: str = None):
        if message is None:
            if time is None:
                message = f"Field '{name}' not found."
            else:
                message = f"Field '{name}' not found at time {time}."
        super().__init__(message)
        self.name = name
        self.time = time
        self.message = message

    def __str__(self):
        # KeyError would repr() the message
        return self.message


class ShapeMismatchError(PyLagFemError, ValueError):
    """Connectivity or field data does not match the element's node count."""
