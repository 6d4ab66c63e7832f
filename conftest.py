# conftest.py
import numpy as np
import pytest

from pylagfem.core import Element
from pylagfem.config import get_settings


@pytest.fixture(autouse=True)
def fresh_settings():
    """Re-read PYLAGFEM_* variables for every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def make_element():
    """Element of the given type with nodes numbered 1..n and their coordinates as geometry."""
    def _make(element_type, coordinates, connectivity=None, **kwargs):
        coordinates = np.asarray(coordinates, dtype=float)
        if connectivity is None:
            connectivity = tuple(range(1, len(coordinates) + 1))
        element = Element(element_type, connectivity, **kwargs)
        element.fields.set("geometry", coordinates)
        return element
    return _make
