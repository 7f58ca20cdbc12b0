"""Fixtures compartilhadas dos testes."""

import pytest

from geozonal.crs import default_registry

from helpers import square


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def big_square():
    return square("Q", 0.0, 0.0, size=4.0)


@pytest.fixture
def strip():
    """Três quadrados unitários lado a lado no eixo x."""
    return [square("A", 0.0, 0.0), square("B", 1.0, 0.0), square("C", 2.0, 0.0)]
