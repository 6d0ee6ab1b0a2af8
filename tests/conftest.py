"""
Pytest configuration and shared fixtures for aisle navigation tests
"""

from pathlib import Path

import numpy as np
import pytest

from aisle_nav.config import EngineConfig, TrafficConfig
from aisle_nav.model.catalog import load_catalog
from aisle_nav.model.engine import NavigationEngine
from aisle_nav.model.grid import Grid
from aisle_nav.model.types import Product, ShoppingListItem


@pytest.fixture(scope="session")
def configs_dir():
    """Return path to the sample configs directory"""
    return Path(__file__).parent.parent / "configs"


@pytest.fixture(scope="session")
def catalog():
    """Default product catalog shipped with the package"""
    return load_catalog()


@pytest.fixture
def engine_config():
    """Default configuration with traffic disabled"""
    return EngineConfig(traffic=TrafficConfig(enabled=False))


@pytest.fixture
def engine(engine_config, catalog):
    """Engine with a seeded RNG"""
    return NavigationEngine(engine_config, catalog=catalog,
                            rng=np.random.default_rng(7))


@pytest.fixture
def shopping_list(catalog):
    """Bread, milk and pasta, in that order"""
    return [ShoppingListItem(catalog.get("7")),
            ShoppingListItem(catalog.get("1")),
            ShoppingListItem(catalog.get("11"))]


def open_floor_rows(width=18, height=24, entrance=(9, 23), shelves=()):
    """Aisle-only floor inside a border wall, with optional shelf cells."""
    rows = []
    for y in range(height):
        if y in (0, height - 1):
            row = ['#'] * width
        else:
            row = ['#'] + ['a'] * (width - 2) + ['#']
        rows.append(row)
    ex, ey = entrance
    rows[ey][ex] = 'E'
    for x, y in shelves:
        rows[y][x] = 'P'
    return [''.join(r) for r in rows]


@pytest.fixture
def floor_rows():
    """Factory for open-floor ASCII layouts"""
    return open_floor_rows


@pytest.fixture
def product_a():
    return Product(id="a", name="Apples", category="Produce", price=1.0, aisle="1")


@pytest.fixture
def product_b():
    return Product(id="b", name="Bananas", category="Produce", price=2.0, aisle="1")


@pytest.fixture
def open_floor(product_a, product_b):
    """Two shelves at (3, 5) and (3, 11) on an otherwise open floor"""
    rows = open_floor_rows(shelves=[(3, 5), (3, 11)])
    return Grid.from_rows(rows, {(3, 5): product_a, (3, 11): product_b})


# Markers for different test types
def pytest_configure(config):
    """Configure custom pytest markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "slow: Slow running tests"
    )
