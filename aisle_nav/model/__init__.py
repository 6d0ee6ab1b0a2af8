"""Model package for the aisle navigation engine."""

from .types import (Coordinate, Direction, Priority, Severity, Product,
                    ShoppingListItem, NavigationStep, Route, VoiceCommand,
                    ProductSuggestion, TrafficAlert)
from .state import MovementPhase, MovementState, NavigationSnapshot
from .grid import CellKind, PathDirection, GridCell, Grid, GridMapBuilder
from .planner import RoutePlanner
from .movement import MovementSimulator
from .events import EventGenerator
from .catalog import ProductCatalog, load_catalog
from .traffic import TrafficMonitor
from .engine import NavigationEngine

__all__ = [
    'Coordinate',
    'Direction',
    'Priority',
    'Severity',
    'Product',
    'ShoppingListItem',
    'NavigationStep',
    'Route',
    'VoiceCommand',
    'ProductSuggestion',
    'TrafficAlert',
    'MovementPhase',
    'MovementState',
    'NavigationSnapshot',
    'CellKind',
    'PathDirection',
    'GridCell',
    'Grid',
    'GridMapBuilder',
    'RoutePlanner',
    'MovementSimulator',
    'EventGenerator',
    'ProductCatalog',
    'load_catalog',
    'TrafficMonitor',
    'NavigationEngine',
]
