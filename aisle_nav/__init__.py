"""Grid-based in-store navigation engine."""

from .config import EngineConfig, AdvancePolicy, load_config
from .errors import (NavigationError, ConfigError, LayoutError, CatalogError,
                     ShelfCapacityError, FailureReason, RouteFailure)
from .logging_setup import setup_logging
from .model import NavigationEngine

__version__ = "0.1.0"

__all__ = [
    'EngineConfig',
    'AdvancePolicy',
    'load_config',
    'NavigationError',
    'ConfigError',
    'LayoutError',
    'CatalogError',
    'ShelfCapacityError',
    'FailureReason',
    'RouteFailure',
    'setup_logging',
    'NavigationEngine',
]
