"""Exceptions and structured failure values for the aisle navigation engine."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Any


class NavigationError(Exception):
    """Base exception for all aisle navigation errors"""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(self.message)


class ConfigError(NavigationError):
    """Raised when a configuration file cannot be interpreted"""


class LayoutError(NavigationError):
    """Raised when a store layout does not fit inside its grid"""


class CatalogError(NavigationError):
    """Raised when a catalog file is malformed or a product id is unknown"""


class ShelfCapacityError(NavigationError):
    """Raised when more products are requested than there are shelf cells"""

    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        message = (f"Cannot place {requested} products: "
                   f"only {available} shelf cells available")
        super().__init__(message=message,
                         details={'requested': requested, 'available': available})


class FailureReason(Enum):
    """Why a route could not be produced."""
    UNREACHABLE = "unreachable"
    INVALID_LOCATION = "invalid_location"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    UNKNOWN_PRODUCT = "unknown_product"


@dataclass(frozen=True)
class RouteFailure:
    """
    Recoverable outcome returned instead of a Route.

    `waypoint_index` names the waypoint (or product position in the list)
    that failed; `requested`/`available` are only set for capacity failures.
    """
    reason: FailureReason
    message: str
    waypoint_index: Optional[int] = None
    product_id: Optional[str] = None
    requested: Optional[int] = None
    available: Optional[int] = None

    @classmethod
    def from_capacity_error(cls, error: ShelfCapacityError) -> "RouteFailure":
        return cls(
            reason=FailureReason.CAPACITY_EXCEEDED,
            message=error.message,
            requested=error.requested,
            available=error.available
        )
