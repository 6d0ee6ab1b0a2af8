"""Value types shared by the grid, planner and event layers."""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple, List, Optional

Coordinate = Tuple[int, int]  # grid cell (x, y)


class Direction(Enum):
    """Single-axis move taken to arrive at a step. UP means y decreases."""
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"

    @classmethod
    def between(cls, a: Coordinate, b: Coordinate) -> "Direction":
        """Direction of the unit move from `a` to the 4-adjacent cell `b`."""
        dx, dy = b[0] - a[0], b[1] - a[1]
        if abs(dx) + abs(dy) != 1:
            raise ValueError(f"{a} and {b} are not 4-adjacent")
        if dx > 0:
            return cls.RIGHT
        if dx < 0:
            return cls.LEFT
        return cls.DOWN if dy > 0 else cls.UP

    @property
    def is_horizontal(self) -> bool:
        return self in (Direction.LEFT, Direction.RIGHT)


class Priority(Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class Severity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Product:
    """Catalog entry. `location` is only authoritative once placed on a grid."""
    id: str
    name: str
    category: str
    price: float
    aisle: str
    location: Optional[Coordinate] = None
    image: str = ""


@dataclass(frozen=True)
class ShoppingListItem:
    product: Product
    quantity: int = 1


@dataclass(frozen=True)
class NavigationStep:
    x: int
    y: int
    direction: Direction
    instruction: str
    distance: int = 2

    @property
    def coordinate(self) -> Coordinate:
        return (self.x, self.y)


@dataclass(frozen=True)
class Route:
    """
    Ordered walk from `start` through every requested waypoint.

    `start` is where the shopper stands when the route is planned and is not
    itself a step. `waypoint_indices[k]` is the index of the step at which
    waypoint k is reached. A waypoint that repeats the previous position adds
    no steps and shares the index of the last step emitted so far, which is
    -1 while the route has no steps yet (a waypoint equal to `start`).
    """
    start: Coordinate
    steps: Tuple[NavigationStep, ...]
    waypoints: Tuple[Coordinate, ...] = ()
    waypoint_indices: Tuple[int, ...] = ()

    def __len__(self) -> int:
        return len(self.steps)

    def coordinates(self) -> List[Coordinate]:
        return [s.coordinate for s in self.steps]

    @property
    def is_empty(self) -> bool:
        return not self.steps

    @property
    def total_distance(self) -> int:
        return sum(s.distance for s in self.steps)


@dataclass(frozen=True)
class VoiceCommand:
    kind: str  # "direction", "progress", "arrival", "suggestion", "complete"
    message: str
    priority: Priority = Priority.NORMAL
    step_index: Optional[int] = None
    product_id: Optional[str] = None


@dataclass(frozen=True)
class ProductSuggestion:
    product: Product
    reason: str
    distance: int
    source_product_id: str
    priority: Priority = Priority.NORMAL


@dataclass(frozen=True)
class TrafficAlert:
    aisle: int
    severity: Severity
    description: str
    estimated_delay: int  # minutes
    timestamp: float      # engine clock, seconds
