"""State snapshot dataclasses for the aisle navigation engine."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from .grid import Grid
from .types import Route, NavigationStep


class MovementPhase(Enum):
    """Possible states of the step cursor."""
    IDLE = "idle"
    APPROACHING = "approaching"
    ARRIVED = "arrived"


@dataclass(frozen=True)
class MovementState:
    """Continuous shopper pose at one tick."""
    x: float
    y: float
    heading: float  # radians, (-pi, pi]
    speed: float    # cells per second
    moving: bool


IDLE_MOVEMENT = MovementState(x=0.0, y=0.0, heading=0.0, speed=0.0, moving=False)


@dataclass(frozen=True)
class NavigationSnapshot:
    """Everything a consumer needs to render one frame, replaced as a unit."""
    grid: Optional[Grid]
    route: Optional[Route]
    step_index: int
    phase: MovementPhase
    movement: MovementState
    clock: float

    @property
    def current_step(self) -> Optional[NavigationStep]:
        if self.route is None or not 0 <= self.step_index < len(self.route.steps):
            return None
        return self.route.steps[self.step_index]

    def to_csv_row(self) -> Dict:
        """Convert to CSV-compatible format."""
        return {
            "clock": round(self.clock, 4),
            "step_index": self.step_index,
            "x": round(self.movement.x, 4),
            "y": round(self.movement.y, 4),
            "heading": round(self.movement.heading, 4),
            "speed": round(self.movement.speed, 4),
            "phase": self.phase.value
        }
