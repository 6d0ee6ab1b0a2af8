"""Shopper movement along a route: step cursor plus continuous kinematics."""

import math
from typing import Optional

from ..config import AdvancePolicy, MovementConfig
from .state import IDLE_MOVEMENT, MovementPhase, MovementState
from .types import Route


def normalize_angle(angle: float) -> float:
    """Wrap an angle into (-pi, pi]."""
    wrapped = math.atan2(math.sin(angle), math.cos(angle))
    if wrapped <= -math.pi:
        return math.pi
    return wrapped


class MovementContext:
    """Mutable simulation state owned by exactly one simulator."""

    def __init__(self):
        self.route: Optional[Route] = None
        self.step_index = 0
        self.phase = MovementPhase.IDLE
        self.state = IDLE_MOVEMENT


class MovementSimulator:
    """
    Advances a simulated shopper along the installed route.

    The step index is the single source of truth. Which event moves it is
    decided by the advance policy:

    - ARRIVAL: each tick steers toward steps[index + 1]; coming within the
      arrival threshold advances the index.
    - INTERVAL: an external timer calls `advance()`; ticks only steer the
      continuous position toward steps[index] and never touch the index.

    `advance()` and `retreat()` are available under both policies for
    manual stepping.
    """

    def __init__(self, config: Optional[MovementConfig] = None,
                 policy: AdvancePolicy = AdvancePolicy.ARRIVAL):
        self.config = config or MovementConfig()
        self.policy = policy
        self.context = MovementContext()

    @property
    def route(self) -> Optional[Route]:
        return self.context.route

    @property
    def step_index(self) -> int:
        return self.context.step_index

    @property
    def phase(self) -> MovementPhase:
        return self.context.phase

    @property
    def state(self) -> MovementState:
        return self.context.state

    def reset(self, route: Optional[Route]) -> None:
        """Install a route and place the shopper on its first step."""
        ctx = self.context
        ctx.route = route
        ctx.step_index = 0
        if route is None or route.is_empty:
            ctx.phase = MovementPhase.IDLE
            ctx.state = IDLE_MOVEMENT
            return

        first = route.steps[0]
        ctx.state = MovementState(x=float(first.x), y=float(first.y),
                                  heading=0.0, speed=0.0, moving=False)
        ctx.phase = (MovementPhase.ARRIVED if len(route.steps) == 1
                     else MovementPhase.APPROACHING)

    def _target_index(self) -> Optional[int]:
        ctx = self.context
        if self.policy == AdvancePolicy.INTERVAL:
            return ctx.step_index
        if ctx.step_index + 1 < len(ctx.route.steps):
            return ctx.step_index + 1
        return None

    def _move_cursor(self, index: int) -> int:
        ctx = self.context
        ctx.step_index = index
        if index >= len(ctx.route.steps) - 1:
            ctx.phase = MovementPhase.ARRIVED
        else:
            ctx.phase = MovementPhase.APPROACHING
        return index

    def advance(self) -> Optional[int]:
        """Move the cursor one step forward. Returns the new index, or None at the end."""
        ctx = self.context
        if ctx.route is None or ctx.step_index >= len(ctx.route.steps) - 1:
            return None
        return self._move_cursor(ctx.step_index + 1)

    def retreat(self) -> Optional[int]:
        """Move the cursor one step back. Returns the new index, or None at the start."""
        ctx = self.context
        if ctx.route is None or ctx.route.is_empty or ctx.step_index == 0:
            return None
        return self._move_cursor(ctx.step_index - 1)

    def tick(self, dt: Optional[float] = None) -> Optional[int]:
        """
        Integrate one fixed time step.

        Returns the new step index when this tick reached a step under the
        ARRIVAL policy, otherwise None.
        """
        ctx = self.context
        if ctx.phase == MovementPhase.IDLE or ctx.route is None:
            return None
        dt = self.config.dt if dt is None else dt
        cfg = self.config
        state = ctx.state

        target_index = self._target_index()
        if target_index is None:
            # End of route under ARRIVAL: stand still
            ctx.state = MovementState(x=state.x, y=state.y, heading=state.heading,
                                      speed=0.0, moving=False)
            return None

        target = ctx.route.steps[target_index]
        dx = target.x - state.x
        dy = target.y - state.y
        distance = math.hypot(dx, dy)

        if distance < cfg.arrival_threshold:
            if self.policy == AdvancePolicy.ARRIVAL:
                return self._move_cursor(target_index)
            ctx.state = MovementState(x=state.x, y=state.y, heading=state.heading,
                                      speed=0.0, moving=False)
            return None

        # Ease heading toward the target instead of snapping
        error = normalize_angle(math.atan2(dy, dx) - state.heading)
        heading = normalize_angle(state.heading + error * cfg.heading_ease)

        if abs(error) < cfg.alignment_threshold:
            speed = min(state.speed + cfg.acceleration * dt, cfg.max_speed)
        else:
            speed = max(state.speed - cfg.deceleration * dt, 0.0)
        speed = min(max(speed, 0.0), cfg.max_speed)

        x, y = state.x, state.y
        if speed > 0:
            travel = min(speed * dt, distance)
            x += math.cos(heading) * travel
            y += math.sin(heading) * travel

        ctx.state = MovementState(x=x, y=y, heading=heading,
                                  speed=speed, moving=speed > 0)
        return None
