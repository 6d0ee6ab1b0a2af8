"""Navigation engine orchestrating grid, planner, movement and events."""

import logging
import math
from dataclasses import replace
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..config import AdvancePolicy, EngineConfig, load_config
from ..errors import FailureReason, RouteFailure, ShelfCapacityError
from ..logging_setup import setup_logging
from .catalog import DEFAULT_CATALOG_PATH, ProductCatalog, load_catalog
from .events import EventGenerator, summarize_shopping_list
from .grid import Grid, GridMapBuilder
from .movement import MovementSimulator
from .planner import RoutePlanner, estimate_distance
from .state import IDLE_MOVEMENT, MovementPhase, MovementState, NavigationSnapshot
from .timers import TimerQueue
from .traffic import TrafficMonitor
from .types import (Coordinate, ProductSuggestion, Route, ShoppingListItem,
                    TrafficAlert, VoiceCommand)

logger = logging.getLogger(__name__)

AUTO_ADVANCE_TIMER = "auto_advance"
SUGGESTION_TIMER = "suggestion_display"
TRAFFIC_TIMER = "traffic"


class NavigationEngine:
    """
    Owns one shopper's navigation session.

    Implements:
    1. Shopping list resolution and grid construction
    2. Route planning and atomic route installation
    3. Tick loop: clock, timers, movement, step advances
    4. Event derivation into drainable queues

    Grid, route and movement are published together as an immutable
    NavigationSnapshot; every change replaces the snapshot.
    """

    def __init__(self, config: Optional[EngineConfig] = None,
                 catalog: Optional[ProductCatalog] = None,
                 rng: Optional[np.random.Generator] = None):
        self.config = config or EngineConfig()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        if catalog is None:
            catalog = load_catalog(self.config.catalog_path or DEFAULT_CATALOG_PATH)
        self.catalog = catalog

        self.builder = GridMapBuilder(self.config.layout, self.config.grid)
        self.events = EventGenerator(self.config.navigation, self.config.suggestions)
        self.traffic = TrafficMonitor(self.config.traffic, self.rng,
                                      aisle_count=self.config.layout.aisle_count)
        self.simulator = MovementSimulator(self.config.movement,
                                           self.config.navigation.advance_policy)
        self.timers = TimerQueue()

        self.clock = 0.0
        self.is_navigating = False
        self.shopping_list: Tuple[ShoppingListItem, ...] = ()

        # Layout and placements only; annotations live on the published grid
        self._base_grid: Optional[Grid] = None
        self._visited_ids: frozenset = frozenset()
        self._visited_cells: Tuple[Coordinate, ...] = ()
        self._declined_ids: frozenset = frozenset()

        self._voice_queue: List[VoiceCommand] = []
        self._suggestions: List[ProductSuggestion] = []
        self._alerts: List[TrafficAlert] = []

        self._snapshot = NavigationSnapshot(
            grid=None, route=None, step_index=0, phase=MovementPhase.IDLE,
            movement=IDLE_MOVEMENT, clock=0.0
        )

    @classmethod
    def from_config_file(cls, config_path: Union[str, Path],
                         rng: Optional[np.random.Generator] = None) -> "NavigationEngine":
        """Load a YAML config, apply its log level and build an engine from it."""
        config = load_config(Path(config_path))
        setup_logging(config.log_level)
        logger.info("Loaded configuration from %s", config_path)
        return cls(config, rng=rng)

    # Published state

    @property
    def snapshot(self) -> NavigationSnapshot:
        return self._snapshot

    @property
    def grid(self) -> Optional[Grid]:
        return self._snapshot.grid

    @property
    def route(self) -> Optional[Route]:
        return self._snapshot.route

    @property
    def movement(self) -> MovementState:
        return self._snapshot.movement

    @property
    def step_index(self) -> int:
        return self._snapshot.step_index

    @property
    def phase(self) -> MovementPhase:
        return self._snapshot.phase

    @property
    def visited_product_ids(self) -> frozenset:
        return self._visited_ids

    @property
    def visited_cells(self) -> Tuple[Coordinate, ...]:
        return self._visited_cells

    @property
    def declined_product_ids(self) -> frozenset:
        return self._declined_ids

    def drain_voice_commands(self) -> List[VoiceCommand]:
        drained, self._voice_queue = self._voice_queue, []
        return drained

    def drain_suggestions(self) -> List[ProductSuggestion]:
        drained, self._suggestions = self._suggestions, []
        return drained

    def drain_traffic_alerts(self) -> List[TrafficAlert]:
        drained, self._alerts = self._alerts, []
        return drained

    def _publish(self, refresh_grid: bool = False) -> None:
        """Replace the snapshot; rebuild grid annotations only when asked."""
        sim = self.simulator
        grid = self._snapshot.grid
        if refresh_grid:
            grid = (self._base_grid.with_navigation(sim.route, sim.step_index,
                                                    self.shopping_list, self._visited_ids)
                    if self._base_grid is not None else None)
        self._snapshot = NavigationSnapshot(
            grid=grid,
            route=sim.route,
            step_index=sim.step_index,
            phase=sim.phase,
            movement=sim.state,
            clock=self.clock
        )

    # Route construction

    def _merge(self, items: Sequence[ShoppingListItem]) -> List[ShoppingListItem]:
        """Resolve against the catalog and fold repeated products into one entry."""
        merged: Dict[str, ShoppingListItem] = {}
        for item in items:
            if not isinstance(item, ShoppingListItem):
                item = ShoppingListItem(*item)
            resolved = self.catalog.resolve(item)
            existing = merged.get(resolved.product.id)
            if existing is None:
                merged[resolved.product.id] = resolved
            else:
                merged[resolved.product.id] = replace(
                    existing, quantity=existing.quantity + resolved.quantity)
        return list(merged.values())

    @staticmethod
    def _place(items: Sequence[ShoppingListItem], grid: Grid) -> Tuple[ShoppingListItem, ...]:
        """Copy items with locations taken from the grid placement."""
        return tuple(
            replace(item, product=replace(item.product,
                                          location=grid.location_of(item.product.id)))
            for item in items
        )

    def _plan(self, grid: Grid, start: Coordinate,
              items: Sequence[ShoppingListItem],
              forbidden: Sequence[Coordinate] = ()) -> Union[Route, RouteFailure]:
        planner = RoutePlanner(grid, self.config.navigation.cell_distance)
        final = []
        if self.config.navigation.include_checkout and grid.checkout is not None:
            final.append(grid.checkout)
        return planner.plan_products(start, [item.product for item in items],
                                     forbidden, final)

    def _install(self, base_grid: Grid, items: Tuple[ShoppingListItem, ...],
                 route: Optional[Route]) -> None:
        """Swap in a fully computed grid, list and route in one go."""
        self._base_grid = base_grid
        self.shopping_list = items
        self.simulator.reset(route)
        self._publish(refresh_grid=True)
        if route is not None:
            logger.info("Installed route with %d steps for %d products",
                        len(route.steps), len(items))

    def _current_position(self) -> Optional[Coordinate]:
        step = self._snapshot.current_step
        return step.coordinate if step is not None else None

    def load_shopping_list(self, items: Sequence[ShoppingListItem]) -> Optional[RouteFailure]:
        """
        Start a new session for `items`.

        Builds the grid, plans entrance -> products (list order) -> checkout
        and installs the result. On failure nothing changes and the failure
        is returned.
        """
        merged = self._merge(items)
        try:
            base_grid = self.builder.build([item.product for item in merged])
        except ShelfCapacityError as e:
            logger.warning(e.message)
            return RouteFailure.from_capacity_error(e)

        placed = self._place(merged, base_grid)
        route = None
        if placed:
            route = self._plan(base_grid, base_grid.entrance, placed)
            if isinstance(route, RouteFailure):
                logger.warning("Route planning failed: %s", route.message)
                return route

        self.timers.cancel_all()
        self.is_navigating = False
        self.traffic.reset()
        self._visited_ids = frozenset()
        self._visited_cells = ()
        self._declined_ids = frozenset()
        self._voice_queue = []
        self._suggestions = []
        self._alerts = []
        self._install(base_grid, placed, route)
        return None

    def reroute(self, avoid_visited: bool = True) -> Optional[RouteFailure]:
        """
        Replan from the current step to every unvisited product.

        Cells already walked are avoided when another path exists.
        """
        if self._base_grid is None:
            return None
        return self._reroute(self._base_grid, self.shopping_list, avoid_visited)

    def _reroute(self, base_grid: Grid, items: Tuple[ShoppingListItem, ...],
                 avoid_visited: bool = True) -> Optional[RouteFailure]:
        start = base_grid.entrance
        if self._visited_cells and self._current_position() is not None:
            start = self._current_position()
        remaining = [item for item in items if item.product.id not in self._visited_ids]
        forbidden = ()
        if avoid_visited:
            forbidden = tuple(c for c in self._visited_cells if c != start)

        route = self._plan(base_grid, start, remaining, forbidden)
        if isinstance(route, RouteFailure):
            logger.warning("Reroute failed: %s", route.message)
            return route

        self.timers.cancel(AUTO_ADVANCE_TIMER)
        self._install(base_grid, items, route if not route.is_empty else None)
        if self.is_navigating and not route.is_empty:
            self._schedule_auto_advance()
            self._enter_step(self.simulator.step_index)
        return None

    # Session control

    def _schedule_auto_advance(self) -> None:
        nav = self.config.navigation
        if nav.advance_policy == AdvancePolicy.INTERVAL:
            self.timers.schedule(AUTO_ADVANCE_TIMER, self.clock, nav.auto_advance_interval,
                                 self._auto_advance, repeat=nav.auto_advance_interval)

    def start(self) -> bool:
        """Begin or resume navigation. Returns False if there is no route."""
        route = self.simulator.route
        if route is None or route.is_empty:
            logger.warning("Cannot start navigation without a route")
            return False

        self.timers.cancel_all()
        self.is_navigating = True
        self._schedule_auto_advance()
        if self.config.traffic.enabled:
            interval = self.config.traffic.interval
            self.timers.schedule(TRAFFIC_TIMER, self.clock, interval,
                                 self._sample_traffic, repeat=interval)
        self._enter_step(self.simulator.step_index)
        return True

    def pause(self) -> None:
        self.timers.cancel_all()
        self.is_navigating = False
        self._publish()

    def reset(self) -> Optional[RouteFailure]:
        """Stop, forget progress and replan the current list from the entrance."""
        self.timers.cancel_all()
        self.is_navigating = False
        self.traffic.reset()
        self._visited_ids = frozenset()
        self._visited_cells = ()
        self._voice_queue = []
        self._suggestions = []
        self._alerts = []
        if self._base_grid is None:
            return None

        route = None
        if self.shopping_list:
            route = self._plan(self._base_grid, self._base_grid.entrance, self.shopping_list)
            if isinstance(route, RouteFailure):
                logger.warning("Route planning failed on reset: %s", route.message)
                self._install(self._base_grid, self.shopping_list, None)
                return route
        self._install(self._base_grid, self.shopping_list, route)
        return None

    def is_finished(self) -> bool:
        return self._snapshot.phase == MovementPhase.ARRIVED and not self.is_navigating

    # Tick loop

    def tick(self, dt: Optional[float] = None) -> NavigationSnapshot:
        """Advance the clock by one tick, fire due timers and move the shopper."""
        dt = self.config.movement.dt if dt is None else dt
        self.clock += dt
        self.timers.run_due(self.clock)

        # A finished route keeps easing onto its last step
        if self.is_navigating or self.is_finished():
            reached = self.simulator.tick(dt)
            if reached is not None:
                self._enter_step(reached)
                return self._snapshot
        self._publish()
        return self._snapshot

    def advance(self) -> Optional[int]:
        """Manually move to the next step. Returns the new index or None at the end."""
        index = self.simulator.advance()
        if index is not None:
            self._enter_step(index)
        return index

    def retreat(self) -> Optional[int]:
        """Manually move back one step, forgetting the last walked cell."""
        index = self.simulator.retreat()
        if index is not None:
            self._visited_cells = self._visited_cells[:-1]
            self._publish(refresh_grid=True)
        return index

    def _auto_advance(self) -> None:
        if self.advance() is None:
            self.timers.cancel(AUTO_ADVANCE_TIMER)

    def _sample_traffic(self) -> None:
        alert = self._best_effort("traffic sampling", self.traffic.sample, self.clock)
        if alert is not None:
            self._alerts.append(alert)

    # Step events

    def _best_effort(self, label: str, fn: Callable, *args):
        """Run an event derivation; on error log it and emit nothing."""
        try:
            return fn(*args)
        except Exception:
            logger.exception("Event derivation failed: %s", label)
            return None

    def _enter_step(self, index: int) -> None:
        """Record arrival at `index`, derive its events and publish."""
        route = self.simulator.route
        coordinate = route.steps[index].coordinate
        if not self._visited_cells or self._visited_cells[-1] != coordinate:
            self._visited_cells = self._visited_cells + (coordinate,)

        self._derive_step_events(route, index)

        if index == len(route.steps) - 1:
            self.timers.cancel(AUTO_ADVANCE_TIMER)
            self.timers.cancel(TRAFFIC_TIMER)
            self.is_navigating = False
        self._publish(refresh_grid=True)

    def _derive_step_events(self, route: Route, index: int) -> None:
        """Each derivation is guarded on its own; a failure drops only its event."""
        commands = self._best_effort("voice commands", self.events.voice_commands,
                                     route, index)
        self._voice_queue.extend(commands or [])

        arrived = self._best_effort("arrival detection", self.events.detect_arrival,
                                    route, index, self.shopping_list, self._visited_ids)
        if arrived is not None:
            self._visited_ids = self._visited_ids | {arrived.product.id}
            logger.info("Reached %s at step %d", arrived.product.name, index)
            command = self._best_effort("arrival command", self.events.arrival_command,
                                        arrived.product, index)
            if command is not None:
                self._voice_queue.append(command)
            self._best_effort("suggestions", self._queue_suggestions, arrived)

        if index == len(route.steps) - 1:
            all_collected = all(item.product.id in self._visited_ids
                                for item in self.shopping_list)
            command = self._best_effort("completion", self.events.completion_command,
                                        index, all_collected)
            if command is not None:
                self._voice_queue.append(command)

    def _queue_suggestions(self, reached: ShoppingListItem) -> None:
        """Compute suggestions now and show them after the display delay."""
        suggestions = self.events.suggest(reached.product, self.catalog,
                                          self.shopping_list, self._declined_ids)
        if not suggestions:
            return

        def show() -> None:
            wanted = {item.product.id for item in self.shopping_list}
            fresh = [s for s in suggestions
                     if s.product.id not in self._declined_ids
                     and s.product.id not in wanted]
            self._suggestions.extend(fresh)
            if fresh:
                self._voice_queue.append(self.events.suggestion_command(fresh[0]))

        self.timers.schedule(SUGGESTION_TIMER, self.clock,
                             self.config.suggestions.display_delay,
                             lambda: self._best_effort("suggestion display", show))

    def accept_suggestion(self, product_id: str) -> Optional[RouteFailure]:
        """
        Add a suggested product to the list (or bump its quantity).

        A new product rebuilds the grid and, while a route is active,
        replans from the current step.
        """
        product = self.catalog.find(product_id)
        if product is None:
            logger.warning("Cannot accept unknown product %s", product_id)
            return RouteFailure(
                reason=FailureReason.UNKNOWN_PRODUCT,
                message=f"Product {product_id!r} is not in the catalog",
                product_id=product_id
            )
        self._suggestions = [s for s in self._suggestions if s.product.id != product_id]

        items = list(self.shopping_list)
        for i, item in enumerate(items):
            if item.product.id == product_id:
                items[i] = replace(item, quantity=item.quantity + 1)
                self.shopping_list = tuple(items)
                self._publish()
                return None

        items.append(ShoppingListItem(product=product, quantity=1))
        try:
            base_grid = self.builder.build([item.product for item in items])
        except ShelfCapacityError as e:
            logger.warning(e.message)
            return RouteFailure.from_capacity_error(e)
        placed = self._place(items, base_grid)

        if self.simulator.route is None:
            route = self._plan(base_grid, base_grid.entrance, placed)
            if isinstance(route, RouteFailure):
                return route
            self._install(base_grid, placed, route)
            return None
        return self._reroute(base_grid, placed)

    def decline_suggestion(self, product_id: str) -> None:
        """Never suggest this product again in this session."""
        self._declined_ids = self._declined_ids | {product_id}
        self._suggestions = [s for s in self._suggestions if s.product.id != product_id]

    # Reporting

    def get_summary(self) -> Dict:
        """Get summary statistics for the session."""
        route = self.simulator.route
        total_steps = len(route.steps) if route is not None else 0
        locations = [item.product.location for item in self.shopping_list
                     if item.product.location is not None]
        entrance = self._base_grid.entrance if self._base_grid is not None else None
        summary = {
            'clock': self.clock,
            'total_steps': total_steps,
            'current_step': self.simulator.step_index,
            'phase': self.simulator.phase.value,
            'route_distance': route.total_distance if route is not None else 0,
            'estimated_distance': (estimate_distance(entrance, locations,
                                                     self.config.navigation.cell_distance)
                                   if entrance is not None else 0),
            'estimated_minutes': math.ceil(total_steps * 0.5),
            'products_total': len(self.shopping_list),
            'products_visited': len(self._visited_ids),
            'traffic': self.traffic.condition,
            'congestion_level': self.traffic.congestion_level,
        }
        summary.update(summarize_shopping_list(self.shopping_list))
        return summary
