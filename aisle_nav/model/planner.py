"""Multi-waypoint A* route planning over the store grid."""

import heapq
import logging
from numbers import Integral
from typing import Iterable, List, Optional, Sequence, Set, Tuple, Union, AbstractSet

from ..errors import FailureReason, RouteFailure
from .grid import CellKind, Grid
from .types import Coordinate, Direction, NavigationStep, Product, Route

logger = logging.getLogger(__name__)

INSTRUCTIONS = {
    Direction.RIGHT: "Continue right {distance}m",
    Direction.LEFT: "Continue left {distance}m",
    Direction.UP: "Go straight ahead {distance}m",
    Direction.DOWN: "Go straight down {distance}m",
}


def manhattan(a: Coordinate, b: Coordinate) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


def is_coordinate(value) -> bool:
    """True for an (x, y) pair of integers; bools are not coordinates."""
    if not isinstance(value, (tuple, list)) or len(value) != 2:
        return False
    return all(isinstance(v, Integral) and not isinstance(v, bool) for v in value)


def estimate_distance(start: Coordinate, locations: Iterable[Coordinate],
                      cell_distance: int = 2) -> int:
    """Straight-line Manhattan estimate through `locations` in order, in meters."""
    total = 0
    current = start
    for location in locations:
        total += manhattan(current, location)
        current = location
    return total * cell_distance


class RoutePlanner:
    """
    Plans a connected, wall-avoiding walk through waypoints in caller order.

    Each segment is an A* search with a Manhattan heuristic and unit move
    cost on the 4-connected grid. Ties on f-score go to the node discovered
    first so identical inputs always give identical routes.
    """

    def __init__(self, grid: Grid, cell_distance: int = 2):
        self.grid = grid
        self.cell_distance = cell_distance

    def find_path(self, start: Coordinate, goal: Coordinate,
                  forbidden: AbstractSet[Coordinate] = frozenset()
                  ) -> Optional[List[Coordinate]]:
        """
        A* from start to goal, both inclusive. Returns None if unreachable.

        Forbidden cells are never expanded. The goal shelf is the only
        product cell that may be entered.
        """
        if start == goal:
            return [start]

        order = {start: 0}
        discovered = 1
        open_heap: List[Tuple[int, int, Coordinate]] = [(manhattan(start, goal), 0, start)]
        came_from = {start: None}
        g_cost = {start: 0}
        closed: Set[Coordinate] = set()

        while open_heap:
            _, _, current = heapq.heappop(open_heap)
            if current in closed:
                continue
            if current == goal:
                path = []
                while current is not None:
                    path.append(current)
                    current = came_from[current]
                return list(reversed(path))
            closed.add(current)

            for neighbor in self.grid.get_neighbors(*current, target=goal):
                if neighbor in forbidden or neighbor in closed:
                    continue
                tentative = g_cost[current] + 1
                if tentative < g_cost.get(neighbor, float('inf')):
                    came_from[neighbor] = current
                    g_cost[neighbor] = tentative
                    if neighbor not in order:
                        order[neighbor] = discovered
                        discovered += 1
                    f = tentative + manhattan(neighbor, goal)
                    heapq.heappush(open_heap, (f, order[neighbor], neighbor))
        return None

    def _search_segment(self, start: Coordinate, goal: Coordinate,
                        forbidden: AbstractSet[Coordinate]
                        ) -> Optional[List[Coordinate]]:
        """Search honoring `forbidden`, then once more over the full grid."""
        path = self.find_path(start, goal, forbidden)
        if path is None and forbidden:
            logger.info("No path %s -> %s avoiding %d cells, retrying without them",
                        start, goal, len(forbidden))
            path = self.find_path(start, goal)
        return path

    def _make_step(self, previous: Coordinate, coord: Coordinate) -> NavigationStep:
        direction = Direction.between(previous, coord)
        return NavigationStep(
            x=coord[0],
            y=coord[1],
            direction=direction,
            instruction=INSTRUCTIONS[direction].format(distance=self.cell_distance),
            distance=self.cell_distance
        )

    def plan(self, start: Coordinate, waypoints: Sequence[Coordinate],
             forbidden: Iterable[Coordinate] = ()) -> Union[Route, RouteFailure]:
        """
        Plan start -> waypoints[0] -> waypoints[1] -> ... without reordering.

        Returns a RouteFailure naming the first waypoint that cannot be
        reached, never a partial route.
        """
        if not is_coordinate(start) or not self.grid.in_bounds(*start):
            return RouteFailure(
                reason=FailureReason.INVALID_LOCATION,
                message=f"Start position {start!r} is not a cell of the grid"
            )
        start = (int(start[0]), int(start[1]))
        forbidden = frozenset(tuple(c) for c in forbidden)

        # Reject malformed or impossible waypoints before any search
        targets: List[Coordinate] = []
        for i, waypoint in enumerate(waypoints):
            if not is_coordinate(waypoint):
                return RouteFailure(
                    reason=FailureReason.INVALID_LOCATION,
                    message=f"Waypoint {i} has an invalid location: {waypoint!r}",
                    waypoint_index=i
                )
            x, y = int(waypoint[0]), int(waypoint[1])
            if not self.grid.in_bounds(x, y) or self.grid.kind_at(x, y) == CellKind.WALL:
                return RouteFailure(
                    reason=FailureReason.UNREACHABLE,
                    message=f"Waypoint {i} at {(x, y)} is a wall or outside the store",
                    waypoint_index=i
                )
            targets.append((x, y))

        steps: List[NavigationStep] = []
        waypoint_indices: List[int] = []
        current = start
        for i, target in enumerate(targets):
            path = self._search_segment(current, target, forbidden)
            if path is None:
                logger.warning("Waypoint %d at %s is unreachable from %s", i, target, current)
                return RouteFailure(
                    reason=FailureReason.UNREACHABLE,
                    message=f"No walkable path to waypoint {i} at {target}",
                    waypoint_index=i
                )
            # path[0] is the previous boundary, already emitted
            for previous, coord in zip(path, path[1:]):
                steps.append(self._make_step(previous, coord))
            waypoint_indices.append(len(steps) - 1)
            current = target

        logger.debug("Planned %d steps through %d waypoints", len(steps), len(targets))
        return Route(
            start=start,
            steps=tuple(steps),
            waypoints=tuple(targets),
            waypoint_indices=tuple(waypoint_indices)
        )

    def plan_products(self, start: Coordinate, products: Sequence[Product],
                      forbidden: Iterable[Coordinate] = (),
                      final_waypoints: Sequence[Coordinate] = ()
                      ) -> Union[Route, RouteFailure]:
        """
        Plan through each product's location, then any `final_waypoints`.

        Every product must carry an integer (x, y) location; the first one
        that does not is reported before searching.
        """
        for i, product in enumerate(products):
            if not is_coordinate(product.location):
                return RouteFailure(
                    reason=FailureReason.INVALID_LOCATION,
                    message=f"Product {product.name!r} has no valid location: "
                            f"{product.location!r}",
                    waypoint_index=i,
                    product_id=product.id
                )

        waypoints = [p.location for p in products] + list(final_waypoints)
        result = self.plan(start, waypoints, forbidden)
        if isinstance(result, RouteFailure) and result.waypoint_index is not None \
                and result.waypoint_index < len(products):
            product = products[result.waypoint_index]
            return RouteFailure(
                reason=result.reason,
                message=f"{result.message} ({product.name})",
                waypoint_index=result.waypoint_index,
                product_id=product.id
            )
        return result
