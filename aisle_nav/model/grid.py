"""Store grid and deterministic layout builder."""

import logging
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Tuple, List, Dict, Optional, Iterable, Sequence, AbstractSet

import numpy as np

from ..config import GridConfig, LayoutConfig
from ..errors import LayoutError, ShelfCapacityError
from .types import Coordinate, Product, Route, ShoppingListItem

logger = logging.getLogger(__name__)


class CellKind(IntEnum):
    EMPTY = 0
    PRODUCT = 1
    AISLE = 2
    WALL = 3
    ENTRANCE = 4
    CHECKOUT = 5


class PathDirection(IntEnum):
    HORIZONTAL = 1
    VERTICAL = 2
    CORNER = 3


WALKABLE_KINDS = frozenset({CellKind.AISLE, CellKind.EMPTY,
                            CellKind.ENTRANCE, CellKind.CHECKOUT})

_ASCII = {
    '#': CellKind.WALL,
    '.': CellKind.EMPTY,
    'a': CellKind.AISLE,
    'P': CellKind.PRODUCT,
    'E': CellKind.ENTRANCE,
    'C': CellKind.CHECKOUT,
}
_ASCII_REVERSE = {kind: ch for ch, kind in _ASCII.items()}


def _frozen(arr: np.ndarray) -> np.ndarray:
    arr.flags.writeable = False
    return arr


@dataclass(frozen=True)
class GridCell:
    """Read-only view of one cell and its navigation annotations."""
    x: int
    y: int
    kind: CellKind
    product: Optional[Product] = None
    on_path: bool = False
    is_current: bool = False
    path_direction: Optional[PathDirection] = None
    in_shopping_list: bool = False
    reached: bool = False


class Grid:
    """
    Immutable store grid with a static kind layer and dynamic annotation layers.

    Coordinate convention: (x, y) for API, [y, x] for array indexing.
    All arrays are read-only; `with_navigation` returns a new Grid whose
    annotations are recomputed from scratch.
    """

    def __init__(self, kinds: np.ndarray,
                 placements: Optional[Dict[Coordinate, Product]] = None,
                 entrance: Optional[Coordinate] = None,
                 checkout: Optional[Coordinate] = None,
                 annotations: Optional[Dict[str, np.ndarray]] = None):
        self.kinds = _frozen(np.asarray(kinds, dtype=np.int8))
        self._placements: Dict[Coordinate, Product] = dict(placements or {})
        self._locations: Dict[str, Coordinate] = {
            p.id: coord for coord, p in self._placements.items()
        }
        self.entrance = entrance if entrance is not None else self._find(CellKind.ENTRANCE)
        self.checkout = checkout if checkout is not None else self._find(CellKind.CHECKOUT)

        shape = self.kinds.shape
        annotations = annotations or {}
        self.on_path = _frozen(annotations.get('on_path', np.zeros(shape, dtype=bool)))
        self.is_current = _frozen(annotations.get('is_current', np.zeros(shape, dtype=bool)))
        self.path_direction = _frozen(
            annotations.get('path_direction', np.zeros(shape, dtype=np.int8)))
        self.in_shopping_list = _frozen(
            annotations.get('in_shopping_list', np.zeros(shape, dtype=bool)))
        self.reached = _frozen(annotations.get('reached', np.zeros(shape, dtype=bool)))

    @classmethod
    def from_rows(cls, rows: Sequence[str],
                  products: Optional[Dict[Coordinate, Product]] = None) -> "Grid":
        """
        Build a grid from an ASCII layout.

        '#' wall, '.' empty, 'a' aisle, 'P' shelf, 'E' entrance, 'C' checkout.
        `products` maps shelf coordinates to the product stored there.
        """
        if not rows or len({len(r) for r in rows}) != 1:
            raise LayoutError("ASCII layout rows must be non-empty and equal length")
        try:
            kinds = np.array([[_ASCII[ch] for ch in row] for row in rows], dtype=np.int8)
        except KeyError as e:
            raise LayoutError(f"Unknown layout character: {e.args[0]!r}") from None

        placements = {}
        for (x, y), product in (products or {}).items():
            if kinds[y, x] != CellKind.PRODUCT:
                raise LayoutError(f"Product {product.id} is not on a shelf cell: {(x, y)}")
            placements[(x, y)] = replace(product, location=(x, y))
        return cls(kinds, placements)

    @property
    def width(self) -> int:
        return self.kinds.shape[1]

    @property
    def height(self) -> int:
        return self.kinds.shape[0]

    def _find(self, kind: CellKind) -> Optional[Coordinate]:
        ys, xs = np.where(self.kinds == kind)
        if len(xs) == 0:
            return None
        return int(xs[0]), int(ys[0])

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def kind_at(self, x: int, y: int) -> CellKind:
        return CellKind(int(self.kinds[y, x]))

    def is_walkable(self, x: int, y: int,
                    target: Optional[Coordinate] = None) -> bool:
        """
        Check if a shopper may stand on the cell.

        Shelf cells are only walkable when they are the given `target`.
        """
        if not self.in_bounds(x, y):
            return False
        kind = int(self.kinds[y, x])
        if kind in WALKABLE_KINDS:
            return True
        return kind == CellKind.PRODUCT and (x, y) == target

    def get_neighbors(self, x: int, y: int,
                      target: Optional[Coordinate] = None) -> List[Coordinate]:
        """Walkable 4-connected neighbors in fixed order: right, left, down, up."""
        neighbors = []
        for dx, dy in ((1, 0), (-1, 0), (0, 1), (0, -1)):
            nx, ny = x + dx, y + dy
            if self.is_walkable(nx, ny, target):
                neighbors.append((nx, ny))
        return neighbors

    def product_at(self, x: int, y: int) -> Optional[Product]:
        return self._placements.get((x, y))

    def location_of(self, product_id: str) -> Optional[Coordinate]:
        """Grid placement of a product, the only authoritative location."""
        return self._locations.get(product_id)

    def placed_products(self) -> List[Product]:
        """Placed product copies in placement order."""
        return list(self._placements.values())

    def placements(self) -> Dict[Coordinate, str]:
        return {coord: p.id for coord, p in self._placements.items()}

    def shelf_cells(self) -> List[Coordinate]:
        ys, xs = np.where(self.kinds == CellKind.PRODUCT)
        return [(int(x), int(y)) for x, y in zip(xs, ys)]

    def cell(self, x: int, y: int) -> GridCell:
        direction = int(self.path_direction[y, x])
        return GridCell(
            x=x,
            y=y,
            kind=self.kind_at(x, y),
            product=self._placements.get((x, y)),
            on_path=bool(self.on_path[y, x]),
            is_current=bool(self.is_current[y, x]),
            path_direction=PathDirection(direction) if direction else None,
            in_shopping_list=bool(self.in_shopping_list[y, x]),
            reached=bool(self.reached[y, x])
        )

    def rows(self) -> List[List[GridCell]]:
        """All cells, row by row, for renderers."""
        return [[self.cell(x, y) for x in range(self.width)]
                for y in range(self.height)]

    def same_layout(self, other: "Grid") -> bool:
        """True if both grids have identical kinds and product placements."""
        return (np.array_equal(self.kinds, other.kinds)
                and self.placements() == other.placements())

    def with_navigation(self, route: Optional[Route], step_index: int,
                        shopping_list: Iterable[ShoppingListItem] = (),
                        visited_ids: AbstractSet[str] = frozenset()) -> "Grid":
        """
        Return a copy of this grid with every annotation layer rebuilt.

        Steps before `step_index` are marked as walked path, the step at
        `step_index` as current position.
        """
        shape = self.kinds.shape
        on_path = np.zeros(shape, dtype=bool)
        is_current = np.zeros(shape, dtype=bool)
        path_direction = np.zeros(shape, dtype=np.int8)
        in_shopping_list = np.zeros(shape, dtype=bool)
        reached = np.zeros(shape, dtype=bool)

        steps = route.steps if route is not None else ()
        for i in range(min(step_index, len(steps))):
            step = steps[i]
            if not self.in_bounds(step.x, step.y):
                continue
            on_path[step.y, step.x] = True
            path_direction[step.y, step.x] = _path_direction(steps, i)

        if 0 <= step_index < len(steps):
            current = steps[step_index]
            if self.in_bounds(current.x, current.y):
                is_current[current.y, current.x] = True

        for item in shopping_list:
            location = self.location_of(item.product.id)
            if location is None or not self.in_bounds(*location):
                continue
            x, y = location
            in_shopping_list[y, x] = True
            if item.product.id in visited_ids:
                reached[y, x] = True

        return Grid(
            self.kinds,
            self._placements,
            entrance=self.entrance,
            checkout=self.checkout,
            annotations={
                'on_path': on_path,
                'is_current': is_current,
                'path_direction': path_direction,
                'in_shopping_list': in_shopping_list,
                'reached': reached,
            }
        )

    def to_ascii(self) -> str:
        lines = []
        for y in range(self.height):
            chars = []
            for x in range(self.width):
                if self.is_current[y, x]:
                    chars.append('@')
                elif self.on_path[y, x]:
                    chars.append('*')
                else:
                    chars.append(_ASCII_REVERSE[self.kind_at(x, y)])
            lines.append(''.join(chars))
        return '\n'.join(lines)


def _path_direction(steps, i: int) -> PathDirection:
    """Lane shape at step i: a corner where the next move changes axis."""
    arriving = steps[i].direction
    if i + 1 < len(steps) and steps[i + 1].direction.is_horizontal != arriving.is_horizontal:
        return PathDirection.CORNER
    return PathDirection.HORIZONTAL if arriving.is_horizontal else PathDirection.VERTICAL


class GridMapBuilder:
    """
    Lays out the fixed store grid and assigns products to shelf cells.

    Layer precedence (highest first): border walls with the entrance and
    checkout cut into them, cross-aisle rows, corridor columns, shelf
    columns flanking each corridor, empty floor.
    """

    def __init__(self, layout: Optional[LayoutConfig] = None,
                 grid: Optional[GridConfig] = None):
        self.layout = layout or LayoutConfig()
        self.grid_config = grid or GridConfig()
        self._validate()

        self._kinds = self._lay_out()
        self._shelf_order = self._shelf_raster_order()

    @property
    def capacity(self) -> int:
        return len(self._shelf_order)

    def _validate(self) -> None:
        """Fail fast if any configured feature falls outside the grid."""
        width, height = self.grid_config.width, self.grid_config.height
        layout = self.layout

        if width < 3 or height < 3:
            raise LayoutError(f"Grid must be at least 3x3, got {width}x{height}")
        if layout.aisle_count < 1 or layout.aisle_width < 1 or layout.aisle_spacing < 0:
            raise LayoutError("Aisle count and width must be positive, spacing non-negative",
                              details={'aisle_count': layout.aisle_count,
                                       'aisle_width': layout.aisle_width,
                                       'aisle_spacing': layout.aisle_spacing})

        for i, ax in enumerate(layout.aisle_xs()):
            left_shelf = ax - 1
            right_shelf = ax + layout.aisle_width
            if left_shelf < 1 or right_shelf > width - 2:
                raise LayoutError(
                    f"Aisle {i + 1} at x={ax} does not fit inside a grid of width {width}",
                    details={'aisle': i + 1, 'x': ax,
                             'shelves': (left_shelf, right_shelf), 'width': width}
                )

        for row in layout.cross_aisles:
            if not 1 <= row <= height - 2:
                raise LayoutError(f"Cross-aisle row {row} is outside the grid interior",
                                  details={'row': row, 'height': height})

        for name, (x, y) in (('entrance', layout.entrance), ('checkout', layout.checkout)):
            if not (0 <= x < width and 0 <= y < height):
                raise LayoutError(f"{name.capitalize()} {(x, y)} is outside the grid")
        if tuple(layout.entrance) == tuple(layout.checkout):
            raise LayoutError("Entrance and checkout must be different cells")

    def _lay_out(self) -> np.ndarray:
        width, height = self.grid_config.width, self.grid_config.height
        aisle_width = self.layout.aisle_width
        kinds = np.full((height, width), CellKind.EMPTY, dtype=np.int8)

        # Lowest precedence first; later layers overwrite earlier ones
        for ax in self.layout.aisle_xs():
            kinds[:, ax - 1] = CellKind.PRODUCT
            kinds[:, ax + aisle_width] = CellKind.PRODUCT
        for ax in self.layout.aisle_xs():
            kinds[:, ax:ax + aisle_width] = CellKind.AISLE
        for row in self.layout.cross_aisles:
            kinds[row, :] = CellKind.AISLE

        kinds[0, :] = CellKind.WALL
        kinds[height - 1, :] = CellKind.WALL
        kinds[:, 0] = CellKind.WALL
        kinds[:, width - 1] = CellKind.WALL

        ex, ey = self.layout.entrance
        cx, cy = self.layout.checkout
        kinds[ey, ex] = CellKind.ENTRANCE
        kinds[cy, cx] = CellKind.CHECKOUT
        return kinds

    def _shelf_raster_order(self) -> List[Coordinate]:
        """Aisle by aisle, top to bottom, left shelf then right shelf."""
        order: List[Coordinate] = []
        seen = set()
        for ax in self.layout.aisle_xs():
            for y in range(1, self.grid_config.height - 1):
                for x in (ax - 1, ax + self.layout.aisle_width):
                    if self._kinds[y, x] == CellKind.PRODUCT and (x, y) not in seen:
                        seen.add((x, y))
                        order.append((x, y))
        return order

    def build(self, products: Sequence[Product]) -> Grid:
        """
        Place products on shelves in raster order and return the grid.

        Raises ShelfCapacityError if there are more products than shelves.
        """
        ids = [p.id for p in products]
        if len(set(ids)) != len(ids):
            raise ValueError("Product ids must be unique within one grid")
        if len(products) > self.capacity:
            raise ShelfCapacityError(requested=len(products), available=self.capacity)

        placements = {
            coord: replace(product, location=coord)
            for coord, product in zip(self._shelf_order, products)
        }

        logger.debug("Placed %d products on %d shelf cells",
                     len(placements), self.capacity)

        return Grid(
            self._kinds.copy(),
            placements,
            entrance=tuple(self.layout.entrance),
            checkout=tuple(self.layout.checkout)
        )
