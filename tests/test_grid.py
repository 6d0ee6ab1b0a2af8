import pytest

from aisle_nav.config import GridConfig, LayoutConfig
from aisle_nav.errors import LayoutError, ShelfCapacityError
from aisle_nav.model.grid import CellKind, Grid, GridMapBuilder, PathDirection
from aisle_nav.model.planner import RoutePlanner
from aisle_nav.model.types import Product, ShoppingListItem


def make_products(n):
    return [Product(id=f"p{i}", name=f"Product {i}", category="Misc",
                    price=1.0, aisle="") for i in range(n)]


def test_default_layout_capacity_and_borders():
    builder = GridMapBuilder()
    grid = builder.build([])

    assert (grid.width, grid.height) == (18, 24)
    assert builder.capacity == 136
    assert grid.kind_at(9, 23) == CellKind.ENTRANCE
    assert grid.kind_at(9, 0) == CellKind.CHECKOUT
    assert grid.entrance == (9, 23)
    assert grid.checkout == (9, 0)
    # Border walls except where entrance and checkout are cut in
    assert grid.kind_at(0, 10) == CellKind.WALL
    assert grid.kind_at(17, 10) == CellKind.WALL
    assert grid.kind_at(8, 23) == CellKind.WALL
    # Corridor, shelf and cross-aisle cells
    assert grid.kind_at(2, 3) == CellKind.AISLE
    assert grid.kind_at(1, 3) == CellKind.PRODUCT
    assert grid.kind_at(1, 6) == CellKind.AISLE
    assert grid.is_walkable(9, 22)


def test_build_is_deterministic():
    products = make_products(20)
    first = GridMapBuilder().build(products)
    second = GridMapBuilder().build(list(products))
    assert first.same_layout(second)


def test_products_placed_in_raster_order():
    products = make_products(3)
    grid = GridMapBuilder().build(products)

    assert grid.location_of("p0") == (1, 2)
    assert grid.location_of("p1") == (4, 2)
    assert grid.location_of("p2") == (1, 3)
    assert grid.product_at(4, 2).id == "p1"
    assert grid.product_at(4, 2).location == (4, 2)
    # Placed copies carry locations, the inputs do not
    assert products[1].location is None


def test_capacity_overflow_reports_both_counts():
    with pytest.raises(ShelfCapacityError) as exc_info:
        GridMapBuilder().build(make_products(137))
    assert exc_info.value.requested == 137
    assert exc_info.value.available == 136


def test_full_capacity_places_one_product_per_cell():
    grid = GridMapBuilder().build(make_products(136))
    placements = grid.placements()
    assert len(placements) == 136
    assert len(set(placements.values())) == 136
    assert all(grid.kind_at(x, y) == CellKind.PRODUCT for x, y in placements)


def test_duplicate_product_ids_rejected():
    product = make_products(1)[0]
    with pytest.raises(ValueError):
        GridMapBuilder().build([product, product])


def test_too_many_aisles_fail_fast():
    with pytest.raises(LayoutError):
        GridMapBuilder(LayoutConfig(aisle_count=6), GridConfig(width=18, height=24))


def test_cross_aisle_outside_grid_rejected():
    with pytest.raises(LayoutError):
        GridMapBuilder(LayoutConfig(cross_aisles=[1, 30]))


def test_entrance_equal_to_checkout_rejected():
    with pytest.raises(LayoutError):
        GridMapBuilder(LayoutConfig(entrance=(9, 23), checkout=(9, 23)))


def test_layers_are_read_only():
    grid = GridMapBuilder().build([])
    with pytest.raises(ValueError):
        grid.kinds[1, 1] = CellKind.WALL
    with pytest.raises(ValueError):
        grid.on_path[1, 1] = True


def test_shelf_walkable_only_as_target():
    grid = GridMapBuilder().build([])
    assert not grid.is_walkable(1, 3)
    assert grid.is_walkable(1, 3, target=(1, 3))
    assert not grid.is_walkable(-1, 3)
    assert (1, 3) in grid.get_neighbors(2, 3, target=(1, 3))
    assert (1, 3) not in grid.get_neighbors(2, 3)


def test_neighbor_order_is_right_left_down_up(floor_rows):
    grid = Grid.from_rows(floor_rows())
    assert grid.get_neighbors(5, 5) == [(6, 5), (4, 5), (5, 6), (5, 4)]


def test_from_rows_rejects_unknown_characters():
    with pytest.raises(LayoutError):
        Grid.from_rows(["###", "#x#", "###"])


def test_with_navigation_rebuilds_annotations(open_floor, product_a, product_b):
    route = RoutePlanner(open_floor).plan((9, 23), [(3, 5), (3, 11)])
    annotated = open_floor.with_navigation(route, 4, [], frozenset())

    assert int(annotated.on_path.sum()) == 4
    step = route.steps[4]
    assert annotated.is_current[step.y, step.x]
    assert annotated.cell(step.x, step.y).is_current
    # The source grid is untouched
    assert int(open_floor.on_path.sum()) == 0
    assert annotated.same_layout(open_floor)


def test_with_navigation_marks_list_and_reached(open_floor, product_a, product_b):
    items = [ShoppingListItem(product_a), ShoppingListItem(product_b)]
    annotated = open_floor.with_navigation(None, 0, items, frozenset({"a"}))

    assert annotated.in_shopping_list[5, 3]
    assert annotated.in_shopping_list[11, 3]
    assert annotated.reached[5, 3]
    assert not annotated.reached[11, 3]


def test_corner_marked_where_route_turns(open_floor):
    route = RoutePlanner(open_floor).plan((9, 23), [(3, 5)])
    annotated = open_floor.with_navigation(route, len(route.steps), [], frozenset())
    directions = {annotated.cell(s.x, s.y).path_direction for s in route.steps}
    assert PathDirection.CORNER in directions
    assert directions <= {PathDirection.HORIZONTAL, PathDirection.VERTICAL,
                          PathDirection.CORNER}
