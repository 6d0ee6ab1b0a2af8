import math

import pytest

from aisle_nav.config import AdvancePolicy, MovementConfig
from aisle_nav.model.grid import Grid
from aisle_nav.model.movement import MovementSimulator, normalize_angle
from aisle_nav.model.planner import RoutePlanner
from aisle_nav.model.state import MovementPhase


@pytest.fixture
def straight_route():
    rows = ["#######",
            "#aaaaa#",
            "#######"]
    # Steps (2,1), (3,1), (4,1), all moving right
    return RoutePlanner(Grid.from_rows(rows)).plan((1, 1), [(4, 1)])


def test_normalize_angle_range():
    assert normalize_angle(0.0) == pytest.approx(0.0)
    assert normalize_angle(-math.pi) == pytest.approx(math.pi)
    assert normalize_angle(3 * math.pi / 2) == pytest.approx(-math.pi / 2)
    for raw in (-10.0, -3.5, 3.5, 7.0, 100.0):
        assert -math.pi < normalize_angle(raw) <= math.pi


def test_reset_places_shopper_on_first_step(straight_route):
    sim = MovementSimulator()
    sim.reset(straight_route)

    assert sim.step_index == 0
    assert sim.phase == MovementPhase.APPROACHING
    assert (sim.state.x, sim.state.y) == (2.0, 1.0)
    assert sim.state.speed == 0.0


def test_reset_without_route_is_idle():
    sim = MovementSimulator()
    sim.reset(None)
    assert sim.phase == MovementPhase.IDLE
    assert sim.tick() is None


def test_arrival_policy_advances_to_end(straight_route):
    sim = MovementSimulator(MovementConfig(), AdvancePolicy.ARRIVAL)
    sim.reset(straight_route)

    reached = []
    for _ in range(600):
        index = sim.tick()
        if index is not None:
            reached.append(index)

    assert reached == [1, 2]
    assert sim.step_index == 2
    assert sim.phase == MovementPhase.ARRIVED
    assert sim.state.speed == 0.0
    assert not sim.state.moving


def test_kinematic_bounds_hold_on_turning_route(open_floor):
    route = RoutePlanner(open_floor).plan((9, 23), [(3, 5), (3, 11)])
    config = MovementConfig()
    sim = MovementSimulator(config, AdvancePolicy.ARRIVAL)
    sim.reset(route)

    for _ in range(3000):
        sim.tick()
        assert 0.0 <= sim.state.speed <= config.max_speed
        assert -math.pi < sim.state.heading <= math.pi
    assert sim.step_index > 0


def test_interval_policy_never_advances_on_tick(straight_route):
    sim = MovementSimulator(MovementConfig(), AdvancePolicy.INTERVAL)
    sim.reset(straight_route)

    for _ in range(300):
        assert sim.tick() is None
    assert sim.step_index == 0

    assert sim.advance() == 1
    for _ in range(600):
        sim.tick()
    assert sim.step_index == 1
    assert sim.state.x == pytest.approx(3.0, abs=0.1)


def test_manual_advance_and_retreat(straight_route):
    sim = MovementSimulator()
    sim.reset(straight_route)

    assert sim.retreat() is None
    assert sim.advance() == 1
    assert sim.advance() == 2
    assert sim.phase == MovementPhase.ARRIVED
    assert sim.advance() is None
    assert sim.retreat() == 1
    assert sim.phase == MovementPhase.APPROACHING


def test_simulators_do_not_share_state(straight_route):
    first = MovementSimulator()
    second = MovementSimulator()
    first.reset(straight_route)
    first.advance()

    assert second.route is None
    assert second.step_index == 0
