import math
import random

import pytest

from notegraph.layout.forces import (
    BarnesHutRepulsion,
    PairwiseRepulsion,
    Spring,
    apply_gravity,
    apply_springs,
    select_repulsion,
)


def _random_positions(n: int, dims: int, seed: int = 7) -> list[list[float]]:
    rng = random.Random(seed)
    return [[rng.uniform(-300, 300) for _ in range(dims)] for _ in range(n)]


def _forces(strategy, positions):
    forces = [[0.0] * len(positions[0]) for _ in positions]
    strategy.apply(positions, forces, 5000.0, 1.0)
    return forces


def test_pairwise_inverse_square() -> None:
    forces = _forces(PairwiseRepulsion(), [[0.0, 0.0], [10.0, 0.0]])
    assert forces[0] == pytest.approx([-50.0, 0.0])
    assert forces[1] == pytest.approx([50.0, 0.0])


def test_pairwise_distance_floor_and_coincident_points_stay_finite() -> None:
    forces = _forces(PairwiseRepulsion(), [[1.0, 1.0], [1.0, 1.0], [1.0, 1.2]])
    for f in forces:
        assert all(math.isfinite(c) for c in f)
    # Floor of 1: no pair pushes harder than strength / 1.
    assert max(abs(c) for f in forces for c in f) <= 2 * 5000.0 + 1e-6
    assert forces[0] != forces[1]


@pytest.mark.parametrize("dims", [2, 3])
def test_barnes_hut_with_tiny_theta_is_exact(dims: int) -> None:
    positions = _random_positions(40, dims)
    exact = _forces(PairwiseRepulsion(), positions)
    approx = _forces(BarnesHutRepulsion(theta=1e-9), positions)
    for a, b in zip(exact, approx):
        assert b == pytest.approx(a, rel=1e-9, abs=1e-9)


@pytest.mark.parametrize("dims", [2, 3])
def test_barnes_hut_agrees_in_direction_with_exact(dims: int) -> None:
    positions = _random_positions(200, dims)
    exact = _forces(PairwiseRepulsion(), positions)
    approx = _forces(BarnesHutRepulsion(theta=0.5), positions)

    agree = 0
    for a, b in zip(exact, approx):
        dot = sum(x * y for x, y in zip(a, b))
        na = math.sqrt(sum(x * x for x in a))
        nb = math.sqrt(sum(x * x for x in b))
        if dot / (na * nb) > 0.95:
            agree += 1
    assert agree >= 0.9 * len(positions)


def test_barnes_hut_handles_coincident_points() -> None:
    positions = [[5.0, 5.0], [5.0, 5.0], [5.0, 5.0], [-40.0, 12.0]]
    forces = _forces(BarnesHutRepulsion(), positions)
    for f in forces:
        assert all(math.isfinite(c) for c in f)


def test_select_repulsion_switches_on_size() -> None:
    assert isinstance(select_repulsion(500), PairwiseRepulsion)
    assert isinstance(select_repulsion(501), BarnesHutRepulsion)
    assert isinstance(select_repulsion(20, threshold=10), BarnesHutRepulsion)


def test_spring_pulls_toward_rest_length() -> None:
    positions = [[0.0, 0.0], [100.0, 0.0]]
    forces = [[0.0, 0.0], [0.0, 0.0]]
    apply_springs(positions, forces, [Spring(a=0, b=1, rest=60.0, stiffness=0.1)], 1.0)
    assert forces[0] == pytest.approx([4.0, 0.0])
    assert forces[1] == pytest.approx([-4.0, 0.0])

    forces = [[0.0, 0.0], [0.0, 0.0]]
    apply_springs([[0.0, 0.0], [30.0, 0.0]], forces, [Spring(a=0, b=1, rest=60.0, stiffness=0.1)], 1.0)
    assert forces[0][0] < 0 < forces[1][0]


def test_gravity_pulls_toward_origin() -> None:
    forces = [[0.0, 0.0]]
    apply_gravity([[100.0, -50.0]], forces, 0.01)
    assert forces[0] == pytest.approx([-1.0, 0.5])
