import numpy as np
import pytest

from gearbox_dsl import (
    Gear,
    normalize_rotation,
    own_rotation,
    parse_gearbox,
    propagate,
    symbol_index,
    turn_step,
)


def test_own_rotation_scales_and_reverses():
    assert own_rotation(1.0, 1, 4) == pytest.approx(-0.25)
    assert own_rotation(-0.5, 10, 5) == pytest.approx(1.0)


@pytest.mark.parametrize("rotation", np.linspace(-3.0, 3.0, 25))
def test_follower_ratio_and_inversion(rotation):
    follower = Gear.rotator(5)
    root = Gear.rotator(12, follower=follower)

    returned = propagate(root, rotation)

    expected_root = rotation * (1 / 12) * -1
    assert returned == root.rotation
    assert root.rotation == pytest.approx(expected_root)
    assert follower.rotation == pytest.approx(expected_root * (12 / 5) * -1)
    assert follower.rotation == pytest.approx(rotation / 5)


@pytest.mark.parametrize("rotation", np.linspace(-2.0, 2.0, 9))
def test_parallel_siblings_are_independent(rotation):
    crowded = Gear.rotator(8, [Gear.rotator(3), Gear.rotator(5), Gear.rotator(7)])
    alone = Gear.rotator(8, [Gear.rotator(5)])

    propagate(crowded, rotation)
    propagate(alone, rotation)

    assert crowded.parallels[1].rotation == alone.parallels[0].rotation
    assert crowded.parallels[1].rotation == pytest.approx(crowded.rotation * 8 / 5)


def test_parallel_and_follower_turn_opposite_ways():
    root = parse_gearbox("g 2 [g 4] g 4")
    propagate(root, 0.6)
    assert root.parallels[0].rotation == pytest.approx(-root.follower.rotation)
    assert root.parallels[0].rotation == pytest.approx(root.rotation / 2)


def test_on_turn_visits_depth_first_in_declaration_order():
    root = parse_gearbox('g 1 [c 1 "a" l "x" g 2, c 1 "b" l "y"] e 3')
    visited = []

    propagate(root, 0.3, on_turn=lambda gear: visited.append(gear.label or gear.name))

    assert visited == ["g1", "x", "g2", "y", "e3"]


def test_rotation_is_recomputed_not_accumulated():
    root = parse_gearbox("g 3 g 2 e 5")
    propagate(root, 0.9)
    propagate(root, 0.3)
    first = [root.rotation, root.follower.rotation, root.follower.follower.rotation]
    propagate(root, 0.3)
    assert [root.rotation, root.follower.rotation, root.follower.follower.rotation] == first


@pytest.mark.parametrize(
    "rotation, expected",
    [(0.25, 0.25), (1.25, 0.25), (0.0, 1.0), (-0.25, 0.75), (-1.0, 1.0), (-2.5, 0.5)],
)
def test_normalize_rotation(rotation, expected):
    assert normalize_rotation(rotation) == pytest.approx(expected)


@pytest.mark.parametrize(
    "rotation, index",
    [(0.0, 0), (0.25, 1), (0.5, 2), (0.99, 3), (1.0, 0), (-0.25, 3), (-0.5, 2), (-0.01, 3)],
)
def test_symbol_index_of_four(rotation, index):
    assert symbol_index(rotation, 4) == index


@pytest.mark.parametrize("count", [1, 3, 4, 5, 7])
def test_symbol_selection_has_period_one(count):
    for rotation in np.arange(-3.0, 3.0, 0.125):
        assert symbol_index(rotation, count) == symbol_index(rotation + 1.0, count)
        assert 0 <= symbol_index(rotation, count) < count


def test_counters_sharing_a_label_concatenate_in_traversal_order():
    root = parse_gearbox('g 1 [c 1 "a" l "x", c 1 "b" l "x"] c 1 "z"')

    result = turn_step(root, 0.3)

    assert result.counters == {"x": "ab", "": "z"}
    assert result.render_lines() == ["z", "xab"]
    assert result.stop is False


def test_multi_character_symbols_are_emitted_whole():
    root = parse_gearbox('c 1 {"tick", "tock"} l "clock: "')
    assert turn_step(root, 0.0).render_lines() == ["clock: tick"]
    assert turn_step(root, 0.75).render_lines() == ["clock: tick"]
    assert turn_step(root, 0.25).render_lines() == ["clock: tock"]


@pytest.mark.parametrize("rotation, stop", [(0.99, False), (1.0, True), (-1.0, True), (-0.5, False), (3.0, True)])
def test_ender_fires_at_one_revolution(rotation, stop):
    root = parse_gearbox("g 1 e 1")
    assert turn_step(root, rotation).stop is stop


def test_step_completes_after_ender_fires():
    root = parse_gearbox('g 1 [e 1, c 1 "ab" l "after"]')

    result = turn_step(root, 1.0)

    assert result.stop is True
    assert result.counters == {"after": "a"}


def test_ender_termination_is_monotonic():
    root = parse_gearbox("g 3 g 2 e 5")
    fired = [turn_step(root, step * 0.1).stop for step in range(200)]

    first = fired.index(True)
    assert all(fired[first:])
    assert not any(fired[:first])


def test_aggregation_is_deterministic():
    root = parse_gearbox('g 2 [c 3 "abc" l "b", c 5 "vwxyz" l "a"] c 7 "0123456" l "c" e 9')

    first = turn_step(root, 1.37)
    second = turn_step(root, 1.37)

    assert first.counters == second.counters
    assert first.render_lines() == second.render_lines()
    assert [line[0] for line in first.render_lines()] == ["a", "b", "c"]
