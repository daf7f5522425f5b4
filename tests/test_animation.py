import io
import re

import pytest

from gearbox_dsl import (
    CURSOR_PREVIOUS_LINE,
    ERASE_TO_END_OF_LINE,
    AnimationConfig,
    AnimationState,
    GearAnimator,
    parse_gearbox,
)


def frames_of(output):
    """Split animator output into the list of lines drawn per frame"""
    cursor_up = f"(?:{re.escape(CURSOR_PREVIOUS_LINE)})+"
    *frames, tail = re.split(cursor_up, output.replace(ERASE_TO_END_OF_LINE, ""))
    return [frame.splitlines() for frame in frames], tail


def animate(source, **config):
    stream = io.StringIO()
    animator = GearAnimator(parse_gearbox(source), AnimationConfig(**config), stream)
    result = animator.run()
    return animator, result, stream.getvalue()


def test_four_symbol_counter_until_ender_turns_once():
    # the 4-tooth counter turns at a quarter of the driving speed, so only "a" and "d" come up
    animator, result, output = animate('c 4 {"a","b","c","d"} e 1', step_size=0.25)

    frames, tail = frames_of(output)
    assert frames == [["a"], ["d"], ["d"], ["d"]]
    assert tail == "\n"
    assert result['steps'] == 4
    assert result['final_rotation'] == pytest.approx(1.0)
    assert result['last_frame'] == ["d"]
    assert animator.state is AnimationState.STOPPED


def test_single_tooth_counter_shows_every_symbol():
    _, result, output = animate('c 1 {"a","b","c","d"} e 1', step_size=0.25)

    frames, _ = frames_of(output)
    assert frames == [["a"], ["d"], ["c"], ["b"]]
    assert {line for frame in frames for line in frame} == {"a", "b", "c", "d"}


def test_initial_rotation_and_negative_steps():
    _, result, output = animate('c 1 "ab" e 1', step_size=-0.5, rotation=-0.25)

    frames, _ = frames_of(output)
    assert frames == [["a"], ["b"]]
    assert result['final_rotation'] == pytest.approx(-1.25)


def test_cursor_moves_up_once_per_rendered_line():
    _, result, output = animate('g 1 [c 1 "ab" l "x", c 1 "cd" l "y"] e 1', step_size=0.5)

    frames, tail = frames_of(output)
    assert frames == [["xa", "yc"], ["xb", "yd"]]
    assert output.count(CURSOR_PREVIOUS_LINE) == 4
    assert tail == "\n\n"


def test_ender_already_past_one_revolution_draws_nothing():
    _, result, output = animate('c 1 "ab" e 1', rotation=2.0)
    assert result['steps'] == 0
    assert output == ""


def test_constant_time_sleeps_for_the_remainder_of_each_step():
    times = iter([0.0, 0.1, 1.0, 1.6, 2.0])
    sleeps = []
    config = AnimationConfig(step_size=0.5, constant_time=True, duration=0.5)
    animator = GearAnimator(parse_gearbox('c 1 "ab" e 1'), config, io.StringIO(),
                            clock=lambda: next(times), sleep=sleeps.append)

    result = animator.run()

    assert result['steps'] == 2
    assert sleeps == [pytest.approx(0.4)]


def test_without_constant_time_there_is_no_sleep():
    sleeps = []
    animator = GearAnimator(parse_gearbox('c 1 "ab" e 1'), AnimationConfig(step_size=0.5, duration=10.0),
                            io.StringIO(), sleep=sleeps.append)
    animator.run()
    assert sleeps == []


def test_step_after_stop_does_nothing():
    stream = io.StringIO()
    animator = GearAnimator(parse_gearbox("g 1 e 1"), AnimationConfig(step_size=1.0), stream)

    assert animator.step() is True
    assert animator.step() is False
    written = stream.getvalue()
    assert animator.step() is False
    assert stream.getvalue() == written
    assert animator.steps == 1


def test_interrupt_leaves_last_frame_on_screen():
    def interrupt(_):
        raise KeyboardInterrupt

    stream = io.StringIO()
    config = AnimationConfig(step_size=0.01, constant_time=True, duration=5.0)
    animator = GearAnimator(parse_gearbox('c 1 "ab" l "x"'), config, stream, sleep=interrupt)

    with pytest.raises(KeyboardInterrupt):
        animator.run()

    assert stream.getvalue() == f"xa{ERASE_TO_END_OF_LINE}\n"
