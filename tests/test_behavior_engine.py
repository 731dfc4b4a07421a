import random
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from swoop.anti_bot.behavior_engine import (
    BehaviorEngine,
    MouseEventType,
    MouseSimulator,
    NavigationActionKind,
    NavigationType,
    ReferrerKind,
    ScrollSimulator,
    ScrollType,
    TimingEngine,
    TypingEventType,
    TypingSimulator,
)

SEARCH = {"https://www.google.com/", "https://www.bing.com/", "https://duckduckgo.com/"}
SOCIAL = {"https://www.facebook.com/", "https://twitter.com/", "https://www.linkedin.com/"}


def _is_human_mouse_movement(movements):
    if len(movements) < 2:
        return False
    has_curves = False
    realistic_timing = True
    for a, b in zip(movements, movements[1:]):
        if not 10.0 <= b.timestamp - a.timestamp <= 500.0:
            realistic_timing = False
        if abs(b.x - a.x) > 0.0 and abs(b.y - a.y) > 0.0:
            has_curves = True
    return has_curves and realistic_timing


def _replay(events):
    typed = []
    for event in events:
        if event.event_type is TypingEventType.BACKSPACE:
            typed.pop()
        else:
            typed.append(event.character)
    return "".join(typed)


@pytest.mark.parametrize("seed", range(5))
def test_mouse_movement_looks_human(seed):
    engine = BehaviorEngine(random.Random(seed))
    events = engine.simulate_mouse_movement((0.0, 0.0), (500.0, 300.0))
    assert _is_human_mouse_movement(events)
    assert all(e.event_type is MouseEventType.MOVE for e in events)


def test_mouse_movement_starts_near_start_point():
    sim = MouseSimulator(random.Random(1))
    events = sim.generate_natural_movement((10.0, 20.0), (400.0, 300.0))
    first = events[0]
    assert first.timestamp == 0.0
    assert abs(first.x - 10.0) <= 0.3
    assert abs(first.y - 20.0) <= 0.3


def test_mouse_movement_zero_distance_is_empty():
    sim = MouseSimulator(random.Random(2))
    assert sim.generate_natural_movement((5.0, 5.0), (5.0, 5.0)) == []


def test_mouse_frame_gaps():
    sim = MouseSimulator(random.Random(3))
    events = sim.generate_natural_movement((0.0, 0.0), (800.0, 600.0))
    gaps = [b.timestamp - a.timestamp for a, b in zip(events, events[1:])]
    assert all(16.0 <= g < 66.0 for g in gaps)


def test_bezier_endpoints_and_linear_fallback():
    sim = MouseSimulator(random.Random(0))
    points = [(0.0, 0.0), (10.0, 20.0), (20.0, 0.0)]
    assert sim.bezier_curve(0.0, points) == (0.0, 0.0)
    assert sim.bezier_curve(1.0, points) == (20.0, 0.0)
    assert sim.bezier_curve(0.5, [(0.0, 0.0), (10.0, 10.0)]) == (5.0, 5.0)


def test_mouse_characteristics_ranges():
    c = MouseSimulator(random.Random(4)).characteristics()
    assert 200.0 <= c.movement_speed < 800.0
    assert 0.8 <= c.acceleration_factor < 1.2
    assert 0.1 <= c.jitter_intensity < 0.3
    assert 0.05 <= c.pause_probability < 0.15


@pytest.mark.parametrize("seed", range(10))
def test_typing_reproduces_text(seed):
    text = "Hello, this is a test typing simulation!"
    events = BehaviorEngine(random.Random(seed)).simulate_typing(text)
    assert _replay(events) == text
    stamps = [e.timestamp for e in events]
    assert stamps == sorted(stamps)


def test_typing_with_errors_inserts_backspace():
    sim = TypingSimulator(random.Random(7))
    sim.error_rate = 1.0
    events = sim.generate_typing_sequence("ab")
    kinds = [e.event_type for e in events]
    assert kinds == [
        TypingEventType.KEY_PRESS,
        TypingEventType.BACKSPACE,
        TypingEventType.KEY_PRESS,
        TypingEventType.KEY_PRESS,
        TypingEventType.BACKSPACE,
        TypingEventType.KEY_PRESS,
    ]
    assert events[1].character == "\b"
    assert _replay(events) == "ab"


def test_typing_empty_text():
    assert TypingSimulator(random.Random(0)).generate_typing_sequence("") == []


@pytest.mark.parametrize(
    "char, row",
    [("q", "qwertyuiop"), ("P", "qwertyuiop"), ("a", "asdfghjkl"), ("m", "zxcvbnm")],
)
def test_wrong_character_same_row(char, row):
    sim = TypingSimulator(random.Random(11))
    for _ in range(20):
        assert sim.generate_wrong_character(char) in row


def test_wrong_character_fallback_is_letter():
    sim = TypingSimulator(random.Random(12))
    for ch in "1 .é":
        wrong = sim.generate_wrong_character(ch)
        assert "a" <= wrong <= "z"


@pytest.mark.parametrize("distance", [1000, -750, 30])
def test_scroll_deltas_sum_to_distance(distance):
    events = ScrollSimulator(random.Random(5)).generate_scroll_sequence(distance, 5000)
    assert sum(e.delta_y for e in events) == distance
    assert all(1 <= abs(e.delta_y) < 200 for e in events)
    assert all((e.delta_y > 0) == (distance > 0) for e in events)
    assert all(e.scroll_type is ScrollType.WHEEL for e in events)
    stamps = [e.timestamp for e in events]
    assert stamps == sorted(stamps)


def test_scroll_zero_distance():
    assert ScrollSimulator(random.Random(0)).generate_scroll_sequence(0, 100) == []


@pytest.mark.parametrize("seed", range(10))
def test_natural_delay_bounds(seed):
    engine = TimingEngine(random.Random(seed))
    c = engine.characteristics()
    assert 2000 <= c.base_delay_ms < 8000
    assert 0.3 <= c.variance_factor < 0.7
    assert c.context_aware is True
    delay = engine.calculate_natural_delay()
    upper = c.base_delay_ms * (1 + c.variance_factor)
    assert timedelta(milliseconds=500) <= delay <= timedelta(milliseconds=upper)


@pytest.mark.parametrize("seed", range(5))
def test_page_load_navigation(seed):
    behavior = BehaviorEngine(random.Random(seed)).simulate_navigation(NavigationType.PAGE_LOAD)
    kinds = [a.kind for a in behavior.actions]
    assert kinds[:3] == [
        NavigationActionKind.LOAD_PAGE,
        NavigationActionKind.WAIT_FOR_LOAD,
        NavigationActionKind.SCROLL_TO_TOP,
    ]
    wait = behavior.actions[1].duration
    assert timedelta(milliseconds=1000) <= wait < timedelta(milliseconds=3000)
    assert set(kinds[3:]) <= {NavigationActionKind.SWITCH_TAB, NavigationActionKind.BACK_BUTTON}


@pytest.mark.parametrize("seed", range(5))
def test_link_click_navigation(seed):
    behavior = BehaviorEngine(random.Random(seed)).simulate_navigation(NavigationType.LINK_CLICK)
    kinds = [a.kind for a in behavior.actions]
    assert kinds[:3] == [
        NavigationActionKind.MOUSE_HOVER,
        NavigationActionKind.CLICK,
        NavigationActionKind.WAIT_FOR_LOAD,
    ]
    hover = behavior.actions[0].duration
    assert timedelta(milliseconds=200) <= hover < timedelta(milliseconds=800)


@pytest.mark.parametrize("seed", range(10))
def test_back_navigation_and_referrer(seed):
    behavior = BehaviorEngine(random.Random(seed)).simulate_navigation(
        NavigationType.BACK_NAVIGATION
    )
    assert [a.kind for a in behavior.actions] == [
        NavigationActionKind.BACK_BUTTON,
        NavigationActionKind.WAIT_FOR_LOAD,
    ]
    ref = behavior.referrer_behavior
    if ref.kind is ReferrerKind.SEARCH_ENGINE:
        assert ref.url in SEARCH
    elif ref.kind is ReferrerKind.SOCIAL_MEDIA:
        assert ref.url in SOCIAL
    else:
        assert ref.url is None


def test_behavior_profile_matches_simulators():
    engine = BehaviorEngine(random.Random(9))
    profile = engine.generate_behavior_profile()
    assert profile.mouse_characteristics.movement_speed == engine.mouse_simulator.movement_speed
    assert profile.typing_characteristics.typing_speed == engine.typing_simulator.base_typing_speed
    assert profile.scroll_characteristics.scroll_speed == engine.scroll_simulator.scroll_speed
    assert 2000 <= profile.timing_characteristics.base_delay_ms < 8000


@pytest.mark.asyncio
async def test_apply_timing_delay_sleeps():
    engine = BehaviorEngine(random.Random(13))
    sleep = AsyncMock()
    with patch("asyncio.sleep", new=sleep):
        await engine.apply_timing_delay()
    assert sleep.await_count == 1
    (seconds,), _ = sleep.await_args
    assert seconds >= 0.5
    c = engine.timing_engine.characteristics()
    assert seconds <= c.base_delay_ms * (1 + c.variance_factor) / 1000