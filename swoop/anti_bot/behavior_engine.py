"""Simulation of human-like mouse, typing, scrolling, timing and navigation behaviour."""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from math import hypot

_FRAME_MS = 16.0  # roughly 60 frames per second
_KEYBOARD = "qwertyuiopasdfghjklzxcvbnm"
_KEYBOARD_ROWS = ((0, 10), (10, 19), (19, 26))
_BACKSPACE = "\b"
_MIN_DELAY_MS = 500.0

_SEARCH_REFERRERS = (
    "https://www.google.com/",
    "https://www.bing.com/",
    "https://duckduckgo.com/",
)
_SOCIAL_REFERRERS = (
    "https://www.facebook.com/",
    "https://twitter.com/",
    "https://www.linkedin.com/",
)

Point = tuple[float, float]


def _chance(rng: random.Random, probability: float) -> bool:
    return rng.random() < probability


class MouseEventType(Enum):
    MOVE = "Move"
    CLICK = "Click"
    HOVER = "Hover"


@dataclass
class MouseEvent:
    x: float
    y: float
    timestamp: float
    event_type: MouseEventType


class TypingEventType(Enum):
    KEY_PRESS = "KeyPress"
    BACKSPACE = "Backspace"
    PAUSE = "Pause"


@dataclass
class TypingEvent:
    character: str
    timestamp: float
    event_type: TypingEventType


class ScrollType(Enum):
    WHEEL = "Wheel"
    TRACKPAD = "Trackpad"
    SCROLLBAR = "Scrollbar"


@dataclass
class ScrollEvent:
    delta_y: int
    timestamp: float
    scroll_type: ScrollType


class NavigationType(Enum):
    PAGE_LOAD = "PageLoad"
    LINK_CLICK = "LinkClick"
    BACK_NAVIGATION = "BackNavigation"


class NavigationActionKind(Enum):
    LOAD_PAGE = "LoadPage"
    WAIT_FOR_LOAD = "WaitForLoad"
    MOUSE_HOVER = "MouseHover"
    CLICK = "Click"
    SCROLL_TO_TOP = "ScrollToTop"
    BACK_BUTTON = "BackButton"
    SWITCH_TAB = "SwitchTab"
    OPEN_NEW_TAB = "OpenNewTab"


@dataclass(frozen=True)
class NavigationAction:
    """One navigation step; waits and hovers carry a duration."""

    kind: NavigationActionKind
    duration: timedelta | None = None


class ReferrerKind(Enum):
    DIRECT_NAVIGATION = "DirectNavigation"
    SEARCH_ENGINE = "SearchEngine"
    SOCIAL_MEDIA = "SocialMedia"
    KEEP_REFERRER = "KeepReferrer"


@dataclass(frozen=True)
class ReferrerBehavior:
    """How the referrer is presented; search and social kinds carry a URL."""

    kind: ReferrerKind
    url: str | None = None


@dataclass
class NavigationBehavior:
    actions: list[NavigationAction]
    referrer_behavior: ReferrerBehavior


@dataclass
class MouseCharacteristics:
    movement_speed: float
    acceleration_factor: float
    jitter_intensity: float
    pause_probability: float


@dataclass
class TypingCharacteristics:
    typing_speed: float
    speed_variance: float
    error_rate: float


@dataclass
class ScrollCharacteristics:
    scroll_speed: float
    pause_probability: float
    reading_speed: float


@dataclass
class TimingCharacteristics:
    base_delay_ms: int
    variance_factor: float
    context_aware: bool


@dataclass
class BehaviorProfile:
    mouse_characteristics: MouseCharacteristics
    typing_characteristics: TypingCharacteristics
    scroll_characteristics: ScrollCharacteristics
    timing_characteristics: TimingCharacteristics


class MouseSimulator:
    """Generates mouse paths along randomised quadratic Bézier curves."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng if rng is not None else random.Random()
        self.movement_speed = self._rng.uniform(200.0, 800.0)  # pixels per second
        self.acceleration_factor = self._rng.uniform(0.8, 1.2)
        self.jitter_intensity = self._rng.uniform(0.1, 0.3)
        self.pause_probability = self._rng.uniform(0.05, 0.15)

    def generate_natural_movement(self, start: Point, end: Point) -> list[MouseEvent]:
        """Sample a curved path from ``start`` to ``end`` at about 60 frames per second."""
        distance = hypot(end[0] - start[0], end[1] - start[1])
        duration_ms = distance / self.movement_speed * 1000.0
        control_points = self._control_points(start, end)
        num_points = int(duration_ms / _FRAME_MS)

        events: list[MouseEvent] = []
        current_time = 0.0
        for i in range(num_points):
            x, y = self._add_jitter(self.bezier_curve(i / num_points, control_points))
            events.append(MouseEvent(x, y, current_time, MouseEventType.MOVE))
            if _chance(self._rng, self.pause_probability):
                current_time += self._rng.uniform(10.0, 50.0)
            current_time += _FRAME_MS
        return events

    def _control_points(self, start: Point, end: Point) -> list[Point]:
        mid_x = (start[0] + end[0]) / 2.0
        mid_y = (start[1] + end[1]) / 2.0
        offset_x = self._rng.uniform(-50.0, 50.0)
        offset_y = self._rng.uniform(-50.0, 50.0)
        return [start, (mid_x + offset_x, mid_y + offset_y), end]

    def bezier_curve(self, t: float, control_points: list[Point]) -> Point:
        """Point at ``t`` on a quadratic curve, or on the line from first to last point."""
        if len(control_points) == 3:
            (x0, y0), (x1, y1), (x2, y2) = control_points
            u = 1.0 - t
            return (
                u * u * x0 + 2.0 * u * t * x1 + t * t * x2,
                u * u * y0 + 2.0 * u * t * y1 + t * t * y2,
            )
        (sx, sy), (ex, ey) = control_points[0], control_points[-1]
        return (sx + t * (ex - sx), sy + t * (ey - sy))

    def _add_jitter(self, point: Point) -> Point:
        j = self.jitter_intensity
        return (point[0] + self._rng.uniform(-j, j), point[1] + self._rng.uniform(-j, j))

    def characteristics(self) -> MouseCharacteristics:
        return MouseCharacteristics(
            movement_speed=self.movement_speed,
            acceleration_factor=self.acceleration_factor,
            jitter_intensity=self.jitter_intensity,
            pause_probability=self.pause_probability,
        )


class TypingSimulator:
    """Generates keystroke sequences with variable speed, typos and pauses."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng if rng is not None else random.Random()
        self.base_typing_speed = self._rng.uniform(200.0, 400.0)  # characters per minute
        self.speed_variance = self._rng.uniform(0.2, 0.4)
        self.error_rate = self._rng.uniform(0.01, 0.05)
        self.pause_after_word_probability = self._rng.uniform(0.1, 0.3)

    def generate_typing_sequence(self, text: str) -> list[TypingEvent]:
        """Keystrokes that type ``text``, including corrected mistakes."""
        events: list[TypingEvent] = []
        current_time = 0.0
        base_delay = 60000.0 / self.base_typing_speed

        for char in text:
            variance = self._rng.uniform(-self.speed_variance, self.speed_variance)
            char_delay = base_delay * (1.0 + variance)

            if _chance(self._rng, self.error_rate):
                wrong = self.generate_wrong_character(char)
                events.append(TypingEvent(wrong, current_time, TypingEventType.KEY_PRESS))
                current_time += char_delay * 0.5
                events.append(TypingEvent(_BACKSPACE, current_time, TypingEventType.BACKSPACE))
                current_time += char_delay * 0.3

            events.append(TypingEvent(char, current_time, TypingEventType.KEY_PRESS))
            current_time += char_delay

            if char.isspace() and _chance(self._rng, self.pause_after_word_probability):
                current_time += self._rng.uniform(100.0, 500.0)
            if char in ".!?":
                current_time += self._rng.uniform(200.0, 800.0)

        return events

    def generate_wrong_character(self, intended_char: str) -> str:
        """A letter from the same keyboard row, or any letter for non-letters."""
        key = intended_char.lower() if intended_char.isascii() else intended_char
        pos = _KEYBOARD.find(key) if len(key) == 1 else -1
        if pos >= 0:
            for start, stop in _KEYBOARD_ROWS:
                if start <= pos < stop:
                    return self._rng.choice(_KEYBOARD[start:stop])
        return chr(self._rng.randint(ord("a"), ord("z")))

    def characteristics(self) -> TypingCharacteristics:
        return TypingCharacteristics(
            typing_speed=self.base_typing_speed,
            speed_variance=self.speed_variance,
            error_rate=self.error_rate,
        )


class ScrollSimulator:
    """Generates chunked wheel scrolling with reading pauses."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng if rng is not None else random.Random()
        self.scroll_speed = self._rng.uniform(300.0, 800.0)
        self.pause_probability = self._rng.uniform(0.2, 0.4)
        self.reading_speed = self._rng.uniform(50.0, 150.0)  # pixels per second

    def generate_scroll_sequence(
        self, total_distance: int, content_height: int
    ) -> list[ScrollEvent]:
        """Wheel events whose deltas add up to ``total_distance``."""
        events: list[ScrollEvent] = []
        target = abs(total_distance)
        position = 0
        current_time = 0.0

        while position < target:
            chunk = min(self._rng.randrange(50, 200), target - position)
            events.append(
                ScrollEvent(
                    delta_y=chunk if total_distance > 0 else -chunk,
                    timestamp=current_time,
                    scroll_type=ScrollType.WHEEL,
                )
            )
            position += chunk
            current_time += chunk / self.scroll_speed * 1000.0
            if _chance(self._rng, self.pause_probability):
                current_time += self._rng.uniform(500.0, 2000.0)

        return events

    def characteristics(self) -> ScrollCharacteristics:
        return ScrollCharacteristics(
            scroll_speed=self.scroll_speed,
            pause_probability=self.pause_probability,
            reading_speed=self.reading_speed,
        )


class TimingEngine:
    """Produces delays around a base value with random variance."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng if rng is not None else random.Random()
        self.base_delay = timedelta(milliseconds=self._rng.randrange(2000, 8000))
        self.variance_factor = self._rng.uniform(0.3, 0.7)
        self.context_aware = True

    def _base_ms(self) -> int:
        return self.base_delay // timedelta(milliseconds=1)

    def calculate_natural_delay(self) -> timedelta:
        """A delay of at least 500 ms, spread around the base delay."""
        base_ms = float(self._base_ms())
        variance = base_ms * self.variance_factor
        actual = base_ms + variance * self._rng.uniform(-1.0, 1.0)
        return timedelta(milliseconds=int(max(actual, _MIN_DELAY_MS)))

    def characteristics(self) -> TimingCharacteristics:
        return TimingCharacteristics(
            base_delay_ms=self._base_ms(),
            variance_factor=self.variance_factor,
            context_aware=self.context_aware,
        )


def _ms(rng: random.Random, low: int, high: int) -> timedelta:
    return timedelta(milliseconds=rng.randrange(low, high))


class NavigationSimulator:
    """Produces navigation step sequences and referrer choices."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng if rng is not None else random.Random()
        self.tab_switch_probability = self._rng.uniform(0.1, 0.3)
        self.back_navigation_probability = self._rng.uniform(0.05, 0.15)
        self.new_tab_probability = self._rng.uniform(0.02, 0.08)

    def generate_navigation_behavior(self, nav_type: NavigationType) -> NavigationBehavior:
        rng = self._rng
        actions: list[NavigationAction] = []

        if nav_type is NavigationType.PAGE_LOAD:
            actions.append(NavigationAction(NavigationActionKind.LOAD_PAGE))
            actions.append(
                NavigationAction(NavigationActionKind.WAIT_FOR_LOAD, _ms(rng, 1000, 3000))
            )
            actions.append(NavigationAction(NavigationActionKind.SCROLL_TO_TOP))
            if _chance(rng, self.tab_switch_probability):
                actions.append(NavigationAction(NavigationActionKind.SWITCH_TAB))
        elif nav_type is NavigationType.LINK_CLICK:
            actions.append(NavigationAction(NavigationActionKind.MOUSE_HOVER, _ms(rng, 200, 800)))
            actions.append(NavigationAction(NavigationActionKind.CLICK))
            actions.append(
                NavigationAction(NavigationActionKind.WAIT_FOR_LOAD, _ms(rng, 800, 2000))
            )
            if _chance(rng, self.new_tab_probability):
                actions.append(NavigationAction(NavigationActionKind.OPEN_NEW_TAB))
        else:
            actions.append(NavigationAction(NavigationActionKind.BACK_BUTTON))
            actions.append(
                NavigationAction(NavigationActionKind.WAIT_FOR_LOAD, _ms(rng, 500, 1500))
            )

        if nav_type is not NavigationType.BACK_NAVIGATION and _chance(
            rng, self.back_navigation_probability
        ):
            actions.append(NavigationAction(NavigationActionKind.BACK_BUTTON))

        return NavigationBehavior(actions=actions, referrer_behavior=self._referrer())

    def _referrer(self) -> ReferrerBehavior:
        choice = self._rng.randrange(4)
        if choice == 0:
            return ReferrerBehavior(ReferrerKind.DIRECT_NAVIGATION)
        if choice == 1:
            return ReferrerBehavior(ReferrerKind.SEARCH_ENGINE, self._rng.choice(_SEARCH_REFERRERS))
        if choice == 2:
            return ReferrerBehavior(ReferrerKind.SOCIAL_MEDIA, self._rng.choice(_SOCIAL_REFERRERS))
        return ReferrerBehavior(ReferrerKind.KEEP_REFERRER)


class BehaviorEngine:
    """Bundles the individual simulators behind one interface."""

    def __init__(self, rng: random.Random | None = None) -> None:
        rng = rng if rng is not None else random.Random()
        self.mouse_simulator = MouseSimulator(rng)
        self.typing_simulator = TypingSimulator(rng)
        self.scroll_simulator = ScrollSimulator(rng)
        self.timing_engine = TimingEngine(rng)
        self.navigation_simulator = NavigationSimulator(rng)

    async def apply_timing_delay(self) -> None:
        """Sleep for a natural, randomised delay."""
        delay = self.timing_engine.calculate_natural_delay()
        await asyncio.sleep(delay.total_seconds())

    def simulate_mouse_movement(self, start: Point, end: Point) -> list[MouseEvent]:
        return self.mouse_simulator.generate_natural_movement(start, end)

    def simulate_typing(self, text: str) -> list[TypingEvent]:
        return self.typing_simulator.generate_typing_sequence(text)

    def simulate_scroll(self, scroll_distance: int, content_height: int) -> list[ScrollEvent]:
        return self.scroll_simulator.generate_scroll_sequence(scroll_distance, content_height)

    def simulate_navigation(self, navigation_type: NavigationType) -> NavigationBehavior:
        return self.navigation_simulator.generate_navigation_behavior(navigation_type)

    def generate_behavior_profile(self) -> BehaviorProfile:
        return BehaviorProfile(
            mouse_characteristics=self.mouse_simulator.characteristics(),
            typing_characteristics=self.typing_simulator.characteristics(),
            scroll_characteristics=self.scroll_simulator.characteristics(),
            timing_characteristics=self.timing_engine.characteristics(),
        )