from __future__ import annotations

"""Channel testers: one class per input modality used to probe a state.

Each tester works on a page that is already showing its state and collects
records, issues and transitions into a ``ChannelOutcome``. Expected driver
failures arrive as unsuccessful ``Attempt`` values and become data here;
anything raised out of ``run`` is handled by ``InteractionProbe``.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Type

from playwright.async_api import ElementHandle, Error as PlaywrightError

from .driver import (
    ELEMENTS_VISIBLE_JS,
    FOCUSED_ELEMENT_JS,
    INTERACTIVE_SELECTOR,
    SCROLL_METRICS_JS,
    SCROLL_TO_BOTTOM_JS,
    SCROLL_TO_TOP_JS,
    SCROLL_Y_JS,
    SELECT_OPTIONS_JS,
    Attempt,
    PageDriver,
    describe_error,
)
from .models import Channel, ElementInfo, InteractionRecord, Issue, Severity, State, Transition

logger = logging.getLogger(__name__)

ARROW_KEYS = ("ArrowDown", "ArrowUp", "ArrowLeft", "ArrowRight")
TEXT_INPUT_TYPES = ("text", "email", "password", "search", "tel", "url")
TEXT_VALUE = "Test input 123"
NUMBER_VALUE = "42"
TEXTAREA_VALUE = "Test textarea content"


@dataclass
class ChannelOutcome:
    records: List[InteractionRecord] = field(default_factory=list)
    transitions: List[Transition] = field(default_factory=list)
    issues: List[Issue] = field(default_factory=list)


class ChannelTester:
    """Base class; subclasses implement ``exercise``."""

    channel: Channel
    issue_type: str

    def __init__(self, driver: PageDriver, state: State) -> None:
        self.driver = driver
        self.page = driver.page
        self.config = driver.config
        self.state = state
        self.outcome = ChannelOutcome()

    async def run(self) -> ChannelOutcome:
        await self.exercise()
        return self.outcome

    async def exercise(self) -> None:
        raise NotImplementedError

    # ------------------------------------------------------------------
    def record(self, type_: str, success: bool = True, duration: Optional[int] = None, **payload: Any) -> InteractionRecord:
        rec = InteractionRecord(
            channel=self.channel, type=type_, state=self.state.id, success=success, duration=duration, payload=payload
        )
        self.outcome.records.append(rec)
        return rec

    def issue(self, severity: Severity, message: str, type_: Optional[str] = None, **details: Any) -> Issue:
        found = Issue(state=self.state.id, type=type_ or self.issue_type, severity=severity, message=message, details=details)
        self.outcome.issues.append(found)
        return found

    async def act(
        self,
        trigger: Dict[str, Any],
        action: Callable[..., Awaitable[Any]],
        *args: Any,
        settle_ms: int = 0,
        **kwargs: Any,
    ) -> Attempt:
        """Run one atomic action and record a transition if it changed the URL.

        After a transition the page is taken back to where it was so the
        caller can carry on with the next element.
        """
        before = self.driver.url
        result = await self.driver.attempt(action, *args, **kwargs)
        await self.driver.wait(settle_ms)
        after = self.driver.url
        if after != before:
            result.navigated = True
            self.outcome.transitions.append(
                Transition(from_state=self.state.id, to=after, trigger=trigger, duration=result.duration_ms)
            )
            logger.debug("%s: %s moved %s -> %s", self.state.id, trigger, before, after)
            await self.return_to(before)
        return result

    async def return_to(self, url: str) -> None:
        back = await self.driver.back()
        if back.ok and self.driver.url == url:
            return
        nav = await self.driver.navigate(url)
        if not nav.ok:
            self.issue(Severity.LOW, f"Could not return to {url}: {nav.error}", type_="navigation")

    async def resolve(self, element: ElementInfo) -> Optional[ElementHandle]:
        found = await self.driver.attempt(self.driver.resolve, element)
        return found.value if found.ok else None

    def targets(self, predicate: Callable[[ElementInfo], bool], limit: int) -> List[ElementInfo]:
        return [el for el in self.state.elements if predicate(el)][:limit]


# ----------------------------------------------------------------------
# keyboard ---------------------------------------------------------------


class KeyboardTester(ChannelTester):
    """Tab traversal with focus-indicator checks, Enter on every stop, Escape and arrows."""

    channel = Channel.KEYBOARD
    issue_type = "keyboard"

    async def exercise(self) -> None:
        expected = self.targets(lambda el: el.is_focusable, self.config.keyboard_limit)
        tab_order: List[Dict[str, Any]] = []
        undetermined = 0

        for i in range(len(expected)):
            focused: Optional[Dict[str, Any]] = None
            pressed = await self.act({"type": "keyboard", "key": "Tab"}, self.page.keyboard.press, "Tab")
            if pressed.ok:
                probe = await self.driver.evaluate(FOCUSED_ELEMENT_JS)
                if not probe.ok:
                    # focus could not be read; neither reached nor missed
                    undetermined += 1
                elif isinstance(probe.value, dict):
                    focused = probe.value

            if focused is not None:
                tab_order.append(focused)
                # None means the style could not be read; only False is a finding
                if focused.get("hasFocusIndicator") is False:
                    self.issue(
                        Severity.HIGH,
                        f"No focus indicator on {focused.get('tag')}",
                        type_="accessibility",
                        element=focused,
                    )
                enter = await self.act(
                    {"type": "keyboard", "key": "Enter", "element": focused},
                    self.page.keyboard.press,
                    "Enter",
                    settle_ms=self.config.settle_ms,
                )
                if enter.navigated:
                    await self._refocus(i + 1)

            self.record("keyboard-tab", success=focused is not None, index=i + 1, element=focused)

        escape = await self.act({"type": "keyboard", "key": "Escape"}, self.page.keyboard.press, "Escape")
        self.record("keyboard-escape", success=escape.ok)
        for key in ARROW_KEYS:
            pressed = await self.act({"type": "keyboard", "key": key}, self.page.keyboard.press, key)
            self.record(f"keyboard-{key.lower()}", success=pressed.ok)

        checked = len(expected) - undetermined
        if len(tab_order) < checked:
            self.issue(
                Severity.MEDIUM,
                f"Tab order incomplete: {len(tab_order)}/{checked} elements reached",
                type_="accessibility",
                reached=len(tab_order),
                expected=checked,
            )

    async def _refocus(self, stops: int) -> None:
        # a fresh page starts with focus on <body>
        for _ in range(stops):
            await self.driver.press("Tab")


# ----------------------------------------------------------------------
# mouse ------------------------------------------------------------------


class MouseTester(ChannelTester):
    """Hover, click and right-click on the clickable elements of a state."""

    channel = Channel.MOUSE
    issue_type = "mouse"

    async def exercise(self) -> None:
        for element in self.targets(lambda el: el.is_clickable, self.config.mouse_limit):
            handle = await self.resolve(element)
            if handle is None:
                continue
            visible = await self.driver.attempt(handle.is_visible)
            if not visible.ok or not visible.value:
                continue
            await self._exercise_element(element, handle)

    async def _exercise_element(self, element: ElementInfo, handle: ElementHandle) -> None:
        timeout = self.config.click_timeout_ms
        described = element.to_dict()

        hover = await self.act({"type": "mouse", "action": "hover", "element": described}, handle.hover, timeout=timeout)
        self.record("mouse-hover", success=hover.ok, element=element.tag)
        if not hover.ok:
            self._failed(element, hover)
            return
        await self.driver.wait(100)

        click = await self.act(
            {"type": "mouse", "action": "click", "element": described},
            handle.click,
            timeout=timeout,
            settle_ms=self.config.settle_ms,
        )
        self.record(
            "mouse-click",
            success=click.ok,
            duration=click.duration_ms,
            element=element.tag,
            slow=click.duration_ms > self.config.slow_click_ms,
        )
        if not click.ok:
            self._failed(element, click)
            return
        await self.driver.ensure_single_tab()

        if click.navigated:
            # the old handle belongs to the page we navigated away from
            handle = await self.resolve(element)
            if handle is None:
                return

        context = await self.act(
            {"type": "mouse", "action": "contextmenu", "element": described},
            handle.click,
            button="right",
            timeout=timeout,
        )
        self.record("mouse-contextmenu", success=context.ok, element=element.tag)
        if not context.ok:
            self._failed(element, context)

    def _failed(self, element: ElementInfo, attempt: Attempt) -> None:
        self.issue(Severity.LOW, f"Mouse interaction failed on {element.tag}: {attempt.error}")


# ----------------------------------------------------------------------
# touch ------------------------------------------------------------------


class TouchTester(ChannelTester):
    """Tap, double-tap and swipe with the viewport switched to the mobile size."""

    channel = Channel.TOUCH
    issue_type = "touch"

    async def run(self) -> ChannelOutcome:
        # back to the desktop baseline, whatever size the page started at
        async with self.driver.viewport(self.config.mobile.size(), restore=self.config.desktop.size()):
            nav = await self.driver.navigate(self.config.url_for(self.state.url))
            if not nav.ok:
                self.issue(Severity.MEDIUM, f"Failed to load {self.state.url} at mobile viewport: {nav.error}", type_="navigation")
                return self.outcome
            await self.exercise()
        return self.outcome

    async def exercise(self) -> None:
        for element in self.targets(lambda el: el.is_clickable, self.config.touch_limit):
            handle = await self.resolve(element)
            if handle is None:
                continue
            described = element.to_dict()

            tap = await self.act(
                {"type": "touch", "action": "tap", "element": described},
                handle.tap,
                timeout=self.config.click_timeout_ms,
                settle_ms=300,
            )
            self.record("touch-tap", success=tap.ok, element=element.tag)
            if not tap.ok:
                self.issue(Severity.LOW, f"Touch interaction failed: {tap.error}")
                continue
            if tap.navigated:
                handle = await self.resolve(element)
                if handle is None:
                    continue

            box = await self.driver.attempt(handle.bounding_box)
            if not box.ok or not box.value:
                continue
            x = box.value["x"] + box.value["width"] / 2
            y = box.value["y"] + box.value["height"] / 2
            double = await self.act({"type": "touch", "action": "doubletap", "element": described}, self._double_tap, x, y)
            self.record("touch-doubletap", success=double.ok, element=element.tag)
            if not double.ok:
                self.issue(Severity.LOW, f"Touch interaction failed: {double.error}")

        swipe = await self.act({"type": "touch", "action": "swipe-up"}, self._swipe_up)
        if swipe.ok:
            self.record("touch-swipe-up")
        else:
            self.record("touch-swipe-up", success=False, reason=swipe.error)

    async def _double_tap(self, x: float, y: float) -> None:
        await self.page.touchscreen.tap(x, y)
        await self.page.wait_for_timeout(100)
        await self.page.touchscreen.tap(x, y)

    async def _swipe_up(self) -> None:
        await self.page.mouse.move(200, 300)
        await self.page.mouse.down()
        await self.page.mouse.move(200, 100)
        await self.page.mouse.up()


# ----------------------------------------------------------------------
# scroll -----------------------------------------------------------------


class ScrollTester(ChannelTester):
    channel = Channel.SCROLL
    issue_type = "scroll"

    async def exercise(self) -> None:
        metrics = await self.driver.evaluate(SCROLL_METRICS_JS)
        if not metrics.ok or not isinstance(metrics.value, dict):
            self.issue(Severity.LOW, f"Scroll testing error: {metrics.error}")
            return

        if metrics.value.get("scrollHeight", 0) <= metrics.value.get("viewportHeight", 0):
            self.record("scroll", success=False, reason="Page not scrollable")
            return

        wheel = await self.act({"type": "scroll", "action": "wheel"}, self.page.mouse.wheel, 0, 500, settle_ms=200)
        position = await self.driver.evaluate(SCROLL_Y_JS)
        distance = int(position.value or 0) if position.ok else 0
        self.record("scroll-wheel", success=wheel.ok, scrolled=distance > 0, distance=distance)
        self._check(wheel, "wheel")

        steps: List[Tuple[str, Callable[..., Awaitable[Any]], str]] = [
            ("scroll-to-bottom", self.page.evaluate, SCROLL_TO_BOTTOM_JS),
            ("scroll-to-top", self.page.evaluate, SCROLL_TO_TOP_JS),
            ("scroll-keyboard-pagedown", self.page.keyboard.press, "PageDown"),
        ]
        for type_, action, arg in steps:
            result = await self.act({"type": "scroll", "action": type_[len("scroll-"):]}, action, arg)
            self.record(type_, success=result.ok)
            self._check(result, type_)

    def _check(self, attempt: Attempt, what: str) -> None:
        if not attempt.ok:
            self.issue(Severity.LOW, f"Scroll testing error ({what}): {attempt.error}")


# ----------------------------------------------------------------------
# zoom -------------------------------------------------------------------


class ZoomTester(ChannelTester):
    """Simulates browser zoom by shrinking/growing the viewport by 1/zoom."""

    channel = Channel.ZOOM
    issue_type = "zoom"

    async def exercise(self) -> None:
        base = self.driver.viewport_size()
        for level in self.config.zoom_levels:
            pct = round(level * 100)
            size = {"width": round(base["width"] / level), "height": round(base["height"] / level)}
            try:
                async with self.driver.viewport(size):
                    await self.driver.wait(300)
                    visible = await self.driver.evaluate(ELEMENTS_VISIBLE_JS, INTERACTIVE_SELECTOR)
            except PlaywrightError as e:
                self.record(f"zoom-{pct}%", success=False, zoomLevel=level, elementsVisible=None, reason=describe_error(e))
                self.issue(Severity.MEDIUM, f"Zoom {pct}% failed: {describe_error(e)}")
                continue

            if not visible.ok:
                self.record(f"zoom-{pct}%", success=False, zoomLevel=level, elementsVisible=None, reason=visible.error)
                continue

            elements_visible = bool(visible.value)
            self.record(f"zoom-{pct}%", zoomLevel=level, elementsVisible=elements_visible)
            if not elements_visible and level >= 1.0:
                self.issue(Severity.HIGH, f"Page broken at {pct}% zoom - no interactive elements visible", zoomLevel=level)


# ----------------------------------------------------------------------
# forms ------------------------------------------------------------------


class FormsTester(ChannelTester):
    """Feeds a synthetic value into each form control according to its kind."""

    channel = Channel.FORMS
    issue_type = "form"

    async def exercise(self) -> None:
        for element in self.targets(lambda el: el.is_form_control, self.config.form_limit):
            handle = await self.resolve(element)
            if handle is None:
                continue
            outcome = await self._exercise_control(element, handle)
            if outcome is None:
                logger.debug("%s: skipping %s control of type %s", self.state.id, element.tag, element.type)
                continue
            type_, result = outcome
            self.record(type_, success=result.ok)
            if not result.ok:
                self.issue(Severity.LOW, f"Form testing error on {element.tag}: {result.error}")

    async def _exercise_control(self, element: ElementInfo, handle: ElementHandle) -> Optional[Tuple[str, Attempt]]:
        timeout = self.config.click_timeout_ms
        trigger = {"type": "form", "action": "fill", "element": element.to_dict()}

        if element.tag == "TEXTAREA":
            return "form-textarea", await self.act(trigger, handle.fill, TEXTAREA_VALUE, timeout=timeout)
        if element.tag == "SELECT":
            options = await self.driver.attempt(handle.eval_on_selector_all, "option", SELECT_OPTIONS_JS)
            if not options.ok:
                return "form-select", options
            if not options.value:
                return None
            trigger["action"] = "select"
            return "form-select", await self.act(trigger, handle.select_option, options.value[0], timeout=timeout)

        input_type = (element.type or "text").lower()
        if input_type in TEXT_INPUT_TYPES:
            return f"form-input-{input_type}", await self.act(trigger, handle.fill, TEXT_VALUE, timeout=timeout)
        if input_type == "number":
            return "form-input-number", await self.act(trigger, handle.fill, NUMBER_VALUE, timeout=timeout)
        if input_type == "checkbox":
            trigger["action"] = "check"
            return "form-checkbox", await self.act(trigger, self._toggle, handle)
        if input_type == "radio":
            trigger["action"] = "check"
            return "form-radio", await self.act(trigger, handle.check, timeout=timeout)
        return None

    async def _toggle(self, handle: ElementHandle) -> None:
        await handle.check(timeout=self.config.click_timeout_ms)
        await self.page.wait_for_timeout(100)
        await handle.uncheck(timeout=self.config.click_timeout_ms)


CHANNEL_TESTERS: Tuple[Type[ChannelTester], ...] = (KeyboardTester, MouseTester, TouchTester, ScrollTester, ZoomTester, FormsTester)
