"""In-memory stand-ins for the Playwright objects screen-flow talks to.

``FakePage`` serves a dict of scripted screens, keeps a history stack for
``go_back``, moves focus on Tab, scrolls, and answers the in-page scripts
from ``screen_flow.driver`` by identity.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse

from playwright.async_api import Error as PlaywrightError

from screen_flow import driver as scripts
from screen_flow.models import ElementInfo, State

BASE_URL = "http://app.test"
FOCUSABLE_TAGS = ("BUTTON", "A", "INPUT", "SELECT", "TEXTAREA")


# ==================== Scripted site ====================


@dataclass
class FakeElement:
    tag: str
    id: str = ""
    type: Optional[str] = None
    text: str = ""
    href: Optional[str] = None
    role: Optional[str] = None
    focus_indicator: Optional[bool] = True
    tabbable: bool = True
    visible: bool = True
    options: List[str] = field(default_factory=list)
    fail: tuple = ()  # handle methods that raise, e.g. ("click",)
    value: Any = None
    checked: bool = False

    def info(self, index: int) -> Dict[str, Any]:
        el_type = self.type
        if el_type is None and self.tag == "INPUT":
            el_type = "text"
        if self.tag == "SELECT":
            el_type = "select-one"
        return {
            "index": index,
            "tag": self.tag,
            "type": el_type,
            "text": self.text,
            "href": self.href,
            "role": self.role,
            "ariaLabel": None,
            "id": self.id,
            "classes": "",
        }


@dataclass
class FakeScreen:
    title: str
    elements: List[FakeElement] = field(default_factory=list)
    content: str = ""
    scroll_height: Optional[int] = None  # defaults to the viewport height
    redirect: Optional[str] = None
    fail: bool = False
    # viewport width below which interactive elements are laid out off-screen
    hide_below_width: Optional[int] = None
    broken_scripts: tuple = ()


def buttons(n: int) -> List[FakeElement]:
    return [FakeElement("BUTTON", id=f"btn-{i}", text=f"Button {i}") for i in range(n)]


# ==================== Fake Playwright objects ====================


class FakeKeyboard:
    def __init__(self, page: "FakePage") -> None:
        self._page = page
        self.pressed: List[str] = []

    async def press(self, key: str) -> None:
        self.pressed.append(key)
        page = self._page
        if key == "Tab":
            order = page.tab_order()
            page.focus += 1
            if page.focus >= len(order):
                page.focus = len(order)
        elif key == "Enter":
            el = page.focused_element()
            if el is not None and el.href:
                page.follow(el.href)
        elif key == "PageDown":
            page.scroll_by(page.viewport_size["height"])


class FakeMouse:
    def __init__(self, page: "FakePage") -> None:
        self._page = page
        self.events: List[tuple] = []

    async def wheel(self, delta_x: float, delta_y: float) -> None:
        self.events.append(("wheel", delta_x, delta_y))
        self._page.scroll_by(delta_y)

    async def move(self, x: float, y: float) -> None:
        self.events.append(("move", x, y))

    async def down(self) -> None:
        self.events.append(("down",))

    async def up(self) -> None:
        self.events.append(("up",))


class FakeTouchscreen:
    def __init__(self, page: "FakePage") -> None:
        self._page = page
        self.taps: List[tuple] = []

    async def tap(self, x: float, y: float) -> None:
        self.taps.append((x, y))


class FakeContext:
    def __init__(self, page: "FakePage") -> None:
        self.pages: List[Any] = [page]


class FakeHandle:
    def __init__(self, page: "FakePage", element: FakeElement, index: int) -> None:
        self._page = page
        self.element = element
        self.index = index

    def _maybe_fail(self, name: str) -> None:
        self._page.calls.append((name, self.element.id or self.element.tag))
        if name in self.element.fail:
            raise PlaywrightError(f"Timeout 2000ms exceeded.\nCall log:\n  - waiting for element to be {name}able")

    async def is_visible(self) -> bool:
        return self.element.visible

    async def hover(self, timeout: Optional[float] = None) -> None:
        self._maybe_fail("hover")

    async def click(self, timeout: Optional[float] = None, button: str = "left") -> None:
        self._maybe_fail("click" if button == "left" else "contextmenu")
        if button == "left" and self.element.href:
            self._page.follow(self.element.href)

    async def tap(self, timeout: Optional[float] = None) -> None:
        self._maybe_fail("tap")
        if self.element.href:
            self._page.follow(self.element.href)

    async def bounding_box(self) -> Optional[Dict[str, float]]:
        return {"x": 10.0, "y": 20.0 + 40 * self.index, "width": 100.0, "height": 30.0}

    async def fill(self, value: str, timeout: Optional[float] = None) -> None:
        self._maybe_fail("fill")
        self.element.value = value

    async def check(self, timeout: Optional[float] = None) -> None:
        self._maybe_fail("check")
        self.element.checked = True

    async def uncheck(self, timeout: Optional[float] = None) -> None:
        self._maybe_fail("uncheck")
        self.element.checked = False

    async def select_option(self, value: str, timeout: Optional[float] = None) -> List[str]:
        self._maybe_fail("select")
        self.element.value = value
        return [value]

    async def eval_on_selector_all(self, selector: str, expression: str) -> Any:
        assert selector == "option"
        return [v for v in self.element.options if v]


class FakePage:
    def __init__(self, site: Dict[str, FakeScreen], base_url: str = BASE_URL) -> None:
        self.site = site
        self.base_url = base_url
        self.url = "about:blank"
        self.history: List[str] = []
        self.focus = -1
        self.scroll_y = 0
        self.viewport_size: Optional[Dict[str, int]] = {"width": 1920, "height": 1080}
        self.viewport_history: List[Dict[str, int]] = []
        self.screenshots: List[str] = []
        self.fail_screenshots = False
        self.calls: List[tuple] = []
        self.keyboard = FakeKeyboard(self)
        self.mouse = FakeMouse(self)
        self.touchscreen = FakeTouchscreen(self)
        self.context = FakeContext(self)
        # hook for tests that want a viewport change to blow up
        self.on_set_viewport: Optional[Callable[[Dict[str, int]], None]] = None

    # --- helpers used by the fakes -----------------------------------
    @property
    def path(self) -> str:
        return urlparse(self.url).path or "/"

    @property
    def screen(self) -> FakeScreen:
        return self.site[self.path]

    def tab_order(self) -> List[FakeElement]:
        return [el for el in self.screen.elements if el.tabbable and (el.tag in FOCUSABLE_TAGS or el.role == "button")]

    def focused_element(self) -> Optional[FakeElement]:
        order = self.tab_order()
        if 0 <= self.focus < len(order):
            return order[self.focus]
        return None

    def _load(self, path: str) -> None:
        seen = set()
        while path in self.site and self.site[path].redirect and path not in seen:
            seen.add(path)
            path = self.site[path].redirect
        if path not in self.site or self.site[path].fail:
            raise PlaywrightError("net::ERR_CONNECTION_REFUSED at " + path)
        self.url = self.base_url + path
        self.focus = -1
        self.scroll_y = 0

    def follow(self, href: str) -> None:
        self.history.append(self.url)
        self._load(urlparse(href).path if "://" in href else href)

    def scroll_by(self, dy: float) -> None:
        limit = max(0, self._scroll_height() - self.viewport_size["height"])
        self.scroll_y = int(min(max(0, self.scroll_y + dy), limit))

    def _scroll_height(self) -> int:
        return self.screen.scroll_height or self.viewport_size["height"]

    # --- Page API ----------------------------------------------------
    async def goto(self, url: str, wait_until: Optional[str] = None, timeout: Optional[float] = None) -> None:
        previous = self.url
        self._load(urlparse(url).path or "/")
        if previous != "about:blank":
            self.history.append(previous)

    async def go_back(self, wait_until: Optional[str] = None, timeout: Optional[float] = None) -> None:
        if not self.history:
            return None
        self._load(urlparse(self.history.pop()).path)
        return None

    async def wait_for_timeout(self, timeout: float) -> None:
        return None

    async def title(self) -> str:
        return self.screen.title

    async def screenshot(self, path: Optional[str] = None, full_page: bool = False) -> bytes:
        if self.fail_screenshots:
            raise PlaywrightError("Target page, context or browser has been closed")
        self.screenshots.append(path)
        return b""

    async def set_viewport_size(self, size: Dict[str, int]) -> None:
        if self.on_set_viewport is not None:
            self.on_set_viewport(size)
        self.viewport_history.append(dict(size))
        self.viewport_size = dict(size)

    async def eval_on_selector_all(self, selector: str, expression: str) -> List[Dict[str, Any]]:
        assert selector == scripts.INTERACTIVE_SELECTOR
        return [el.info(i) for i, el in enumerate(self.screen.elements)]

    async def query_selector(self, selector: str) -> Optional[FakeHandle]:
        for i, el in enumerate(self.screen.elements):
            if el.id and selector == f'[id="{el.id}"]':
                return FakeHandle(self, el, i)
        return None

    async def query_selector_all(self, selector: str) -> List[FakeHandle]:
        return [FakeHandle(self, el, i) for i, el in enumerate(self.screen.elements)]

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        screen = self.screen
        if expression in screen.broken_scripts:
            raise PlaywrightError("Evaluation failed: TypeError: cannot read properties of null")
        if expression == scripts.PAGE_SNAPSHOT_JS:
            return {"title": screen.title, "url": self.path, "content": screen.content}
        if expression == scripts.FOCUSED_ELEMENT_JS:
            el = self.focused_element()
            if el is None:
                return None
            return {
                "tag": el.tag,
                "id": el.id,
                "text": el.text,
                "hasFocusIndicator": el.focus_indicator,
                "visible": el.visible,
            }
        if expression == scripts.SCROLL_METRICS_JS:
            return {"scrollHeight": self._scroll_height(), "viewportHeight": self.viewport_size["height"]}
        if expression == scripts.SCROLL_Y_JS:
            return self.scroll_y
        if expression == scripts.SCROLL_TO_BOTTOM_JS:
            self.scroll_by(self._scroll_height())
            return None
        if expression == scripts.SCROLL_TO_TOP_JS:
            self.scroll_y = 0
            return None
        if expression == scripts.ELEMENTS_VISIBLE_JS:
            assert arg == scripts.INTERACTIVE_SELECTOR
            if not any(el.visible for el in screen.elements):
                return False
            if screen.hide_below_width is not None:
                return self.viewport_size["width"] >= screen.hide_below_width
            return True
        raise PlaywrightError("Unexpected script")


def state_for(path: str, screen: FakeScreen, state_id: str = "state-0") -> State:
    """A ``State`` as discovery would have produced it for ``screen``."""
    return State(
        id=state_id,
        url=path,
        title=screen.title,
        route=path,
        elements=[ElementInfo.from_dict(el.info(i)) for i, el in enumerate(screen.elements)],
    )


async def load(page: FakePage, path: str) -> None:
    await page.goto(BASE_URL + path)
