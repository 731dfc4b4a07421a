"""Browser automation over the W3C WebDriver protocol."""

from __future__ import annotations

import asyncio
import base64
import dataclasses
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Union
from urllib.parse import urlsplit

import httpx

DEFAULT_BROWSER_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

_CHROME_ARGS = (
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-web-security",
    "--disable-features=VizDisplayCompositor",
    "--headless=new",
)

_ELEMENT_KEY = "element-6066-11e4-a52e-4f735466cecf"


def _default_capabilities() -> dict[str, Any]:
    return {
        "browserName": "chrome",
        "goog:chromeOptions": {"args": list(_CHROME_ARGS)},
    }


@dataclass
class BrowserConfig:
    """Settings for the browser pool."""

    max_instances: int = 5
    page_timeout_secs: int = 30
    webdriver_url: str = "http://localhost:4444"
    headless: bool = True
    user_agent: str | None = DEFAULT_BROWSER_USER_AGENT
    window_size: tuple[int, int] = (1920, 1080)
    capabilities: Any = field(default_factory=_default_capabilities)


@dataclass(frozen=True)
class Click:
    selector: str


@dataclass(frozen=True)
class Type:
    selector: str
    text: str


@dataclass(frozen=True)
class Wait:
    duration_ms: int


@dataclass(frozen=True)
class ScrollTo:
    selector: str


PageAction = Union[Click, Type, Wait, ScrollTo]

_ACTION_TYPES: dict[str, type] = {
    "Click": Click,
    "Type": Type,
    "Wait": Wait,
    "ScrollTo": ScrollTo,
}
_ACTION_NAMES = {cls: name for name, cls in _ACTION_TYPES.items()}
_FIELD_TYPES = {"selector": str, "text": str, "duration_ms": int}


def page_action_to_json(action: PageAction) -> str:
    """Serialise an action as ``{"Variant": {fields}}``."""
    name = _ACTION_NAMES.get(type(action))
    if name is None:
        raise TypeError(f"not a page action: {action!r}")
    return json.dumps({name: dataclasses.asdict(action)}, separators=(",", ":"))


def page_action_from_json(text: str) -> PageAction:
    """Parse an action written by :func:`page_action_to_json`."""
    data = json.loads(text)
    if not isinstance(data, dict) or len(data) != 1:
        raise ValueError("expected an object holding exactly one action variant")
    ((name, values),) = data.items()
    cls = _ACTION_TYPES.get(name)
    if cls is None:
        raise ValueError(f"unknown variant `{name}`")
    if not isinstance(values, dict):
        raise ValueError(f"invalid fields for variant `{name}`")
    kwargs = {}
    for f in dataclasses.fields(cls):
        if f.name not in values:
            raise ValueError(f"missing field `{f.name}`")
        value = values[f.name]
        expected = _FIELD_TYPES[f.name]
        if not isinstance(value, expected) or isinstance(value, bool):
            raise ValueError(f"invalid type for field `{f.name}`")
        kwargs[f.name] = value
    return cls(**kwargs)


@dataclass
class ScrapedContent:
    """A page as seen by the browser."""

    url: str
    title: str
    html: str
    screenshot: bytes | None
    timestamp: datetime


def _unwrap(response: httpx.Response) -> Any:
    try:
        body = response.json()
    except ValueError:
        body = None
    value = body.get("value") if isinstance(body, dict) else None
    if response.is_error:
        if isinstance(value, dict):
            error = value.get("error", "unknown error")
            message = value.get("message", "")
            raise RuntimeError(f"webdriver error {error}: {message}")
        raise RuntimeError(f"webdriver error: HTTP {response.status_code}")
    return value


class _WebDriverSession:
    """A single WebDriver session."""

    def __init__(self, http: httpx.AsyncClient, session_id: str) -> None:
        self._http = http
        self.session_id = session_id

    @classmethod
    async def connect(cls, config: BrowserConfig) -> _WebDriverSession:
        http = httpx.AsyncClient(
            base_url=config.webdriver_url, timeout=float(config.page_timeout_secs)
        )
        caps = config.capabilities if isinstance(config.capabilities, dict) else {}
        try:
            response = await http.post(
                "/session",
                json={"capabilities": {"alwaysMatch": caps}, "desiredCapabilities": caps},
            )
            value = _unwrap(response)
            session_id = value.get("sessionId") if isinstance(value, dict) else None
            if not session_id:
                body = response.json()
                session_id = body.get("sessionId") if isinstance(body, dict) else None
            if not session_id:
                raise RuntimeError("webdriver did not return a session id")
        except BaseException:
            await http.aclose()
            raise
        return cls(http, session_id)

    async def _command(self, method: str, path: str, payload: Any = None) -> Any:
        response = await self._http.request(
            method, f"/session/{self.session_id}{path}", json=payload
        )
        return _unwrap(response)

    async def goto(self, url: str) -> None:
        await self._command("POST", "/url", {"url": url})

    async def source(self) -> str:
        return await self._command("GET", "/source")

    async def title(self) -> str:
        return await self._command("GET", "/title")

    async def current_url(self) -> str:
        return await self._command("GET", "/url")

    async def screenshot(self) -> bytes:
        return base64.b64decode(await self._command("GET", "/screenshot"))

    async def execute(self, script: str, args: list[Any] | None = None) -> Any:
        return await self._command(
            "POST", "/execute/sync", {"script": script, "args": args or []}
        )

    async def set_window_size(self, width: int, height: int) -> None:
        await self._command("POST", "/window/rect", {"width": width, "height": height})

    async def find_css(self, selector: str) -> str:
        value = await self._command(
            "POST", "/element", {"using": "css selector", "value": selector}
        )
        if isinstance(value, dict):
            element = value.get(_ELEMENT_KEY) or value.get("ELEMENT")
            if element:
                return element
        raise RuntimeError("webdriver returned no element reference")

    async def click(self, element: str) -> None:
        await self._command("POST", f"/element/{element}/click", {})

    async def clear(self, element: str) -> None:
        await self._command("POST", f"/element/{element}/clear", {})

    async def send_keys(self, element: str, text: str) -> None:
        await self._command("POST", f"/element/{element}/value", {"text": text})

    async def close(self) -> None:
        try:
            await self._http.delete(f"/session/{self.session_id}")
        except httpx.HTTPError:
            pass
        finally:
            await self._http.aclose()


class BrowserPool:
    """Hands out browser sessions, at most ``max_instances`` at a time."""

    def __init__(self, config: BrowserConfig) -> None:
        self.config = config
        self._semaphore = asyncio.Semaphore(config.max_instances)
        self._in_use = 0

    def available_permits(self) -> int:
        """Number of sessions that can still be opened without waiting."""
        return self.config.max_instances - self._in_use

    def _release(self) -> None:
        self._in_use -= 1
        self._semaphore.release()

    async def get_browser(self) -> BrowserInstance:
        """Open a new browser session, waiting for a free slot first."""
        await self._semaphore.acquire()
        self._in_use += 1
        try:
            session = await _WebDriverSession.connect(self.config)
        except BaseException:
            self._release()
            raise
        try:
            width, height = self.config.window_size
            await session.set_window_size(width, height)
            if self.config.user_agent is not None:
                await session.execute(
                    "Object.defineProperty(navigator, 'userAgent', "
                    f"{{get: function(){{return '{self.config.user_agent}'}}}});"
                )
        except BaseException:
            await session.close()
            self._release()
            raise
        return BrowserInstance(session, dataclasses.replace(self.config), self)


class BrowserInstance:
    """An open browser session; close it to return its slot to the pool."""

    def __init__(self, session: _WebDriverSession, config: BrowserConfig, pool: BrowserPool) -> None:
        self._session = session
        self.config = config
        self._pool = pool
        self._closed = False

    async def __aenter__(self) -> BrowserInstance:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _snapshot(self, screenshot: bytes | None) -> ScrapedContent:
        html = await self._session.source()
        try:
            title = await self._session.title()
        except (RuntimeError, httpx.HTTPError):
            title = ""
        current_url = await self._session.current_url()
        return ScrapedContent(
            url=current_url,
            title=title or "",
            html=html,
            screenshot=screenshot,
            timestamp=datetime.now(timezone.utc),
        )

    async def scrape_page(self, url: str) -> ScrapedContent:
        """Load ``url`` and return its rendered source."""
        if not urlsplit(url).scheme:
            raise ValueError(f"relative URL without a base: {url!r}")
        await self._session.goto(url)
        await asyncio.sleep(2)
        html = await self._session.source()
        try:
            title = await self._session.title()
        except (RuntimeError, httpx.HTTPError):
            title = ""
        current_url = await self._session.current_url()
        screenshot = None if self.config.headless else await self._session.screenshot()
        return ScrapedContent(
            url=current_url,
            title=title or "",
            html=html,
            screenshot=screenshot,
            timestamp=datetime.now(timezone.utc),
        )

    async def execute_script(self, script: str) -> Any:
        """Run ``script`` in the page and return its result."""
        return await self._session.execute(script)

    async def interact_with_page(self, url: str, actions: list[PageAction]) -> ScrapedContent:
        """Load ``url``, perform ``actions`` in order and return the final page."""
        await self._session.goto(url)
        await asyncio.sleep(2)

        for action in actions:
            match action:
                case Click(selector=selector):
                    element = await self._find(selector)
                    if element is not None:
                        await self._session.click(element)
                        await asyncio.sleep(0.5)
                case Type(selector=selector, text=text):
                    element = await self._find(selector)
                    if element is not None:
                        await self._session.clear(element)
                        await self._session.send_keys(element, text)
                        await asyncio.sleep(0.2)
                case Wait(duration_ms=duration_ms):
                    await asyncio.sleep(duration_ms / 1000)
                case ScrollTo(selector=selector):
                    escaped = selector.replace("'", "\\'")
                    try:
                        await self._session.execute(
                            f"document.querySelector('{escaped}').scrollIntoView();"
                        )
                    except (RuntimeError, httpx.HTTPError):
                        pass
                    await asyncio.sleep(0.3)
                case _:
                    raise TypeError(f"not a page action: {action!r}")

        return await self._snapshot(None)

    async def _find(self, selector: str) -> str | None:
        try:
            return await self._session.find_css(selector)
        except (RuntimeError, httpx.HTTPError):
            return None

    async def close(self) -> None:
        """End the session and free its slot in the pool."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._session.close()
        finally:
            self._pool._release()