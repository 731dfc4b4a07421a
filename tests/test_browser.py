import asyncio
import base64
import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import respx

from swoop.browser import (
    BrowserConfig,
    BrowserPool,
    Click,
    ScrollTo,
    Type,
    Wait,
    page_action_from_json,
    page_action_to_json,
)

BASE = "http://localhost:4444"
SID = "abc"
ELEMENT_KEY = "element-6066-11e4-a52e-4f735466cecf"


def _ok(value):
    return httpx.Response(200, json={"value": value})


def _mock_session(router):
    def find(request):
        selector = json.loads(request.content)["value"]
        if selector == "#missing":
            return httpx.Response(
                404, json={"value": {"error": "no such element", "message": "gone"}}
            )
        return _ok({ELEMENT_KEY: "el-1"})

    return {
        "session": router.post("/session").mock(
            return_value=_ok({"sessionId": SID, "capabilities": {}})
        ),
        "rect": router.post(f"/session/{SID}/window/rect").mock(
            return_value=_ok({"width": 1920, "height": 1080})
        ),
        "execute": router.post(f"/session/{SID}/execute/sync").mock(return_value=_ok(42)),
        "goto": router.post(f"/session/{SID}/url").mock(return_value=_ok(None)),
        "source": router.get(f"/session/{SID}/source").mock(
            return_value=_ok("<html><title>T</title></html>")
        ),
        "title": router.get(f"/session/{SID}/title").mock(return_value=_ok("T")),
        "url": router.get(f"/session/{SID}/url").mock(
            return_value=_ok("https://example.com/")
        ),
        "screenshot": router.get(f"/session/{SID}/screenshot").mock(
            return_value=_ok(base64.b64encode(b"png").decode())
        ),
        "find": router.post(f"/session/{SID}/element").mock(side_effect=find),
        "click": router.post(f"/session/{SID}/element/el-1/click").mock(
            return_value=_ok(None)
        ),
        "clear": router.post(f"/session/{SID}/element/el-1/clear").mock(
            return_value=_ok(None)
        ),
        "keys": router.post(f"/session/{SID}/element/el-1/value").mock(
            return_value=_ok(None)
        ),
        "delete": router.delete(f"/session/{SID}").mock(return_value=_ok(None)),
    }


def test_browser_config_defaults():
    config = BrowserConfig()
    assert config.max_instances == 5
    assert config.headless is True
    assert config.window_size == (1920, 1080)
    assert config.capabilities["browserName"] == "chrome"
    assert "--headless=new" in config.capabilities["goog:chromeOptions"]["args"]


def test_page_action_serialization():
    text = page_action_to_json(Click(selector="#button"))
    assert page_action_from_json(text) == Click(selector="#button")


def test_page_action_json_form():
    assert page_action_to_json(Click("#button")) == '{"Click":{"selector":"#button"}}'
    assert page_action_to_json(Type("#q", "hi")) == '{"Type":{"selector":"#q","text":"hi"}}'
    assert page_action_from_json('{"Wait":{"duration_ms":250}}') == Wait(250)


@pytest.mark.parametrize(
    "text", ['{"Hover":{"selector":"a"}}', '{"Wait":{}}', '{"Wait":{"duration_ms":"x"}}', "[]"]
)
def test_page_action_from_json_rejects(text):
    with pytest.raises(ValueError):
        page_action_from_json(text)


def test_browser_pool_creation():
    pool = BrowserPool(BrowserConfig(max_instances=2))
    assert pool.available_permits() == 2


@pytest.mark.asyncio
async def test_get_browser_opens_session_and_holds_permit():
    pool = BrowserPool(BrowserConfig(max_instances=2))
    with respx.mock(base_url=BASE, assert_all_called=False) as router:
        routes = _mock_session(router)
        instance = await pool.get_browser()
        assert pool.available_permits() == 1
        payload = json.loads(routes["session"].calls.last.request.content)
        assert payload["capabilities"]["alwaysMatch"]["browserName"] == "chrome"
        rect = json.loads(routes["rect"].calls.last.request.content)
        assert rect == {"width": 1920, "height": 1080}
        script = json.loads(routes["execute"].calls.last.request.content)["script"]
        assert "Chrome/120.0.0.0" in script
        await instance.close()
        await instance.close()
    assert routes["delete"].call_count == 1
    assert pool.available_permits() == 2


@pytest.mark.asyncio
async def test_failed_connection_releases_permit():
    pool = BrowserPool(BrowserConfig(max_instances=2))
    with respx.mock(base_url=BASE) as router:
        router.post("/session").mock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(httpx.ConnectError):
            await pool.get_browser()
    assert pool.available_permits() == 2


@pytest.mark.asyncio
async def test_pool_limits_instances():
    pool = BrowserPool(BrowserConfig(max_instances=1))
    with respx.mock(base_url=BASE, assert_all_called=False) as router:
        _mock_session(router)
        instance = await pool.get_browser()
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(pool.get_browser(), 0.05)
        assert pool.available_permits() == 0
        await instance.close()
    assert pool.available_permits() == 1


@pytest.mark.asyncio
async def test_scrape_page_headless():
    pool = BrowserPool(BrowserConfig())
    with respx.mock(base_url=BASE, assert_all_called=False) as router:
        routes = _mock_session(router)
        async with await pool.get_browser() as instance:
            with patch("asyncio.sleep", new_callable=AsyncMock) as fake_sleep:
                content = await instance.scrape_page("https://example.com")
    assert content.html == "<html><title>T</title></html>"
    assert content.title == "T"
    assert content.url == "https://example.com/"
    assert content.screenshot is None
    assert json.loads(routes["goto"].calls.last.request.content) == {
        "url": "https://example.com"
    }
    fake_sleep.assert_awaited_with(2)


@pytest.mark.asyncio
async def test_scrape_page_with_screenshot_and_missing_title():
    pool = BrowserPool(BrowserConfig(headless=False))
    with respx.mock(base_url=BASE, assert_all_called=False) as router:
        routes = _mock_session(router)
        routes["title"].mock(return_value=httpx.Response(500, json={"value": {}}))
        async with await pool.get_browser() as instance:
            with patch("asyncio.sleep", new_callable=AsyncMock):
                content = await instance.scrape_page("https://example.com")
    assert content.screenshot == b"png"
    assert content.title == ""


@pytest.mark.asyncio
async def test_scrape_page_rejects_relative_url():
    pool = BrowserPool(BrowserConfig())
    with respx.mock(base_url=BASE, assert_all_called=False) as router:
        routes = _mock_session(router)
        async with await pool.get_browser() as instance:
            with pytest.raises(ValueError):
                await instance.scrape_page("not a url")
    assert routes["goto"].call_count == 0


@pytest.mark.asyncio
async def test_execute_script_returns_value():
    pool = BrowserPool(BrowserConfig(user_agent=None))
    with respx.mock(base_url=BASE, assert_all_called=False) as router:
        _mock_session(router)
        async with await pool.get_browser() as instance:
            result = await instance.execute_script("return 42;")
    assert result == 42


@pytest.mark.asyncio
async def test_interact_with_page_runs_actions():
    pool = BrowserPool(BrowserConfig(user_agent=None))
    actions = [
        Click("#missing"),
        Click("#btn"),
        Type("#q", "hello"),
        Wait(250),
        ScrollTo("a[title='x']"),
    ]
    with respx.mock(base_url=BASE, assert_all_called=False) as router:
        routes = _mock_session(router)
        async with await pool.get_browser() as instance:
            with patch("asyncio.sleep", new_callable=AsyncMock) as fake_sleep:
                content = await instance.interact_with_page("https://example.com", actions)
    assert routes["click"].call_count == 1
    assert routes["clear"].call_count == 1
    assert json.loads(routes["keys"].calls.last.request.content) == {"text": "hello"}
    script = json.loads(routes["execute"].calls.last.request.content)["script"]
    assert script == "document.querySelector('a[title=\\'x\\']').scrollIntoView();"
    delays = [call.args[0] for call in fake_sleep.await_args_list]
    assert delays == [2, 0.5, 0.2, 0.25, 0.3]
    assert content.screenshot is None
    assert content.title == "T"