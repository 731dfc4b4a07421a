# swoop

An asyncio toolkit for fetching web pages safely, pulling content out of
HTML, driving a browser over WebDriver, and building request profiles.

## Installation

```
pip install .
```

With the test dependencies:

```
pip install ".[test]"
```

## Modules

### `swoop.security`

`UrlValidator(allow_private_ips=False)` checks a URL before it is requested.
`validate_url(url)` returns the parsed URL (a `urllib.parse.SplitResult`) or
raises a subclass of `SecurityError`:

- `ValidationFailedError`: the URL is empty, holds whitespace or control
  characters, or has a bad port.
- `InvalidSchemeError`: the scheme is not `http` or `https`.
- `BlockedDomainError`: the host contains `localhost`, `127.0.0.1`, `0.0.0.0`
  or `169.254.169.254`.
- `PrivateIPError`: the host is an IPv4 address in a private, loopback,
  link-local, broadcast, documentation or multicast range, or an IPv6
  loopback, multicast or unspecified address. Passing
  `allow_private_ips=True` turns this check off.

Host names that are not IP literals pass the private-address check; they are
not resolved.

```python
from swoop.security import UrlValidator, SecurityError

validator = UrlValidator()
try:
    validator.validate_url("http://169.254.169.254/latest/meta-data/")
except SecurityError as err:
    print(err)  # Access to domain '169.254.169.254' is blocked for security reasons
```

### `swoop.fetch`

- `new_client()` returns an `httpx.AsyncClient` with a 30 second timeout that
  follows redirects.
- `fetch_with_timeout(client, url, request_timeout)` makes a GET request and
  returns the body as bytes.
- `fetch_url(url, request_timeout)` validates the URL with a default
  `UrlValidator` and then fetches it through a shared client.

`request_timeout` may be a number of seconds or a `datetime.timedelta`.

```python
import asyncio
from swoop.fetch import fetch_url

body = asyncio.run(fetch_url("https://example.com", 10))
```

### `swoop.extractors`

Functions that work on an HTML string:

- `extract_title(html)`: the trimmed text of the first `<title>`, or `None`.
- `extract_text_secure(html)`: the text with all tags, scripts, styles and
  comments removed and whitespace collapsed.
- `extract_metadata_secure(html)`: a dict of `<meta name=...>` and
  `<meta property=...>` contents, keyed by the lower-cased name. Content is
  sanitised, and keys with characters other than letters, digits, `-`, `_`
  and `:` are skipped.
- `extract_links(html)`: the `href` of every `<a>`, in document order.
- `extract_images(html)`: the `src` of every `<img>`, in document order.

```python
from swoop.extractors import extract_title, extract_links

html = '<html><head><title>Hi</title></head><body><a href="/x">x</a></body></html>'
print(extract_title(html))   # Hi
print(extract_links(html))   # ['/x']
```

### `swoop.browser`

Drives a browser through a W3C WebDriver server, `http://localhost:4444` by
default.

- `BrowserConfig` holds the pool size, page timeout, server URL, headless
  flag, user agent, window size and capabilities. By default these are
  headless Chrome at 1920x1080.
- `BrowserPool(config)` opens at most `max_instances` sessions at once.
  `get_browser()` waits for a free slot and returns a `BrowserInstance`.
  `available_permits()` reports the free slots.
- `BrowserInstance` can be used with `async with`, or closed with `close()`.
  Closing it frees its slot.
  - `scrape_page(url)` loads a page and returns `ScrapedContent`: url, title,
    html, a screenshot when not headless, and a UTC timestamp.
  - `execute_script(script)` runs JavaScript in the page.
  - `interact_with_page(url, actions)` performs a list of `Click`, `Type`,
    `Wait` and `ScrollTo` actions, then returns the final page.
- `page_action_to_json(action)` and `page_action_from_json(text)` store
  actions as `{"Variant": {fields}}`.

```python
import asyncio
from swoop.browser import BrowserConfig, BrowserPool, Click, Wait

async def main():
    pool = BrowserPool(BrowserConfig(max_instances=2))
    async with await pool.get_browser() as browser:
        page = await browser.interact_with_page(
            "https://example.com", [Click("#more"), Wait(500)]
        )
        print(page.title)

asyncio.run(main())
```

### `swoop.anti_bot`

These modules hold state in memory. Every class that makes random choices
takes an optional `random.Random`, so its results can be reproduced.

- `session_manager`: `SessionManager` keeps one `BrowserSession` per
  platform. Each session has a user agent, a viewport, headers and request
  counters. It also merges and expires `Cookie` objects per platform, and
  `get_session_stats()` summarises the sessions.
- `proxy_rotator`: `ProxyRotator` has `global`, `us`, `eu` and `asia` pools
  of `ProxyInfo` entries with sample addresses. It hands them out
  round-robin, keeps each platform on one proxy for five minutes, and tracks
  health scores. `HealthMonitor` only simulates health checks; it does not
  contact the proxies.
- `behavior_engine`: `BehaviorEngine` generates synthetic event timelines:
  - mouse paths along Bézier curves
  - keystrokes, with corrected typos
  - wheel scrolling
  - navigation steps
  - a randomised delay, through `apply_timing_delay()`
- `fingerprint_manager`: `FingerprintManager.apply_spoofing(headers)` writes
  browser-like headers into any mutable mapping. The headers include
  user-agent, accept, accept-language, accept-encoding and sec-fetch.
  `generate_fingerprint_profile()` returns randomised canvas, WebGL, audio,
  TLS and viewport signatures as strings and data. `CanvasSpoofing` can add
  noise to RGBA bytes in place.
- `manager`: `AntiBotManager` combines the parts above.
  `await apply_evasion(headers, platform)` sets the headers, waits the
  timing delay and returns the platform's proxy (or `None`). `get_stats()`
  reports how many requests were processed and how many proxy rotations
  happened.

None of these modules send traffic. The proxy returned for a request is
advice for the caller, and the signatures are only strings.

## What this package does not do

- It has no command-line program. Everything is used from Python.
- It has no platform-specific scrapers. It does not route URLs to handlers
  for particular sites.
- It does not parse robots.txt and does not rate-limit requests. Callers
  must pace their own requests.
- It stores nothing on disk. Sessions, cookies, proxies and statistics live
  only as long as the objects that hold them.

## Running the tests

```
pytest
```