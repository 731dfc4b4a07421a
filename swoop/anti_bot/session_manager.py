"""Per-platform browser sessions and cookie persistence."""

from __future__ import annotations

import copy
import random
import time
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum

_SESSION_IDLE_LIMIT = 1800.0

_CHROME_WINDOWS_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
_USER_AGENTS = {
    "amazon": _CHROME_WINDOWS_UA,
    "facebook": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "instagram": (
        "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
        "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
    ),
}
_COMMON_VIEWPORTS = ((1920, 1080), (1366, 768), (1440, 900), (1536, 864))


def _elapsed(since: float) -> float:
    return time.monotonic() - since


class SameSite(Enum):
    STRICT = "Strict"
    LAX = "Lax"
    NONE = "None"


@dataclass
class Cookie:
    """An HTTP cookie; ``expires`` is a ``time.monotonic()`` instant or None."""

    name: str
    value: str
    domain: str
    path: str
    expires: float | None = None
    secure: bool = False
    http_only: bool = False
    same_site: SameSite | None = None

    def is_expired(self) -> bool:
        return self.expires is not None and self.expires <= time.monotonic()


@dataclass
class Viewport:
    width: int
    height: int
    device_pixel_ratio: float


@dataclass
class SessionConfig:
    session_timeout: timedelta = timedelta(seconds=1800)
    max_sessions_per_platform: int = 5
    cookie_persistence: bool = True
    auto_cleanup_interval: timedelta = timedelta(seconds=300)


@dataclass
class BrowserSession:
    """State kept for one platform's browsing session."""

    platform: str
    session_id: str
    user_agent: str
    viewport: Viewport
    headers: dict[str, str] = field(default_factory=dict)
    created_at: float = field(default_factory=time.monotonic)
    last_activity: float = field(default_factory=time.monotonic)
    cookies: list[Cookie] = field(default_factory=list)
    local_storage: dict[str, str] = field(default_factory=dict)
    session_storage: dict[str, str] = field(default_factory=dict)
    request_count: int = 0
    success_count: int = 0

    def is_expired(self) -> bool:
        """Idle for more than thirty minutes."""
        return _elapsed(self.last_activity) > _SESSION_IDLE_LIMIT

    def is_expired_with_config(self, config: SessionConfig) -> bool:
        return _elapsed(self.last_activity) > config.session_timeout.total_seconds()

    def success_rate(self) -> float:
        if self.request_count > 0:
            return self.success_count / self.request_count
        return 0.0


class CookieStore:
    """Cookies kept per platform."""

    def __init__(self) -> None:
        self._cookies: dict[str, list[Cookie]] = {}

    def store_cookies(self, platform: str, cookies: list[Cookie]) -> None:
        """Merge ``cookies``, replacing any with the same name, domain and path."""
        existing = self._cookies.setdefault(platform, [])
        for new in cookies:
            existing[:] = [
                c
                for c in existing
                if not (c.name == new.name and c.domain == new.domain and c.path == new.path)
            ]
            if not new.is_expired():
                existing.append(new)

    def get_cookies(self, platform: str) -> list[Cookie]:
        return [copy.copy(c) for c in self._cookies.get(platform, []) if not c.is_expired()]


@dataclass
class PlatformSessionStats:
    request_count: int
    success_count: int
    success_rate: float
    session_age: timedelta


@dataclass
class SessionStats:
    active_sessions: int
    total_requests: int
    total_successes: int
    overall_success_rate: float
    platform_stats: dict[str, PlatformSessionStats]


def _session_key(platform: str) -> str:
    return f"session_{platform}"


def _session_headers(platform: str) -> dict[str, str]:
    headers = {
        "Accept": (
            "text/html,application/xhtml+xml,application/xml;q=0.9,"
            "image/avif,image/webp,*/*;q=0.8"
        ),
        "Accept-Language": "en-US,en;q=0.5",
        "Accept-Encoding": "gzip, deflate, br",
        "DNT": "1",
        "Connection": "keep-alive",
        "Upgrade-Insecure-Requests": "1",
    }
    if platform in ("facebook", "instagram"):
        headers["Sec-Fetch-Dest"] = "document"
        headers["Sec-Fetch-Mode"] = "navigate"
        headers["Sec-Fetch-Site"] = "none"
    return headers


class SessionManager:
    """Creates, tracks and expires one browser session per platform."""

    def __init__(self, config: SessionConfig | None = None) -> None:
        self.config = config if config is not None else SessionConfig()
        self._sessions: dict[str, BrowserSession] = {}
        self._cookie_store = CookieStore()

    def get_session(self, platform: str) -> BrowserSession:
        """Return a copy of the platform's live session, creating one if needed."""
        session = self._sessions.get(_session_key(platform))
        if session is None or session.is_expired():
            session = self._create_session(platform)
        return copy.deepcopy(session)

    def _create_session(self, platform: str) -> BrowserSession:
        width, height = random.choice(_COMMON_VIEWPORTS)
        session = BrowserSession(
            platform=platform,
            session_id=f"sess_{random.getrandbits(64):016x}",
            user_agent=_USER_AGENTS.get(platform, _CHROME_WINDOWS_UA),
            viewport=Viewport(width, height, random.uniform(1.0, 2.0)),
            headers=_session_headers(platform),
        )
        self._sessions[_session_key(platform)] = session
        return session

    def update_session(self, platform: str, success: bool) -> None:
        """Record a request outcome on the platform's session, if there is one."""
        session = self._sessions.get(_session_key(platform))
        if session is None:
            return
        session.request_count += 1
        session.last_activity = time.monotonic()
        if success:
            session.success_count += 1

    def store_cookies(self, platform: str, cookies: list[Cookie]) -> None:
        self._cookie_store.store_cookies(platform, cookies)
        session = self._sessions.get(_session_key(platform))
        if session is not None:
            session.cookies = self._cookie_store.get_cookies(platform)

    def get_cookies(self, platform: str) -> list[Cookie]:
        return self._cookie_store.get_cookies(platform)

    def cleanup_expired_sessions(self) -> int:
        """Drop sessions idle longer than the configured timeout; return how many."""
        expired = [
            key
            for key, session in self._sessions.items()
            if session.is_expired_with_config(self.config)
        ]
        for key in expired:
            del self._sessions[key]
        return len(expired)

    def get_session_stats(self) -> SessionStats:
        total_requests = 0
        total_successes = 0
        platform_stats: dict[str, PlatformSessionStats] = {}
        for session in self._sessions.values():
            total_requests += session.request_count
            total_successes += session.success_count
            platform_stats[session.platform] = PlatformSessionStats(
                request_count=session.request_count,
                success_count=session.success_count,
                success_rate=session.success_rate(),
                session_age=timedelta(seconds=_elapsed(session.created_at)),
            )
        return SessionStats(
            active_sessions=len(self._sessions),
            total_requests=total_requests,
            total_successes=total_successes,
            overall_success_rate=(total_successes / total_requests if total_requests else 0.0),
            platform_stats=platform_stats,
        )