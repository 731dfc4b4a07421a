"""Proxy pools with sticky per-platform sessions, round-robin rotation and health tracking."""

from __future__ import annotations

import copy
import random
import time
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum

_SESSION_LIFETIME = 300.0
_HEALTHY_SCORE = 0.5
_MAX_FAILURES = 5
_SIMULATED_HEALTHY_RATE = 0.8
_DEFAULT_POOL = "global"

_PLATFORM_REGIONS = {
    "amazon": "us",
    "ebay": "us",
    "facebook": "global",
    "instagram": "global",
}


class ProxyType(Enum):
    RESIDENTIAL = "Residential"
    DATACENTER = "Datacenter"
    MOBILE = "Mobile"


@dataclass
class ProxyCredentials:
    username: str
    password: str


@dataclass
class ProxyInfo:
    """One proxy endpoint and its running health record."""

    host: str
    port: int
    proxy_type: ProxyType
    country: str
    isp: str
    health_score: float = 1.0
    last_used: float | None = None
    success_count: int = 0
    failure_count: int = 0
    credentials: ProxyCredentials | None = None

    def is_healthy(self) -> bool:
        return self.health_score > _HEALTHY_SCORE and self.failure_count < _MAX_FAILURES

    def update_health(self, success: bool) -> None:
        """Move the health score towards 1 on success and towards 0 on failure."""
        if success:
            self.success_count += 1
            self.health_score = min(self.health_score * 0.9 + 0.1, 1.0)
        else:
            self.failure_count += 1
            self.health_score = max(self.health_score * 0.9, 0.0)
        self.last_used = time.monotonic()


@dataclass
class ProxySession:
    """A proxy pinned to one platform for a while."""

    proxy: ProxyInfo
    platform: str
    created_at: float = field(default_factory=time.monotonic)
    last_used: float = field(default_factory=time.monotonic)
    request_count: int = 0

    def is_expired(self) -> bool:
        """Older than five minutes."""
        return time.monotonic() - self.created_at > _SESSION_LIFETIME


class HealthMonitor:
    """Simulated proxy health checks; records when each proxy was last checked."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng if rng is not None else random.Random()
        self.health_checks: dict[str, float] = {}

    def check_proxy_health(self, proxy: ProxyInfo) -> bool:
        healthy = self._rng.random() < _SIMULATED_HEALTHY_RATE
        self.health_checks[f"{proxy.host}:{proxy.port}"] = time.monotonic()
        return healthy


@dataclass
class PoolStats:
    total_proxies: int
    healthy_proxies: int
    region: str


def _residential(host: str, country: str, isp: str) -> ProxyInfo:
    return ProxyInfo(host, 8080, ProxyType.RESIDENTIAL, country, isp)


def _regional_proxies(region: str) -> list[ProxyInfo]:
    if region == "US":
        return [
            _residential("10.0.1.100", "US", "Verizon"),
            _residential("10.0.1.101", "US", "AT&T"),
        ]
    if region == "EU":
        return [
            _residential("10.0.2.100", "UK", "BT"),
            _residential("10.0.2.101", "DE", "Deutsche Telekom"),
        ]
    if region == "ASIA":
        return [
            _residential("10.0.3.100", "JP", "NTT"),
            _residential("10.0.3.101", "KR", "KT"),
        ]
    return []


class ProxyPool:
    """A group of proxies handed out in round-robin order."""

    def __init__(self, region: str, proxies: list[ProxyInfo] | None = None) -> None:
        self.region = region
        self.proxies: list[ProxyInfo] = list(proxies) if proxies else []
        self._index = 0
        self._last_health_check = time.monotonic()

    @classmethod
    def global_pool(cls) -> ProxyPool:
        return cls(
            "global",
            [
                _residential("192.168.1.100", "US", "Comcast"),
                _residential("192.168.1.101", "UK", "BT"),
                _residential("192.168.1.102", "DE", "Deutsche Telekom"),
            ],
        )

    @classmethod
    def regional(cls, region: str) -> ProxyPool:
        """Pool for ``US``, ``EU`` or ``ASIA``; any other region starts empty."""
        return cls(region, _regional_proxies(region))

    def next_healthy_proxy(self) -> ProxyInfo | None:
        """A copy of the next healthy proxy after the last one handed out, or None."""
        count = len(self.proxies)
        if count == 0:
            return None
        start = self._index % count
        for offset in range(count):
            position = (start + offset) % count
            self._index = (position + 1) % count
            proxy = self.proxies[position]
            if proxy.is_healthy():
                return copy.copy(proxy)
        return None

    def add_proxy(self, proxy: ProxyInfo) -> None:
        self.proxies.append(proxy)

    def remove_unhealthy_proxies(self) -> int:
        """Drop proxies with a health score of 0.5 or less; return how many went."""
        before = len(self.proxies)
        self.proxies = [p for p in self.proxies if p.health_score > _HEALTHY_SCORE]
        return before - len(self.proxies)

    def stats(self) -> PoolStats:
        return PoolStats(
            total_proxies=len(self.proxies),
            healthy_proxies=sum(1 for p in self.proxies if p.health_score > _HEALTHY_SCORE),
            region=self.region,
        )

    def health_check_proxies(self, health_monitor: HealthMonitor) -> int:
        """Check every proxy and return how many passed."""
        healthy = sum(1 for p in self.proxies if health_monitor.check_proxy_health(p))
        self._last_health_check = time.monotonic()
        return healthy

    def time_since_last_health_check(self) -> timedelta:
        return timedelta(seconds=time.monotonic() - self._last_health_check)


@dataclass
class ProxyConfig:
    rotation_interval: timedelta = timedelta(seconds=300)
    max_requests_per_session: int = 100
    health_check_interval: timedelta = timedelta(seconds=60)
    max_failure_rate: float = 0.2


@dataclass
class ProxyStats:
    total_proxies: int
    healthy_proxies: int
    active_sessions: int
    rotation_count: int
    regional_stats: dict[str, PoolStats]


def _session_key(platform: str) -> str:
    return f"session_{platform}"


class ProxyRotator:
    """Chooses proxies per platform, keeping each one for a five-minute session."""

    def __init__(self, rng: random.Random | None = None) -> None:
        rng = rng if rng is not None else random.Random()
        self.proxy_pools: dict[str, ProxyPool] = {
            "global": ProxyPool.global_pool(),
            "us": ProxyPool.regional("US"),
            "eu": ProxyPool.regional("EU"),
            "asia": ProxyPool.regional("ASIA"),
        }
        self.health_monitor = HealthMonitor(rng)
        self.config = ProxyConfig()
        self._sessions: dict[str, ProxySession] = {}
        self._rotation_count = 0

    def get_current_proxy(self, platform: str) -> ProxyInfo | None:
        """The platform's session proxy while it is live and healthy, else a fresh one."""
        session = self._sessions.get(_session_key(platform))
        if session is not None and not session.is_expired() and session.proxy.is_healthy():
            return copy.copy(session.proxy)
        return self._rotate(platform)

    def _rotate(self, platform: str) -> ProxyInfo | None:
        pool = self.proxy_pools.get(_PLATFORM_REGIONS.get(platform, _DEFAULT_POOL))
        if pool is None:
            return None
        proxy = pool.next_healthy_proxy()
        if proxy is None:
            return None
        self._sessions[_session_key(platform)] = ProxySession(
            proxy=copy.copy(proxy), platform=platform
        )
        self._rotation_count += 1
        return proxy

    def rotation_count(self) -> int:
        return self._rotation_count

    def add_proxy(self, region: str, proxy: ProxyInfo) -> None:
        """Add ``proxy`` to the named pool; unknown regions are ignored."""
        pool = self.proxy_pools.get(region)
        if pool is not None:
            pool.add_proxy(proxy)

    def health_check_all(self) -> int:
        return sum(
            pool.health_check_proxies(self.health_monitor) for pool in self.proxy_pools.values()
        )

    def cleanup_unhealthy_proxies(self) -> int:
        return sum(pool.remove_unhealthy_proxies() for pool in self.proxy_pools.values())

    def get_proxy_stats(self) -> ProxyStats:
        regional = {region: pool.stats() for region, pool in self.proxy_pools.items()}
        return ProxyStats(
            total_proxies=sum(s.total_proxies for s in regional.values()),
            healthy_proxies=sum(s.healthy_proxies for s in regional.values()),
            active_sessions=len(self._sessions),
            rotation_count=self._rotation_count,
            regional_stats=regional,
        )