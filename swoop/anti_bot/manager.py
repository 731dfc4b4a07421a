"""Coordinator for fingerprint spoofing, proxy rotation, behaviour timing and sessions."""

from __future__ import annotations

from collections.abc import MutableMapping
from dataclasses import dataclass, field

from .behavior_engine import BehaviorEngine
from .fingerprint_manager import FingerprintManager
from .proxy_rotator import ProxyInfo, ProxyRotator
from .session_manager import SessionManager


@dataclass
class TimingConfig:
    """Human-like timing: delays in milliseconds, speeds per minute and per second."""

    base_delay: int
    variance_factor: float
    typing_speed: int
    mouse_speed: int


@dataclass
class PlatformConfig:
    user_agents: list[str]
    viewport_sizes: list[tuple[int, int]]
    timing_patterns: TimingConfig


@dataclass
class AntiBotConfig:
    canvas_evasion: bool = True
    webgl_spoofing: bool = True
    tls_randomization: bool = True
    proxy_rotation_interval: int = 300
    behavior_simulation_level: int = 7
    platform_settings: dict[str, PlatformConfig] = field(default_factory=dict)


@dataclass
class AntiBotStats:
    requests_processed: int
    proxies_rotated: int
    detection_events: int
    success_rate: float


class AntiBotManager:
    """Applies all evasion measures to outgoing requests."""

    def __init__(self, config: AntiBotConfig | None = None) -> None:
        self.config = config if config is not None else AntiBotConfig()
        self.fingerprint_manager = FingerprintManager()
        self.proxy_rotator = ProxyRotator()
        self.behavior_engine = BehaviorEngine()
        self._session_manager = SessionManager()
        self._detection_events = 0

    async def apply_evasion(
        self, headers: MutableMapping[str, str], platform: str
    ) -> ProxyInfo | None:
        """Spoof ``headers``, pick the platform's proxy and wait a human-like delay.

        Returns the proxy the request should go through, or None if none is available.
        """
        self.fingerprint_manager.apply_spoofing(headers)
        proxy = self.proxy_rotator.get_current_proxy(platform)
        await self.behavior_engine.apply_timing_delay()
        return proxy

    def update_config(self, new_config: AntiBotConfig) -> None:
        self.config = new_config

    def get_stats(self) -> AntiBotStats:
        return AntiBotStats(
            requests_processed=self.fingerprint_manager.request_count(),
            proxies_rotated=self.proxy_rotator.rotation_count(),
            detection_events=self._detection_events,
            success_rate=0.0,
        )

    def session_manager(self) -> SessionManager:
        return self._session_manager