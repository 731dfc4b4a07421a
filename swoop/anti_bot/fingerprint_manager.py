"""Browser fingerprint spoofing: canvas, WebGL, audio, TLS and viewport signatures."""

from __future__ import annotations

import random
from collections.abc import MutableMapping
from dataclasses import dataclass
from typing import Union

_ACCEPT = (
    "text/html,application/xhtml+xml,application/xml;q=0.9,"
    "image/avif,image/webp,*/*;q=0.8"
)
_ACCEPT_ENCODING = "gzip, deflate, br"
_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
_ACCEPT_LANGUAGES = ("en-US,en;q=0.9", "en-GB,en;q=0.8", "de-DE,de;q=0.7")
_DNT_PROBABILITY = 0.3

_BROWSER_HEADERS = {
    "cache-control": "max-age=0",
    "sec-fetch-dest": "document",
    "sec-fetch-mode": "navigate",
    "sec-fetch-site": "none",
    "sec-fetch-user": "?1",
    "upgrade-insecure-requests": "1",
}


@dataclass(frozen=True)
class PixelShift:
    """Nudge colour components of a fraction ``intensity`` of pixels by up to two."""

    intensity: float


@dataclass(frozen=True)
class ColorJitter:
    """Scale every colour component by a random factor within ``variance``."""

    variance: float


@dataclass(frozen=True)
class GammaAdjust:
    """Apply a gamma curve with exponent ``factor`` to every colour component."""

    factor: float


NoisePattern = Union[PixelShift, ColorJitter, GammaAdjust]


@dataclass
class ViewportData:
    width: int
    height: int
    color_depth: int
    timezone: str


@dataclass
class BrowserFingerprintProfile:
    canvas_signature: str
    webgl_signature: str
    audio_signature: str
    viewport_data: ViewportData
    tls_signature: str


def _clamp_byte(value: float) -> int:
    return int(min(max(value, 0.0), 255.0))


def _colour_indices(length: int):
    """Indices of the RGB components of each 4-byte RGBA pixel."""
    for start in range(0, length, 4):
        yield from range(start, min(start + 3, length))


class CanvasSpoofing:
    """Canvas signatures and pixel-level noise injection."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng if rng is not None else random.Random()
        self.noise_patterns: list[NoisePattern] = [
            PixelShift(intensity=0.1),
            ColorJitter(variance=0.05),
            GammaAdjust(factor=1.02),
        ]
        self._current_signature = ""

    def generate_signature(self) -> str:
        """A new canvas signature; it also becomes the current one."""
        pattern = self._rng.choice(self.noise_patterns)
        suffix = self._rng.getrandbits(32)
        if isinstance(pattern, PixelShift):
            signature = f"canvas_pixel_{pattern.intensity:.3f}_{suffix}"
        elif isinstance(pattern, ColorJitter):
            signature = f"canvas_color_{pattern.variance:.3f}_{suffix}"
        else:
            signature = f"canvas_gamma_{pattern.factor:.3f}_{suffix}"
        self._current_signature = signature
        return signature

    def apply_noise_to_canvas(self, canvas_data: bytearray) -> None:
        """Modify RGBA ``canvas_data`` in place with a randomly chosen noise pattern."""
        pattern = self._rng.choice(self.noise_patterns)
        if isinstance(pattern, PixelShift):
            self._pixel_shift(canvas_data, pattern.intensity)
        elif isinstance(pattern, ColorJitter):
            self._color_jitter(canvas_data, pattern.variance)
        else:
            self._gamma_adjust(canvas_data, pattern.factor)

    def _pixel_shift(self, data: bytearray, intensity: float) -> None:
        rng = self._rng
        for start in range(0, len(data), 4):
            if rng.random() < intensity:
                for i in range(start, min(start + 3, len(data))):
                    data[i] = _clamp_byte(data[i] + rng.randint(-2, 2))

    def _color_jitter(self, data: bytearray, variance: float) -> None:
        for i in _colour_indices(len(data)):
            jitter = self._rng.uniform(-variance, variance)
            data[i] = _clamp_byte(data[i] * (1.0 + jitter))

    def _gamma_adjust(self, data: bytearray, factor: float) -> None:
        for i in _colour_indices(len(data)):
            data[i] = _clamp_byte((data[i] / 255.0) ** factor * 255.0)

    def current_signature(self) -> str:
        """The most recently generated signature, or an empty string."""
        return self._current_signature

    def accept_header(self) -> str:
        return _ACCEPT


class WebGLSpoofing:
    """Randomised GPU vendor, renderer and extension signatures."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng if rng is not None else random.Random()
        self.gpu_vendors = ["NVIDIA Corporation", "AMD", "Intel Inc.", "Apple Inc."]
        self.renderers = [
            "GeForce GTX 1060",
            "Radeon RX 580",
            "Intel UHD Graphics 630",
            "Apple M1",
        ]
        self.extensions = [
            "WEBGL_debug_renderer_info",
            "OES_texture_float",
            "WEBGL_lose_context",
        ]

    def generate_signature(self) -> str:
        vendor = self._rng.choice(self.gpu_vendors)
        renderer = self._rng.choice(self.renderers)
        extension = self._rng.choice(self.extensions)
        return f"webgl_{vendor}_{renderer}_{extension}"

    def generate_accept_language(self) -> str:
        return self._rng.choice(_ACCEPT_LANGUAGES)

    def supported_extensions(self) -> list[str]:
        """A leading subset of at least two of the known extensions."""
        count = self._rng.randint(2, len(self.extensions))
        return self.extensions[:count]


class AudioSpoofing:
    """Randomised audio context signatures."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng if rng is not None else random.Random()
        self.sample_rates = [44100, 48000, 96000]
        self.channel_counts = [2, 6, 8]

    def generate_signature(self) -> str:
        sample_rate = self._rng.choice(self.sample_rates)
        channels = self._rng.choice(self.channel_counts)
        return f"audio_{sample_rate}hz_{channels}ch"

    def accept_encoding(self) -> str:
        return _ACCEPT_ENCODING


class TLSSpoofing:
    """Randomised TLS version, cipher and extension signatures."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng if rng is not None else random.Random()
        self.cipher_suites = [
            "TLS_AES_128_GCM_SHA256",
            "TLS_AES_256_GCM_SHA384",
            "TLS_CHACHA20_POLY1305_SHA256",
        ]
        self.tls_versions = ["1.2", "1.3"]
        self.extensions = [
            "server_name",
            "application_layer_protocol_negotiation",
            "signature_algorithms",
        ]

    def generate_signature(self) -> str:
        version = self._rng.choice(self.tls_versions)
        cipher = self._rng.choice(self.cipher_suites)
        extension = self._rng.choice(self.extensions)
        return f"tls_v{version}_cipher_{cipher}_{extension}"

    def tls_extensions(self) -> list[str]:
        """A leading subset of at least two of the known extensions."""
        count = self._rng.randint(2, len(self.extensions))
        return self.extensions[:count]


class ViewportSpoofing:
    """Randomised screen resolution, colour depth and timezone."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng if rng is not None else random.Random()
        self.common_resolutions = [
            (1920, 1080),
            (1366, 768),
            (1440, 900),
            (1536, 864),
            (1600, 900),
        ]
        self.color_depths = [24, 32]
        self.timezones = [
            "America/New_York",
            "Europe/London",
            "Asia/Tokyo",
            "America/Los_Angeles",
        ]

    def generate_viewport(self) -> ViewportData:
        width, height = self._rng.choice(self.common_resolutions)
        return ViewportData(
            width=width,
            height=height,
            color_depth=self._rng.choice(self.color_depths),
            timezone=self._rng.choice(self.timezones),
        )

    def generate_user_agent(self) -> str:
        self.generate_viewport()
        return _USER_AGENT


class FingerprintManager:
    """Coordinates the spoofers and rewrites request headers to match them."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng if rng is not None else random.Random()
        self.canvas_spoofing = CanvasSpoofing(self._rng)
        self.webgl_spoofing = WebGLSpoofing(self._rng)
        self.audio_spoofing = AudioSpoofing(self._rng)
        self.tls_spoofing = TLSSpoofing(self._rng)
        self.viewport_spoofing = ViewportSpoofing(self._rng)
        self._request_count = 0

    def apply_spoofing(self, headers: MutableMapping[str, str]) -> None:
        """Set browser-like headers on ``headers`` and count the request."""
        self._request_count += 1
        headers["user-agent"] = self.viewport_spoofing.generate_user_agent()
        headers["accept"] = self.canvas_spoofing.accept_header()
        headers["accept-language"] = self.webgl_spoofing.generate_accept_language()
        headers["accept-encoding"] = self.audio_spoofing.accept_encoding()
        if self._rng.random() < _DNT_PROBABILITY:
            headers["dnt"] = "1"
        headers.update(_BROWSER_HEADERS)

    def request_count(self) -> int:
        return self._request_count

    def generate_fingerprint_profile(self) -> BrowserFingerprintProfile:
        return BrowserFingerprintProfile(
            canvas_signature=self.canvas_spoofing.generate_signature(),
            webgl_signature=self.webgl_spoofing.generate_signature(),
            audio_signature=self.audio_spoofing.generate_signature(),
            viewport_data=self.viewport_spoofing.generate_viewport(),
            tls_signature=self.tls_spoofing.generate_signature(),
        )