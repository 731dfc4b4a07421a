"""URL validation that guards outbound requests against SSRF."""

from __future__ import annotations

import ipaddress
from urllib.parse import SplitResult, urlsplit


class SecurityError(Exception):
    """Base class for every URL security violation."""


class InvalidSchemeError(SecurityError):
    """The URL uses a scheme other than http or https."""

    def __init__(self, scheme: str) -> None:
        self.scheme = scheme
        super().__init__(f"Invalid URL scheme '{scheme}'. Only http and https are allowed")


class PrivateIPError(SecurityError):
    """The URL points at a private, loopback or otherwise internal address."""

    def __init__(self, ip: str) -> None:
        self.ip = ip
        super().__init__(
            f"Access to private IP address '{ip}' is forbidden for security reasons"
        )


class BlockedDomainError(SecurityError):
    """The URL host matches the block list."""

    def __init__(self, domain: str) -> None:
        self.domain = domain
        super().__init__(f"Access to domain '{domain}' is blocked for security reasons")


class ValidationFailedError(SecurityError):
    """The URL could not be parsed."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"URL validation failed: {reason}")


class InvalidPortError(SecurityError):
    """The URL carries a port that is not allowed."""

    def __init__(self, port: int) -> None:
        self.port = port
        super().__init__(f"Invalid port number: {port}")


class MalformedUrlError(SecurityError):
    """The URL is structurally malformed."""

    def __init__(self, details: str) -> None:
        self.details = details
        super().__init__(f"Invalid URL format: {details}")


_DEFAULT_SCHEMES = ("http", "https")
_DEFAULT_BLOCKED_DOMAINS = (
    "localhost",
    "127.0.0.1",
    "0.0.0.0",
    "169.254.169.254",  # cloud metadata endpoint
)

_INTERNAL_V4_NETWORKS = tuple(
    ipaddress.IPv4Network(net)
    for net in (
        "10.0.0.0/8",  # private
        "172.16.0.0/12",  # private
        "192.168.0.0/16",  # private
        "127.0.0.0/8",  # loopback
        "169.254.0.0/16",  # link-local, includes the metadata address
        "255.255.255.255/32",  # broadcast
        "192.0.2.0/24",  # documentation
        "198.51.100.0/24",  # documentation
        "203.0.113.0/24",  # documentation
        "224.0.0.0/4",  # multicast
    )
)


def _host_of(netloc: str) -> str | None:
    hostport = netloc.rpartition("@")[2]
    if not hostport:
        return None
    if hostport.startswith("["):
        end = hostport.find("]")
        return hostport[1:end] if end != -1 else hostport[1:]
    return hostport.partition(":")[0]


def _is_internal_ip(host: str) -> bool:
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        # Not an IP literal: a domain name is not treated as private.
        return False
    if isinstance(ip, ipaddress.IPv4Address):
        return any(ip in net for net in _INTERNAL_V4_NETWORKS)
    return ip.is_loopback or ip.is_multicast or ip.is_unspecified


class UrlValidator:
    """Checks URLs for allowed schemes, blocked hosts and internal addresses."""

    def __init__(self, allow_private_ips: bool = False) -> None:
        self.allowed_schemes = list(_DEFAULT_SCHEMES)
        self.blocked_domains = list(_DEFAULT_BLOCKED_DOMAINS)
        self.allow_private_ips = allow_private_ips

    def validate_url(self, url: str) -> SplitResult:
        """Return the parsed URL, or raise a SecurityError subclass."""
        if not url:
            raise ValidationFailedError("Parse error: empty string")
        if any(ch.isspace() or ord(ch) < 0x20 or ord(ch) == 0x7F for ch in url):
            raise ValidationFailedError("Parse error: invalid uri character")
        try:
            parts = urlsplit(url)
            parts.port  # raises ValueError on a malformed or out-of-range port
        except ValueError as exc:
            raise ValidationFailedError(f"Parse error: {exc}") from exc

        scheme = parts.scheme
        if scheme not in self.allowed_schemes:
            raise InvalidSchemeError(scheme)

        host = _host_of(parts.netloc)
        if host:
            if any(blocked in host for blocked in self.blocked_domains):
                raise BlockedDomainError(host)
            if not self.allow_private_ips and _is_internal_ip(host):
                raise PrivateIPError(host)

        return parts