"""Extracting text, titles, metadata, links and images from HTML."""

from __future__ import annotations

import re
from html.parser import HTMLParser

_SCRIPT_STYLE = re.compile(r"(?is)<script.*?>.*?</script>|<style.*?>.*?</style>")
_HTML_TAG = re.compile(r"<[^>]*>")
_WHITESPACE = re.compile(r"\s+")
_TITLE = re.compile(r"(?i)<title[^>]*>(.*?)</title>")
_META_NAME = re.compile(
    r"""(?i)<meta[^>]*name\s*=\s*["']([^"']+)["'][^>]*content\s*=\s*["']([^"']+)["'][^>]*>"""
)
_META_PROPERTY = re.compile(
    r"""(?i)<meta[^>]*property\s*=\s*["']([^"']+)["'][^>]*content\s*=\s*["']([^"']+)["'][^>]*>"""
)
_LINK = re.compile(r"""(?i)<a[^>]*href=["']([^"']+)["'][^>]*>""")
_IMAGE = re.compile(r"""(?i)<img[^>]*src=["']([^"']+)["'][^>]*>""")

_SAFE_TAGS = frozenset(
    """a abbr acronym area article aside b bdi bdo blockquote br caption center cite
    code col colgroup data dd del details dfn div dl dt em figcaption figure footer
    h1 h2 h3 h4 h5 h6 header hgroup hr i img ins kbd li map mark nav ol p pre q rp
    rt rtc ruby s samp small span strike strong sub summary sup table tbody td th
    thead time tr tt u ul var wbr""".split()
)
_VOID_TAGS = frozenset({"area", "br", "col", "hr", "img", "wbr"})
_CONTENT_DROPPING_TAGS = frozenset({"script", "style"})
_MAX_CONTENT_BYTES = 1000


def _escape_text(text: str) -> str:
    return (
        text.replace("&", "&amp;")
        .replace("\xa0", "&nbsp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
    )


class _Sanitizer(HTMLParser):
    """Rebuilds HTML keeping only allowed tags (without attributes) and escaped text."""

    def __init__(self, allowed: frozenset[str], dropped: frozenset[str]) -> None:
        super().__init__(convert_charrefs=True)
        self._allowed = allowed
        self._dropped = dropped
        self._parts: list[str] = []
        self._open: list[str] = []
        self._skip_depth = 0

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag in self._dropped:
            self._skip_depth += 1
            return
        if self._skip_depth or tag not in self._allowed:
            return
        self._parts.append('<a rel="noopener noreferrer">' if tag == "a" else f"<{tag}>")
        if tag not in _VOID_TAGS:
            self._open.append(tag)

    def handle_endtag(self, tag: str) -> None:
        if tag in self._dropped:
            self._skip_depth = max(0, self._skip_depth - 1)
            return
        if self._skip_depth or tag not in self._open:
            return
        while self._open:
            current = self._open.pop()
            self._parts.append(f"</{current}>")
            if current == tag:
                break

    def handle_data(self, data: str) -> None:
        if not self._skip_depth:
            self._parts.append(_escape_text(data))

    def result(self) -> str:
        self.close()
        closing = "".join(f"</{tag}>" for tag in reversed(self._open))
        return "".join(self._parts) + closing


def _sanitize(html: str, allowed: frozenset[str], dropped: frozenset[str]) -> str:
    parser = _Sanitizer(allowed, dropped)
    parser.feed(html)
    return parser.result()


def _clean(html: str) -> str:
    """Sanitise an HTML fragment, keeping a conservative set of formatting tags."""
    return _sanitize(html, _SAFE_TAGS, _CONTENT_DROPPING_TAGS)


def extract_text_secure(html: str) -> str:
    """Return the page's text with all markup and comments removed and whitespace collapsed."""
    sanitized = _sanitize(html, frozenset(), frozenset())
    no_scripts = _SCRIPT_STYLE.sub("", sanitized)
    no_tags = _HTML_TAG.sub(" ", no_scripts)
    return _WHITESPACE.sub(" ", no_tags).strip()


def extract_title(html: str) -> str | None:
    """Return the trimmed text of the first ``<title>`` element, or None if absent or blank."""
    match = _TITLE.search(html)
    if match is None:
        return None
    title = match.group(1).strip()
    return title or None


def _is_safe_metadata_key(key: str) -> bool:
    return all(c.isalnum() or c in "-_:" for c in key)


def _is_safe_content(content: str) -> bool:
    lower = content.lower()
    return (
        "<script" not in lower
        and "javascript:" not in lower
        and "data:" not in lower
        and "vbscript:" not in lower
        and len(content.encode("utf-8")) < _MAX_CONTENT_BYTES
    )


def extract_metadata_secure(html: str) -> dict[str, str]:
    """Collect ``<meta>`` name and property values, keyed by lower-cased name."""
    metadata: dict[str, str] = {}
    for pattern in (_META_NAME, _META_PROPERTY):
        for match in pattern.finditer(html):
            key = match.group(1).lower()
            content = match.group(2)
            if not _is_safe_metadata_key(key):
                continue
            cleaned = _clean(content)
            if cleaned:
                metadata[key] = cleaned
            elif _is_safe_content(content):
                metadata[key] = content
    return metadata


def extract_links(html: str) -> list[str]:
    """Return the ``href`` of every anchor, in document order."""
    return [match.group(1) for match in _LINK.finditer(html)]


def extract_images(html: str) -> list[str]:
    """Return the ``src`` of every image, in document order."""
    return [match.group(1) for match in _IMAGE.finditer(html)]