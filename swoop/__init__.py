"""Asynchronous web toolkit: SSRF-safe fetching, HTML extraction and WebDriver sessions."""

__version__ = "0.1.0"