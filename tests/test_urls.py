"""Tests for URL helpers."""

from tabsense.tabs.urls import (
    host_contains_any,
    hostname,
    is_internal_url,
    normalize_allowlist,
)

INTERNAL = ["chrome", "chrome-extension", "about"]


class TestHostname:
    def test_extracts_lowercase_host(self):
        assert hostname("https://Mail.Google.com/inbox") == "mail.google.com"

    def test_missing_url_returns_none(self):
        assert hostname(None) is None
        assert hostname("") is None

    def test_malformed_url_returns_none(self):
        assert hostname("http://[::1") is None

    def test_no_host_returns_none(self):
        assert hostname("about:blank") is None


class TestInternalUrls:
    def test_browser_and_extension_schemes(self):
        assert is_internal_url("chrome://settings", INTERNAL)
        assert is_internal_url("chrome-extension://abc/blocked.html", INTERNAL)
        assert is_internal_url("about:blank", INTERNAL)

    def test_web_urls_are_not_internal(self):
        assert not is_internal_url("https://example.com", INTERNAL)
        assert not is_internal_url(None, INTERNAL)


class TestAllowlist:
    def test_strips_scheme_and_trailing_slash(self):
        assert normalize_allowlist(["https://GitHub.com/", " docs.python.org "]) == [
            "github.com",
            "docs.python.org",
        ]

    def test_drops_empty_entries(self):
        assert normalize_allowlist(["", "http://", "/"]) == []

    def test_substring_containment(self):
        assert host_contains_any("mail.google.com", ["google.com"])
        assert not host_contains_any("evil.example.com", ["github.com"])
        assert not host_contains_any("example.com", [""])
