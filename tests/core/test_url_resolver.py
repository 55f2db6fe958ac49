"""
URL 解析单元测试
"""
import unittest

from core.errors import InvalidUrlError
from core.url_resolver import (
    filename_from_url,
    is_acceptable_url,
    normalize_page_url,
    resolve_url,
)

BASE = "https://example.com/blog/post.html"


class TestResolveUrl(unittest.TestCase):
    def test_relative_path(self):
        self.assertEqual(resolve_url(BASE, "img/a.png").url, "https://example.com/blog/img/a.png")

    def test_root_relative(self):
        self.assertEqual(resolve_url(BASE, "/a.png").url, "https://example.com/a.png")

    def test_protocol_relative(self):
        self.assertEqual(resolve_url(BASE, "//cdn.example.com/a.png").url, "https://cdn.example.com/a.png")

    def test_absolute_passthrough(self):
        self.assertEqual(resolve_url(BASE, "http://other.com/a.png").url, "http://other.com/a.png")

    def test_data_uri_passthrough(self):
        uri = "data:image/png;base64,iVBORw0KGgo="
        self.assertEqual(resolve_url(BASE, uri).url, uri)

    def test_whitespace_trimmed(self):
        self.assertEqual(resolve_url(BASE, "  /a.png \n").url, "https://example.com/a.png")

    def test_empty_rejected(self):
        result = resolve_url(BASE, "   ")
        self.assertFalse(result.ok)
        self.assertEqual(result.reason, "empty")
        self.assertFalse(resolve_url(BASE, None).ok)

    def test_javascript_scheme_rejected(self):
        result = resolve_url(BASE, "javascript:void(0)")
        self.assertFalse(result.ok)
        self.assertIn("unsupported scheme", result.reason)

    def test_malformed_reference_rejected(self):
        result = resolve_url(BASE, "//[::1/a.png")
        self.assertFalse(result.ok)


class TestIsAcceptableUrl(unittest.TestCase):
    def test_accepts_http_and_data(self):
        self.assertTrue(is_acceptable_url("https://example.com/a.png"))
        self.assertTrue(is_acceptable_url("data:image/gif;base64,R0lGOD"))

    def test_rejects_other(self):
        self.assertFalse(is_acceptable_url("ftp://example.com/a.png"))
        self.assertFalse(is_acceptable_url("mailto:someone@example.com"))
        self.assertFalse(is_acceptable_url(""))


class TestFilenameFromUrl(unittest.TestCase):
    def test_basename(self):
        self.assertEqual(filename_from_url("https://example.com/img/photo.jpg?v=2"), "photo.jpg")

    def test_percent_decoded(self):
        self.assertEqual(filename_from_url("https://example.com/my%20photo.png"), "my photo.png")

    def test_data_uri(self):
        self.assertEqual(filename_from_url("data:image/png;base64,AAAA"), "data-image")

    def test_empty_path_fallback(self):
        self.assertEqual(filename_from_url("https://example.com/"), "image")


class TestNormalizePageUrl(unittest.TestCase):
    def test_adds_https(self):
        self.assertEqual(normalize_page_url("example.com/page"), "https://example.com/page")

    def test_keeps_http(self):
        self.assertEqual(normalize_page_url("http://example.com"), "http://example.com")

    def test_host_with_port(self):
        self.assertEqual(normalize_page_url("localhost:8080/x"), "https://localhost:8080/x")

    def test_empty_raises(self):
        with self.assertRaises(InvalidUrlError):
            normalize_page_url("  ")

    def test_unsupported_scheme_raises(self):
        with self.assertRaises(InvalidUrlError):
            normalize_page_url("mailto:someone@example.com")
        with self.assertRaises(InvalidUrlError):
            normalize_page_url("ftp://example.com/")

    def test_whitespace_in_host_raises(self):
        with self.assertRaises(InvalidUrlError):
            normalize_page_url("not a url")

    def test_bad_port_raises(self):
        with self.assertRaises(InvalidUrlError):
            normalize_page_url("https://example.com:99999/")


if __name__ == "__main__":
    unittest.main()
