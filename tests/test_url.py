import unittest

from webcrawl.crawler.url import domain_root, host_from_url, is_http_url, normalize_url, strip_fragment


class TestNormalizeUrl(unittest.TestCase):
    BASE = "http://example.com/docs/guide/index.html?v=2"

    def test_absolute_url_only_loses_fragment(self):
        self.assertEqual(
            normalize_url(self.BASE, "https://Other.example.org/A/b/?x=1#section"),
            "https://Other.example.org/A/b/?x=1",
        )

    def test_relative_path_resolves_against_base_directory(self):
        self.assertEqual(
            normalize_url(self.BASE, "intro.html"),
            "http://example.com/docs/guide/intro.html",
        )
        self.assertEqual(
            normalize_url(self.BASE, "../api/"),
            "http://example.com/docs/api/",
        )

    def test_root_relative_and_protocol_relative(self):
        self.assertEqual(normalize_url(self.BASE, "/about"), "http://example.com/about")
        self.assertEqual(
            normalize_url("https://example.com/", "//cdn.example.com/lib.js"),
            "https://cdn.example.com/lib.js",
        )

    def test_query_only_replaces_query(self):
        self.assertEqual(
            normalize_url(self.BASE, "?v=3"),
            "http://example.com/docs/guide/index.html?v=3",
        )

    def test_fragment_only_returns_base_without_fragment(self):
        self.assertEqual(
            normalize_url("http://example.com/page#old", "#top"),
            "http://example.com/page",
        )

    def test_rejects_non_web_schemes_and_blanks(self):
        for candidate in ["mailto:someone@example.com", "javascript:void(0)", "tel:+1555", "", "   ", None]:
            with self.subTest(candidate=candidate):
                self.assertIsNone(normalize_url(self.BASE, candidate))

    def test_rejects_malformed_authority(self):
        self.assertIsNone(normalize_url(self.BASE, "http://example.com:notaport/x"))
        self.assertIsNone(normalize_url(self.BASE, "http:///nohost"))

    def test_relative_link_needs_http_base(self):
        self.assertIsNone(normalize_url("ftp://example.com/", "file.txt"))
        self.assertIsNone(normalize_url("", "file.txt"))


class TestUrlHelpers(unittest.TestCase):
    def test_domain_root_drops_path_and_userinfo(self):
        self.assertEqual(
            domain_root("https://user:pw@Example.com:8443/a/b?x=1"),
            "https://Example.com:8443",
        )

    def test_host_from_url_is_lowercase(self):
        self.assertEqual(host_from_url("http://WWW.Example.COM/x"), "www.example.com")
        self.assertEqual(host_from_url("not a url"), "")

    def test_is_http_url(self):
        self.assertTrue(is_http_url("https://example.com"))
        self.assertFalse(is_http_url("/relative/path"))
        self.assertFalse(is_http_url("ftp://example.com/file"))

    def test_strip_fragment(self):
        self.assertEqual(strip_fragment("http://a.com/x#y#z"), "http://a.com/x")


if __name__ == "__main__":
    unittest.main()
