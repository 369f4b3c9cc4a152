import unittest

from webcrawl.crawler.sitemap import (
    is_parseable,
    is_sitemap_index,
    parse_sitemap,
    parse_sitemap_index,
)

URLSET = b"""<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9"
        xmlns:image="http://www.google.com/schemas/sitemap-image/1.1">
  <url>
    <loc>https://example.com/</loc>
    <lastmod>2024-01-02</lastmod>
    <changefreq>daily</changefreq>
    <priority>1.0</priority>
    <image:image><image:loc>https://example.com/logo.png</image:loc></image:image>
  </url>
  <url>
    <loc> https://example.com/about </loc>
    <priority>high</priority>
  </url>
  <url><lastmod>2024-01-01</lastmod></url>
</urlset>
"""

INDEX = b"""<?xml version="1.0" encoding="UTF-8"?>
<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <sitemap><loc>https://example.com/sitemap-posts.xml</loc></sitemap>
  <sitemap><loc>https://example.com/sitemap-pages.xml</loc></sitemap>
</sitemapindex>
"""


class TestSitemap(unittest.TestCase):
    def test_parse_urlset(self):
        entries = parse_sitemap(URLSET)

        self.assertEqual([entry.location for entry in entries], [
            "https://example.com/",
            "https://example.com/about",
        ])
        first = entries[0]
        self.assertEqual(first.last_modified, "2024-01-02")
        self.assertEqual(first.change_frequency, "daily")
        self.assertEqual(first.priority, 1.0)
        self.assertEqual(first.images, ["https://example.com/logo.png"])
        self.assertIsNone(entries[1].priority)

    def test_index_is_detected_and_not_parsed_as_urlset(self):
        self.assertTrue(is_sitemap_index(INDEX))
        self.assertFalse(is_sitemap_index(URLSET))
        self.assertEqual(parse_sitemap(INDEX), [])
        self.assertEqual(parse_sitemap_index(INDEX), [
            "https://example.com/sitemap-posts.xml",
            "https://example.com/sitemap-pages.xml",
        ])

    def test_unparseable_payloads(self):
        self.assertFalse(is_parseable(b""))
        self.assertFalse(is_parseable(None))
        self.assertEqual(parse_sitemap(None), [])
        self.assertEqual(parse_sitemap_index(URLSET), [])


if __name__ == "__main__":
    unittest.main()
