import unittest

from webcrawl.crawler.parsers import extract_hrefs, looks_like_html


class TestExtractHrefs(unittest.TestCase):
    def test_returns_raw_hrefs_in_order(self):
        html = b"""
        <html><body>
          <a href="/a">A</a>
          <a href=" relative/b ">B</a>
          <a>no href</a>
          <a href="">blank</a>
          <a href="mailto:x@example.com">mail</a>
          <a href="/a">A again</a>
        </body></html>
        """
        self.assertEqual(
            extract_hrefs(html),
            ["/a", "relative/b", "mailto:x@example.com", "/a"],
        )

    def test_non_html_payloads(self):
        self.assertEqual(extract_hrefs(None), [])
        self.assertEqual(extract_hrefs(b""), [])
        self.assertEqual(extract_hrefs(b"\x89PNG\r\n binary"), [])

    def test_looks_like_html(self):
        self.assertTrue(looks_like_html("  <!DOCTYPE html><p>x</p>"))
        self.assertTrue(looks_like_html(b"preamble <html><body></body></html>"))
        self.assertFalse(looks_like_html("plain words only"))


if __name__ == "__main__":
    unittest.main()
