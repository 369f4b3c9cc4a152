import io
import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from webcrawl import crawl as cli
from webcrawl.crawler import save_config
from webcrawl.crawler.config import CrawlConfig
from webcrawl.crawler.pipeline import Pipeline

from tests.fakes import FakeFetcher, page


class TestBuildConfig(unittest.TestCase):
    def test_flags_override_config_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "crawl.json"
            save_config(CrawlConfig(start_url="https://example.com/", max_crawl_depth=4), path)

            args = cli.parse_args([
                "--config", str(path),
                "--max_depth", "1",
                "--ignore_robots",
                "--no_sitemap",
                "--exclude", r"\.pdf$",
            ])
            config = cli.build_config(args)

        self.assertEqual(config.start_url, "https://example.com/")
        self.assertEqual(config.max_crawl_depth, 1)
        self.assertTrue(config.ignore_robots_txt)
        self.assertFalse(config.include_sitemap)
        self.assertEqual(config.exclude_link_patterns, [r"\.pdf$"])
        self.assertTrue(config.follow_redirects)

    def test_start_url_required(self):
        with self.assertRaises(ValueError):
            cli.build_config(cli.parse_args([]))

    def test_main_returns_2_on_bad_config(self):
        with patch.object(cli, "setup_logging"):
            self.assertEqual(cli.main(["--start_url", "not-a-url"]), 2)


class TestRun(unittest.TestCase):
    def test_writes_one_json_line_per_resource(self):
        fetcher = FakeFetcher()
        fetcher.add("http://example.com/", page("/a"))
        fetcher.add("http://example.com/a", page())
        sink = io.StringIO()

        pipeline = Pipeline(CrawlConfig(start_url="http://example.com/"), fetcher=fetcher)
        count = cli.run(pipeline, sink)

        lines = [json.loads(line) for line in sink.getvalue().splitlines()]
        self.assertEqual(count, 2)
        self.assertEqual(
            sorted(line["url"] for line in lines),
            ["http://example.com/", "http://example.com/a"],
        )
        self.assertTrue(all(line["status"] == 200 for line in lines))


if __name__ == "__main__":
    unittest.main()
