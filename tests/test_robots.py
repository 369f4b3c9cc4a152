import unittest

from webcrawl.crawler.robots import RobotsPolicy, parse_robots_txt


class TestParseRobotsTxt(unittest.TestCase):
    def test_groups_consecutive_user_agents(self):
        rules = parse_robots_txt(
            "User-agent: alpha\n"
            "User-agent: Beta\n"
            "Disallow: /shared\n"
            "\n"
            "User-agent: *\n"
            "Disallow: /all  # trailing comment\n"
            "Crawl-delay: 1.5\n"
        )
        self.assertEqual(rules.disallow["alpha"], ["/shared"])
        self.assertEqual(rules.disallow["beta"], ["/shared"])
        self.assertEqual(rules.disallow["*"], ["/all"])
        self.assertEqual(rules.crawl_delay, {"*": 1.5})

    def test_rules_before_any_user_agent_are_ignored(self):
        rules = parse_robots_txt("Disallow: /orphan\nUser-agent: *\nAllow: /ok\n")
        self.assertNotIn("*", rules.disallow)
        self.assertEqual(rules.allow["*"], ["/ok"])

    def test_sitemap_without_group_attaches_to_wildcard(self):
        rules = parse_robots_txt(b"Sitemap: https://example.com/map.xml\n")
        self.assertEqual(rules.sitemap, {"*": "https://example.com/map.xml"})

    def test_bad_crawl_delay_is_skipped(self):
        rules = parse_robots_txt("User-agent: *\nCrawl-delay: soon\nCrawl-delay: -4\n")
        self.assertEqual(rules.crawl_delay, {})

    def test_empty_input(self):
        rules = parse_robots_txt(None)
        self.assertEqual(rules.disallow, {})
        self.assertEqual(rules.sitemap, {})


class TestRobotsPolicy(unittest.TestCase):
    def test_longer_match_wins(self):
        policy = RobotsPolicy.from_text("User-agent: *\nDisallow: /a\nAllow: /ab\n")
        self.assertTrue(policy.is_allowed("webcrawl", "/ab/c"))
        self.assertFalse(policy.is_allowed("webcrawl", "/a/c"))

    def test_tie_goes_to_allow(self):
        policy = RobotsPolicy.from_text("User-agent: *\nDisallow: /page\nAllow: /page\n")
        self.assertTrue(policy.is_allowed("webcrawl", "/page/1"))

    def test_matching_is_case_insensitive(self):
        policy = RobotsPolicy.from_text("User-agent: *\nDisallow: /Private\n")
        self.assertFalse(policy.is_allowed("webcrawl", "/private/page"))

    def test_disallow_root_and_empty_are_dropped(self):
        policy = RobotsPolicy.from_text("User-agent: *\nDisallow: /\nDisallow:\n")
        self.assertTrue(policy.is_allowed("webcrawl", "/anything"))

    def test_specific_agent_rules_replace_wildcard(self):
        policy = RobotsPolicy.from_text(
            "User-agent: *\nDisallow: /private\n\nUser-agent: WebCrawl\nDisallow: /drafts\n"
        )
        self.assertTrue(policy.is_allowed("webcrawl", "/private/x"))
        self.assertFalse(policy.is_allowed("webcrawl", "/drafts/x"))
        self.assertFalse(policy.is_allowed("otherbot", "/private/x"))
        self.assertTrue(policy.has_rules_for("WEBCRAWL"))
        self.assertFalse(policy.has_rules_for("otherbot"))

    def test_path_without_leading_slash(self):
        policy = RobotsPolicy.from_text("User-agent: *\nDisallow: /private\n")
        self.assertFalse(policy.is_allowed("webcrawl", "private/page"))

    def test_no_rules_allows_everything(self):
        policy = RobotsPolicy.permissive()
        self.assertTrue(policy.is_allowed("webcrawl", "/x"))
        self.assertEqual(policy.crawl_delay("webcrawl"), 0.0)
        self.assertIsNone(policy.sitemap_for("webcrawl"))

    def test_crawl_delay_and_sitemap_fall_back_to_wildcard(self):
        policy = RobotsPolicy.from_text(
            "User-agent: *\nCrawl-delay: 3\nSitemap: https://example.com/s.xml\n"
            "User-agent: fastbot\nCrawl-delay: 0.5\n"
        )
        self.assertEqual(policy.crawl_delay("webcrawl"), 3.0)
        self.assertEqual(policy.crawl_delay("FastBot"), 0.5)
        self.assertEqual(policy.sitemap_for("fastbot"), "https://example.com/s.xml")


if __name__ == "__main__":
    unittest.main()
