import unittest
from unittest.mock import MagicMock, patch

import requests
from requests.auth import HTTPBasicAuth

from webcrawl.crawler.config import AuthConfig, CrawlConfig
from webcrawl.crawler.fetcher import Fetcher, FetcherClosedError
from webcrawl.crawler.types import AuthType


def _response(status=200, headers=None, content=b""):
    response = MagicMock()
    response.status_code = status
    response.headers = headers or {}
    response.content = content
    return response


@patch("webcrawl.crawler.fetcher.requests.Session")
class TestFetcher(unittest.TestCase):
    def make_fetcher(self, **overrides):
        return Fetcher(CrawlConfig(start_url="http://example.com/", **overrides))

    def test_send_never_follows_redirects(self, session_cls):
        session = session_cls.return_value
        session.request.return_value = _response(301, {"location": "/next"})

        response = self.make_fetcher(user_agent="testbot").send("http://example.com/a")

        self.assertEqual(response.status_code, 301)
        self.assertEqual(response.location, "/next")
        kwargs = session.request.call_args.kwargs
        self.assertFalse(kwargs["allow_redirects"])
        self.assertEqual(kwargs["headers"]["User-Agent"], "testbot")
        self.assertEqual(kwargs["timeout"], 30.0)
        self.assertIsNone(kwargs["auth"])

    def test_basic_auth(self, session_cls):
        session = session_cls.return_value
        session.request.return_value = _response()
        fetcher = self.make_fetcher(
            auth=AuthConfig(type=AuthType.BASIC, username="user", password="pw")
        )

        fetcher.send("http://example.com/")

        auth = session.request.call_args.kwargs["auth"]
        self.assertIsInstance(auth, HTTPBasicAuth)
        self.assertEqual((auth.username, auth.password), ("user", "pw"))

    def test_api_key_and_bearer_headers(self, session_cls):
        session = session_cls.return_value
        session.request.return_value = _response()

        self.make_fetcher(
            auth=AuthConfig(type=AuthType.API_KEY, api_key_header="X-Api-Key", api_key="k1")
        ).send("http://example.com/")
        self.assertEqual(session.request.call_args.kwargs["headers"]["X-Api-Key"], "k1")

        self.make_fetcher(
            auth=AuthConfig(type=AuthType.BEARER_TOKEN, bearer_token="t0k")
        ).send("http://example.com/")
        self.assertEqual(
            session.request.call_args.kwargs["headers"]["Authorization"], "Bearer t0k"
        )

    def test_transport_errors_propagate(self, session_cls):
        session_cls.return_value.request.side_effect = requests.ConnectionError("refused")

        with self.assertRaises(requests.RequestException):
            self.make_fetcher().send("http://example.com/")

    def test_probe_reads_head_metadata(self, session_cls):
        session = session_cls.return_value
        session.request.return_value = _response(
            200, {"Content-Type": "Application/PDF", "Content-Length": "2048"}, b"ignored"
        )

        info = self.make_fetcher().probe_content_type("http://example.com/file.pdf")

        self.assertEqual(session.request.call_args.args[0], "HEAD")
        self.assertTrue(info.check_succeeded)
        self.assertFalse(info.is_navigable)
        self.assertEqual(info.media_type, "application/pdf")
        self.assertEqual(info.content_length, 2048)

    def test_probe_failure_defaults_to_navigable(self, session_cls):
        session_cls.return_value.request.side_effect = requests.Timeout("slow")

        info = self.make_fetcher().probe_content_type("http://example.com/")

        self.assertTrue(info.is_navigable)
        self.assertFalse(info.check_succeeded)

    def test_closed_fetcher_refuses_requests(self, session_cls):
        session_cls.return_value.request.return_value = _response()
        fetcher = self.make_fetcher()
        fetcher.send("http://example.com/")

        fetcher.close()

        session_cls.return_value.close.assert_called_once()
        with self.assertRaises(FetcherClosedError):
            fetcher.send("http://example.com/")


if __name__ == "__main__":
    unittest.main()
