import threading
import unittest

from webcrawl.crawler.frontier import EnqueueStatus, Frontier
from webcrawl.crawler.types import QueuedLink, WebResource


def _resource(url: str) -> WebResource:
    return WebResource.from_body(
        url=url, parent_url=None, depth=0, status=200, headers={}, body=b"x"
    )


class TestFrontier(unittest.TestCase):
    def setUp(self):
        self.frontier = Frontier()

    def test_pending_is_fifo_and_deduped_by_url(self):
        first = self.frontier.push(QueuedLink("http://a.com/1"))
        duplicate = self.frontier.push(QueuedLink("http://a.com/1", depth=3))
        self.frontier.push(QueuedLink("http://a.com/2"))

        self.assertTrue(first.accepted)
        self.assertEqual(duplicate.status, EnqueueStatus.SKIPPED_PENDING)
        self.assertEqual(self.frontier.pop().url, "http://a.com/1")
        self.assertEqual(self.frontier.pop().url, "http://a.com/2")
        self.assertIsNone(self.frontier.pop())

    def test_visited_url_is_never_reenqueued(self):
        self.frontier.mark_visited("http://a.com/", _resource("http://a.com/"))
        result = self.frontier.push(QueuedLink("http://a.com/"))
        self.assertEqual(result.status, EnqueueStatus.SKIPPED_VISITED)
        self.assertFalse(self.frontier.has_pending())

    def test_claim_next_skips_visited_and_in_flight(self):
        self.frontier.push(QueuedLink("http://a.com/visited"))
        self.frontier.push(QueuedLink("http://a.com/busy"))
        self.frontier.push(QueuedLink("http://a.com/free"))
        self.frontier.mark_visited("http://a.com/visited", _resource("http://a.com/visited"))
        self.assertTrue(self.frontier.try_claim(QueuedLink("http://a.com/busy")))

        claimed = self.frontier.claim_next()
        self.assertEqual(claimed.url, "http://a.com/free")
        self.assertIsNone(self.frontier.claim_next())
        self.assertEqual(
            {link.url for link in self.frontier.in_flight_links()},
            {"http://a.com/busy", "http://a.com/free"},
        )

        self.frontier.release(claimed)
        self.assertFalse(self.frontier.is_in_flight("http://a.com/free"))

    def test_mark_visited_keeps_first_resource(self):
        winner = _resource("http://a.com/")
        loser = _resource("http://a.com/")
        self.assertIs(self.frontier.mark_visited("http://a.com/", winner), winner)
        self.assertIs(self.frontier.mark_visited("http://a.com/", loser), winner)

    def test_completed_preserves_push_order(self):
        resources = [_resource(f"http://a.com/{idx}") for idx in range(3)]
        for resource in resources:
            self.frontier.push_completed(resource)
        self.assertEqual(
            [self.frontier.pop_completed() for _ in range(4)],
            resources + [None],
        )

    def test_close_drops_pending_and_rejects_new_links(self):
        self.frontier.push(QueuedLink("http://a.com/1"))
        self.frontier.close()
        self.assertFalse(self.frontier.has_pending())
        self.assertEqual(
            self.frontier.push(QueuedLink("http://a.com/2")).status,
            EnqueueStatus.SKIPPED_CLOSED,
        )
        self.assertTrue(self.frontier.snapshot()["closed"])

    def test_concurrent_pushes_enqueue_each_url_once(self):
        urls = [f"http://a.com/{idx % 50}" for idx in range(500)]
        accepted = []
        lock = threading.Lock()

        def worker(chunk):
            for url in chunk:
                if self.frontier.push(QueuedLink(url)).accepted:
                    with lock:
                        accepted.append(url)

        threads = [threading.Thread(target=worker, args=(urls[i::5],)) for i in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(sorted(accepted), sorted(set(urls)))
        self.assertEqual(len(self.frontier.pending_links()), 50)


if __name__ == "__main__":
    unittest.main()
