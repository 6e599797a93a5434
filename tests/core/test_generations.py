"""Tests for last-write-wins request generations."""

import threading

from edu_cti_dashboard.core.generations import RequestGenerations


class TestRequestGenerations:
    """Test generation bookkeeping per view key."""

    def test_issue_is_monotonic(self):
        generations = RequestGenerations()

        assert generations.issue("incidents") == 1
        assert generations.issue("incidents") == 2
        assert generations.is_current("incidents", 2)
        assert not generations.is_current("incidents", 1)

    def test_keys_are_independent(self):
        generations = RequestGenerations()
        generations.issue("incidents")
        generations.issue("incidents")

        assert generations.issue("map") == 1
        assert generations.is_current("map", 1)

    def test_stale_result_discarded(self):
        """An older response arriving after a newer one is dropped."""
        generations = RequestGenerations()
        first = generations.issue("incidents")
        second = generations.issue("incidents")

        assert generations.apply("incidents", second, "page 2") is True
        assert generations.apply("incidents", first, "page 1") is False
        assert generations.result("incidents") == "page 2"

    def test_stale_result_before_newer_arrives(self):
        """A superseded response is dropped even if nothing newer landed yet."""
        generations = RequestGenerations()
        first = generations.issue("incidents")
        generations.issue("incidents")

        assert generations.apply("incidents", first, "old") is False
        assert generations.result("incidents") is None

    def test_unknown_key(self):
        generations = RequestGenerations()

        assert not generations.is_current("map", 1)
        assert generations.result("map") is None

    def test_concurrent_issue_is_unique(self):
        generations = RequestGenerations()
        issued = []
        lock = threading.Lock()

        def worker():
            for _ in range(100):
                generation = generations.issue("incidents")
                with lock:
                    issued.append(generation)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(issued) == list(range(1, 801))
