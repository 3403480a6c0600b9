"""
Tests for the token-based Debouncer.
"""

from __future__ import annotations

import threading
import time
import unittest

from birdmap.debounce import Debouncer


class TestDebouncer(unittest.TestCase):

    def setUp(self):
        self.debouncer = Debouncer(0.05)

    def tearDown(self):
        self.debouncer.shutdown()

    def test_only_last_of_a_burst_runs(self):
        calls = []
        done = threading.Event()

        def task(n):
            calls.append(n)
            done.set()

        for n in range(5):
            self.debouncer.schedule(task, n)

        self.assertTrue(done.wait(2.0))
        time.sleep(0.2)
        self.assertEqual(calls, [4])

    def test_tokens_increase(self):
        t1 = self.debouncer.schedule(lambda: None)
        t2 = self.debouncer.schedule(lambda: None)
        self.assertGreater(t2, t1)
        self.assertEqual(self.debouncer.token, t2)

    def test_cancel_prevents_run(self):
        calls = []
        self.debouncer.schedule(calls.append, 1)
        self.debouncer.cancel()
        time.sleep(0.2)
        self.assertEqual(calls, [])

    def test_stale_token_does_not_run(self):
        calls = []
        self.debouncer.schedule(calls.append, 1)
        self.debouncer._fire(0, calls.append, (99,), {})
        time.sleep(0.2)
        self.assertEqual(calls, [1])

    def test_schedule_after_shutdown_raises(self):
        self.debouncer.shutdown()
        with self.assertRaises(RuntimeError):
            self.debouncer.schedule(lambda: None)

    def test_failing_task_is_logged(self):
        def boom():
            raise ValueError("boom")

        with self.assertLogs("birdmap.debounce", level="ERROR"):
            self.debouncer.schedule(boom)
            time.sleep(0.3)
