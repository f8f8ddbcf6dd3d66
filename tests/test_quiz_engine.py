"""
Unit tests for question selection and round timers.
"""
import unittest
import asyncio
import logging
import random

from triviabot.errors import NoQuestionAvailable
from triviabot.quiz_engine import RandomSelector, RoundTimer, SequentialSelector, create_selector
from tests.test_fixtures import TestFixtures, AsyncTestHelpers, async_test


class TestQuestionSelectors(unittest.TestCase):
    """Test cases for the question selection policies."""

    def setUp(self):
        self.questions = TestFixtures.create_sample_questions()

    def test_sequential_walks_pool_in_order(self):
        selector = SequentialSelector()

        picked = [selector.next_question(self.questions) for _ in self.questions]

        self.assertEqual(picked, self.questions)
        with self.assertRaises(NoQuestionAvailable):
            selector.next_question(self.questions)

    def test_sequential_reset(self):
        selector = SequentialSelector()
        selector.next_question(self.questions)
        selector.reset()

        self.assertEqual(selector.next_question(self.questions), self.questions[0])

    def test_random_draws_every_question_once(self):
        selector = RandomSelector(random.Random(42))

        picked = [selector.next_question(self.questions) for _ in self.questions]

        self.assertCountEqual(picked, self.questions)
        with self.assertRaises(NoQuestionAvailable):
            selector.next_question(self.questions)

    def test_random_reset_reshuffles(self):
        selector = RandomSelector(random.Random(1))
        for _ in self.questions:
            selector.next_question(self.questions)
        selector.reset()

        self.assertIn(selector.next_question(self.questions), self.questions)

    def test_random_handles_shrunk_pool(self):
        selector = RandomSelector(random.Random(3))
        selector.next_question(self.questions)

        smaller = self.questions[:1]
        picked = []
        while True:
            try:
                picked.append(selector.next_question(smaller))
            except NoQuestionAvailable:
                break

        self.assertTrue(all(question in smaller for question in picked))

    def test_empty_pool(self):
        with self.assertRaises(NoQuestionAvailable):
            SequentialSelector().next_question([])
        with self.assertRaises(NoQuestionAvailable):
            RandomSelector().next_question([])

    def test_shuffle_indices_is_permutation(self):
        indices = RandomSelector(random.Random(7)).shuffle_indices(10)

        self.assertEqual(sorted(indices), list(range(10)))

    def test_create_selector(self):
        self.assertIsInstance(create_selector(True), RandomSelector)
        self.assertIsInstance(create_selector(False), SequentialSelector)


class TestRoundTimer(unittest.TestCase):
    """Test cases for asyncio round timers."""

    def setUp(self):
        logging.disable(logging.CRITICAL)

    def tearDown(self):
        logging.disable(logging.NOTSET)

    @async_test
    async def test_timer_fires_once(self):
        calls = []
        timer = RoundTimer("1001", "tip", generation=3)
        timer.start(10, lambda: calls.append("fired"))

        self.assertTrue(timer.is_pending)
        self.assertTrue(await AsyncTestHelpers.wait_for(lambda: calls))
        await asyncio.sleep(0.02)

        self.assertEqual(calls, ["fired"])
        self.assertFalse(timer.is_pending)
        self.assertEqual(timer.generation, 3)
        self.assertEqual(timer.name, "tip")

    @async_test
    async def test_cancelled_timer_never_fires(self):
        calls = []
        timer = RoundTimer("1001", "resolution", generation=0)
        timer.start(20, lambda: calls.append("fired"))
        timer.cancel()
        timer.cancel()

        await asyncio.sleep(0.05)

        self.assertEqual(calls, [])
        self.assertTrue(timer.is_cancelled)
        self.assertFalse(timer.is_pending)

    @async_test
    async def test_callback_errors_are_contained(self):
        def explode():
            raise RuntimeError("boom")

        timer = RoundTimer("1001", "next_question", generation=0)
        timer.start(0, explode)

        self.assertTrue(await AsyncTestHelpers.wait_for(lambda: not timer.is_pending))

    @async_test
    async def test_callback_error_reaches_error_handler(self):
        errors = []

        def explode():
            raise RuntimeError("boom")

        timer = RoundTimer("1001", "resolution", generation=0)
        timer.start(0, explode, on_error=errors.append)

        self.assertTrue(await AsyncTestHelpers.wait_for(lambda: errors))
        self.assertIsInstance(errors[0], RuntimeError)
        self.assertTrue(await AsyncTestHelpers.wait_for(lambda: not timer.is_pending))

    @async_test
    async def test_cancel_from_own_callback(self):
        calls = []
        timer = RoundTimer("1001", "next_question", generation=0)

        def callback():
            timer.cancel()
            calls.append("done")

        timer.start(0, callback)

        self.assertTrue(await AsyncTestHelpers.wait_for(lambda: calls == ["done"]))


if __name__ == '__main__':
    unittest.main()
