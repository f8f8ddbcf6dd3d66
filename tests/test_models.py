"""
Unit tests for the core data models.
"""
import unittest

from triviabot.models import GameSettings, Question, UserRecord, normalize_answer


class TestQuestion(unittest.TestCase):
    """Test cases for answer matching and tips."""

    def test_matches_ignores_case_and_surrounding_whitespace(self):
        question = Question("Capital of France?", ["Paris"])

        self.assertTrue(question.matches("  pARIS "))
        self.assertFalse(question.matches("Lyon"))

    def test_matches_any_accepted_answer(self):
        question = Question("How many legs does a spider have?", ["8", "eight"])

        self.assertTrue(question.matches("EIGHT"))
        self.assertTrue(question.matches("8"))

    def test_empty_candidate_never_matches(self):
        question = Question("Empty?", ["x"])

        self.assertFalse(question.matches(""))
        self.assertFalse(question.matches("   "))
        self.assertFalse(question.matches(None))

    def test_answers_stored_as_tuple(self):
        question = Question("Q?", ["a", "b"])

        self.assertEqual(question.answers, ("a", "b"))
        self.assertEqual(question.answer, "a")

    def test_tip_text_uses_explicit_tip(self):
        question = Question("Red planet?", ["Mars"], tip="Roman god of war")

        self.assertEqual(question.tip_text(), "Roman god of war")

    def test_tip_text_masks_answer_words(self):
        question = Question("Who wrote Hamlet?", ["William Shakespeare"])

        self.assertEqual(question.tip_text(), "W****** S**********")

    def test_normalize_answer(self):
        self.assertEqual(normalize_answer("  Hello World "), "hello world")
        self.assertEqual(normalize_answer(None), "")


class TestUserRecord(unittest.TestCase):
    """Test cases for player records."""

    def test_ratio_without_answers_is_zero(self):
        self.assertEqual(UserRecord(name="bob").ratio, 0.0)

    def test_ratio_is_rounded_percentage(self):
        record = UserRecord(name="bob", answers=3, good_answers=1)

        self.assertEqual(record.ratio, 33.33)

    def test_from_dict_repairs_inconsistent_counters(self):
        record = UserRecord.from_dict({"name": "bob", "answers": 1, "good_answers": 4, "points": 4})

        self.assertEqual(record.answers, 4)
        self.assertLessEqual(record.good_answers, record.answers)

    def test_to_dict_from_dict_keeps_counters(self):
        record = UserRecord(name="bob", channel="1001", points=3, answers=5, good_answers=3,
                            quizz_started=2, quizz_stopped=1)

        self.assertEqual(UserRecord.from_dict(record.to_dict()), record)


class TestGameSettings(unittest.TestCase):

    def test_defaults(self):
        settings = GameSettings()

        self.assertEqual(settings.question_duration, 25000)
        self.assertEqual(settings.time_between_questions, 15000)
        self.assertEqual(settings.time_before_tip, 10000)
        self.assertEqual(settings.continuous_no_answer_limit, 8)
        self.assertTrue(settings.random_order)


if __name__ == '__main__':
    unittest.main()
