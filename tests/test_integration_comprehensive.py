"""
Integration tests wiring real components together: bank files on disk,
the scoreboard file, the translator, the dispatcher and the game session.
"""
import unittest
import json
import logging
import shutil
import tempfile
from pathlib import Path

from triviabot.command_dispatcher import CommandDispatcher
from triviabot.config_manager import ConfigManager
from triviabot.data_manager import DataManager
from triviabot.game_session import GameSession, SessionState
from triviabot.storage import UserStore
from triviabot.translator import Translator
from triviabot.user_registry import UserRegistry
from tests.test_fixtures import FakeTransport, TestFixtures, AsyncTestHelpers, async_test

CHANNEL = TestFixtures.CHANNEL
OPERATOR = TestFixtures.OPERATOR
PLAYER = TestFixtures.PLAYER


class TestFullGameFlow(unittest.TestCase):
    """End-to-end game flows through the dispatcher."""

    def setUp(self):
        logging.disable(logging.CRITICAL)
        self.temp_dir = tempfile.mkdtemp()
        self.bank_files = TestFixtures.create_temp_bank_files(self.temp_dir)
        self.users_file = Path(self.temp_dir) / "data" / "users.json"
        self.transport = FakeTransport(operators=[OPERATOR])

    def tearDown(self):
        shutil.rmtree(self.temp_dir)
        logging.disable(logging.NOTSET)

    def build(self, question_files, **settings):
        """Build the component graph the way the bot does."""
        config_manager = ConfigManager()
        config_manager.apply_config({"questions": {"files": question_files}})
        self.data_manager = DataManager(config_manager.question_files)
        registry = UserRegistry(UserStore(self.users_file))
        translator = Translator(default_locale=config_manager.locale)
        session = GameSession(
            self.data_manager.load_questions(),
            TestFixtures.create_fast_settings(**settings),
            registry,
            translator,
            self.transport
        )
        dispatcher = CommandDispatcher(session, registry, translator, self.transport)
        return session, dispatcher

    @async_test
    async def test_text_bank_game_with_persisted_scores(self):
        session, dispatcher = self.build([str(self.bank_files["text"])])

        dispatcher.handle_message(PLAYER, CHANNEL, "!start")
        self.assertTrue(await AsyncTestHelpers.wait_for(lambda: session.is_question_active))
        self.assertEqual(session.current_question.prompt, "2+2?")

        dispatcher.handle_message(OPERATOR, CHANNEL, "three")
        dispatcher.handle_message(PLAYER, CHANNEL, " 4 ")
        self.assertTrue(await AsyncTestHelpers.wait_for(
            lambda: session.current_question is not None and session.current_question.prompt == "What is 3*3?"
        ))
        dispatcher.handle_message(OPERATOR, CHANNEL, "!stop")
        self.assertEqual(session.state, SessionState.IDLE)

        # A fresh registry sees what the game wrote
        reloaded = UserRegistry(UserStore(self.users_file))
        bob = reloaded.get(PLAYER)
        alice = reloaded.get(OPERATOR)
        self.assertEqual((bob.points, bob.good_answers, bob.answers, bob.quizz_started), (1, 1, 1, 1))
        self.assertEqual((alice.points, alice.answers, alice.quizz_stopped), (0, 1, 1))

    @async_test
    async def test_pool_exhaustion_with_text_bank(self):
        session, dispatcher = self.build([str(self.bank_files["text"])])

        dispatcher.handle_message(PLAYER, CHANNEL, "!start")

        self.assertTrue(await AsyncTestHelpers.wait_for(lambda: not session.running))
        self.assertEqual(session.continuous_no_answer_count, 2)
        self.assertEqual(self.transport.texts(CHANNEL)[-1], "The game is over.")

    @async_test
    async def test_inactivity_stop_then_restart(self):
        session, dispatcher = self.build([self.temp_dir], continuous_no_answer_limit=1)

        dispatcher.handle_message(PLAYER, CHANNEL, "!start")
        self.assertTrue(await AsyncTestHelpers.wait_for(lambda: not session.running))
        self.assertEqual(session.state, SessionState.AUTO_STOPPED)

        dispatcher.handle_message(PLAYER, CHANNEL, "!start")
        self.assertTrue(session.running)
        self.assertEqual(session.continuous_no_answer_count, 0)
        self.assertTrue(await AsyncTestHelpers.wait_for(lambda: session.is_question_active))
        self.assertEqual(session.current_question.prompt, "What is the capital of Japan?")
        session.shutdown()

        reloaded = UserRegistry(UserStore(self.users_file))
        self.assertEqual(reloaded.get(PLAYER).quizz_started, 2)

    @async_test
    async def test_french_locale_game(self):
        session, dispatcher = self.build([str(self.bank_files["valid"])])
        dispatcher.handle_message(OPERATOR, CHANNEL, "!lang fr")
        langset = self.transport.texts(CHANNEL)[-1]

        dispatcher.handle_message(OPERATOR, CHANNEL, "!ask 3")
        self.assertTrue(await AsyncTestHelpers.wait_for(lambda: session.is_question_active))
        dispatcher.handle_message(PLAYER, CHANNEL, "pacific")

        self.assertEqual(session.translator.locale, "fr")
        self.assertNotEqual(langset, "Language set to English.")
        self.assertIn(session.translator.translate('goodAnswer', name=PLAYER, points=1), self.transport.texts())
        session.shutdown()

    @async_test
    async def test_reload_questions_keeps_round_in_flight(self):
        session, dispatcher = self.build([str(self.bank_files["valid"])])
        dispatcher.handle_message(PLAYER, CHANNEL, "!start")

        with open(self.bank_files["valid"], 'w', encoding='utf-8') as f:
            json.dump({"questions": [{"question": "2+2?", "answer": "4"}]}, f)
        session.reload_questions(self.data_manager.load_questions())

        self.assertEqual([question.prompt for question in session.questions], ["2+2?"])
        self.assertTrue(await AsyncTestHelpers.wait_for(lambda: session.is_question_active))
        self.assertEqual(session.current_question.prompt, "What is the capital of Japan?")

        dispatcher.handle_message(PLAYER, CHANNEL, "tokyo")
        self.assertTrue(await AsyncTestHelpers.wait_for(lambda: session.is_question_active))
        self.assertEqual(session.current_question.prompt, "2+2?")
        session.shutdown()

    def test_standby_counts_loaded_questions(self):
        session, dispatcher = self.build([self.temp_dir])

        dispatcher.standby_message([CHANNEL])

        self.assertIn("5 questions are loaded.", self.transport.texts(CHANNEL))


if __name__ == '__main__':
    unittest.main()
