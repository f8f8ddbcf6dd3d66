"""
Configuration manager for trivia bot game settings and parameters.
"""
import logging
import math
import os
from typing import Optional, Dict, Any, List
from pathlib import Path

from .models import GameSettings


class ConfigManager:
    """Manages bot configuration settings and game timing parameters."""

    # Default configuration values (milliseconds)
    DEFAULT_QUESTION_DURATION = 25000
    DEFAULT_TIME_BETWEEN_QUESTIONS = 15000
    DEFAULT_TIME_BEFORE_TIP = 10000
    DEFAULT_CONTINUOUS_NO_ANSWER_LIMIT = 8
    DEFAULT_RANDOM_ORDER = True
    DEFAULT_COMMAND_PREFIX = "!"
    DEFAULT_LOCALE = "en"
    DEFAULT_QUESTION_FILES = ["./questions/"]
    DEFAULT_USERS_FILE = "./data/users.json"
    PLACEHOLDER_TOKEN = "YOUR_DISCORD_BOT_TOKEN_HERE"

    # Validation limits
    MIN_QUESTION_DURATION = 10000
    MIN_NO_ANSWER_LIMIT = 1

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._settings = GameSettings(
            question_duration=self.DEFAULT_QUESTION_DURATION,
            time_between_questions=self.DEFAULT_TIME_BETWEEN_QUESTIONS,
            time_before_tip=self.DEFAULT_TIME_BEFORE_TIP,
            continuous_no_answer_limit=self.DEFAULT_CONTINUOUS_NO_ANSWER_LIMIT,
            random_order=self.DEFAULT_RANDOM_ORDER
        )
        self._command_prefix = self.DEFAULT_COMMAND_PREFIX
        self._locale = self.DEFAULT_LOCALE
        self._question_files: List[str] = list(self.DEFAULT_QUESTION_FILES)
        self._users_file = self.DEFAULT_USERS_FILE
        self._channels: List[str] = []
        self._auth_secret: Optional[str] = None

    def apply_config(self, config: Dict[str, Any]) -> List[str]:
        """
        Apply a parsed config.json document.

        Invalid values are logged and skipped so the defaults stay in place.

        Args:
            config: Parsed configuration dictionary

        Returns:
            List of user-friendly error messages for rejected values
        """
        errors = []
        bot_config = config.get('bot', {})
        game_config = config.get('game', {})

        if bot_config.get('command_prefix'):
            self._command_prefix = str(bot_config['command_prefix'])
        self._channels = [str(channel) for channel in bot_config.get('channels', [])]
        # Environment variable takes precedence over the config file
        token = os.getenv('DISCORD_BOT_TOKEN') or bot_config.get('token')
        if token and token != self.PLACEHOLDER_TOKEN:
            self._auth_secret = token

        # Duration first: the tip lead is clamped against it
        setters = [
            ('question_duration', self.set_question_duration),
            ('time_between_questions', self.set_time_between_questions),
            ('time_before_tip', self.set_time_before_tip),
            ('continuous_no_answer_limit', self.set_continuous_no_answer_limit),
            ('random_order', self.set_random_order),
        ]
        for key, setter in setters:
            if key in game_config:
                result = setter(game_config[key])
                if not result['success']:
                    errors.append(result['user_message'])

        question_files = config.get('questions', {}).get('files')
        if question_files:
            self._question_files = [str(path) for path in question_files]

        users_file = config.get('storage', {}).get('users_file')
        if users_file:
            self._users_file = str(users_file)

        locale = config.get('locale', {}).get('default')
        if locale:
            self._locale = str(locale)

        self.logger.info("Configuration applied: %s", self.get_settings_summary().replace("\n", " | "))
        return errors

    def get_game_settings(self) -> GameSettings:
        """
        Get current game settings.

        Returns:
            Fresh GameSettings copy with the current configuration
        """
        return GameSettings(
            question_duration=self._settings.question_duration,
            time_between_questions=self._settings.time_between_questions,
            time_before_tip=self._settings.time_before_tip,
            continuous_no_answer_limit=self._settings.continuous_no_answer_limit,
            random_order=self._settings.random_order
        )

    def set_question_duration(self, duration: int) -> Dict[str, any]:
        """
        Set the total answer window for each question.

        Values below MIN_QUESTION_DURATION are clamped up to it. The tip lead
        is re-clamped against the new duration. Float milliseconds are
        truncated to an integer.

        Args:
            duration: Duration in milliseconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        milliseconds = self._coerce_milliseconds(duration)
        if milliseconds is None:
            error_msg = f"Question duration must be a number of milliseconds, got {type(duration).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid question duration: expected milliseconds, got {type(duration).__name__}"
            }

        if milliseconds < self.MIN_QUESTION_DURATION:
            self.logger.warning(
                f"Question duration {milliseconds}ms below minimum, clamped to {self.MIN_QUESTION_DURATION}ms"
            )
            milliseconds = self.MIN_QUESTION_DURATION

        self._settings.question_duration = milliseconds
        self._settings.time_before_tip = self._clamp_tip(self._settings.time_before_tip)
        self.logger.info(f"Question duration set to {milliseconds}ms")
        return {
            'success': True,
            'message': f"Question duration set to {milliseconds}ms",
            'user_message': f"✅ Questions last {milliseconds // 1000} seconds"
        }

    def set_time_between_questions(self, delay: int) -> Dict[str, any]:
        """
        Set the pause before each question is asked.

        Zero falls back to DEFAULT_TIME_BETWEEN_QUESTIONS. Float milliseconds
        are truncated to an integer.

        Args:
            delay: Delay in milliseconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        milliseconds = self._coerce_milliseconds(delay)
        if milliseconds is None or milliseconds < 0:
            error_msg = f"Time between questions must be a non-negative number, got {delay!r}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Invalid delay between questions: expected a positive number of milliseconds"
            }

        if milliseconds == 0:
            milliseconds = self.DEFAULT_TIME_BETWEEN_QUESTIONS

        self._settings.time_between_questions = milliseconds
        self.logger.info(f"Time between questions set to {milliseconds}ms")
        return {
            'success': True,
            'message': f"Time between questions set to {milliseconds}ms",
            'user_message': f"✅ Next question comes {milliseconds // 1000} seconds after the previous one"
        }

    def set_time_before_tip(self, lead: int) -> Dict[str, any]:
        """
        Set how long before the end of a round the tip is revealed.

        A lead longer than the question duration is clamped to half of it.
        Zero falls back to DEFAULT_TIME_BEFORE_TIP, so a configured bot always
        reveals a tip. Float milliseconds are truncated to an integer.

        Args:
            lead: Tip lead time in milliseconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        milliseconds = self._coerce_milliseconds(lead)
        if milliseconds is None or milliseconds < 0:
            error_msg = f"Time before tip must be a non-negative number, got {lead!r}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Invalid tip delay: expected a positive number of milliseconds"
            }

        if milliseconds == 0:
            milliseconds = self.DEFAULT_TIME_BEFORE_TIP

        clamped = self._clamp_tip(milliseconds)
        if clamped != milliseconds:
            self.logger.warning(f"Time before tip {milliseconds}ms exceeds question duration, clamped to {clamped}ms")

        self._settings.time_before_tip = clamped
        return {
            'success': True,
            'message': f"Time before tip set to {clamped}ms",
            'user_message': f"✅ Tips appear {clamped // 1000} seconds before the end of a question"
        }

    def set_continuous_no_answer_limit(self, limit: int) -> Dict[str, any]:
        """
        Set how many unanswered questions in a row stop the game.

        Args:
            limit: Number of consecutive unanswered rounds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(limit, int) or isinstance(limit, bool) or limit < self.MIN_NO_ANSWER_LIMIT:
            error_msg = f"No-answer limit must be an integer >= {self.MIN_NO_ANSWER_LIMIT}, got {limit!r}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid inactivity limit: minimum is {self.MIN_NO_ANSWER_LIMIT}"
            }

        self._settings.continuous_no_answer_limit = limit
        self.logger.info(f"Continuous no-answer limit set to {limit}")
        return {
            'success': True,
            'message': f"Continuous no-answer limit set to {limit}",
            'user_message': f"✅ The game stops after {limit} unanswered questions in a row"
        }

    def set_random_order(self, random_order: bool) -> Dict[str, any]:
        """
        Set whether questions are drawn randomly or in file order.

        Args:
            random_order: True for random order, False for sequential

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(random_order, bool):
            error_msg = f"Random order must be a boolean, got {type(random_order).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected true/false, got {type(random_order).__name__}"
            }

        self._settings.random_order = random_order
        order_type = "random" if random_order else "sequential"
        self.logger.info(f"Question order set to {order_type}")
        return {
            'success': True,
            'message': f"Question order set to {order_type}",
            'user_message': f"✅ Questions will be presented in {order_type} order"
        }

    @staticmethod
    def _coerce_milliseconds(value: Any) -> Optional[int]:
        if isinstance(value, bool):
            return None
        if isinstance(value, float):
            return int(value) if math.isfinite(value) else None
        if isinstance(value, int):
            return value
        return None

    def _clamp_tip(self, lead: int) -> int:
        duration = self._settings.question_duration
        if lead > duration:
            return duration // 2
        return lead

    @property
    def command_prefix(self) -> str:
        return self._command_prefix

    @property
    def locale(self) -> str:
        return self._locale

    @property
    def question_files(self) -> List[str]:
        return list(self._question_files)

    @property
    def users_file(self) -> Path:
        return Path(self._users_file)

    @property
    def channels(self) -> List[str]:
        return list(self._channels)

    @property
    def auth_secret(self) -> Optional[str]:
        return self._auth_secret

    def validate_settings(self) -> Dict[str, Any]:
        """
        Validate current settings and return validation results.

        Returns:
            Dictionary with validation results and any issues found
        """
        validation_result = {
            "valid": True,
            "issues": []
        }
        settings = self._settings

        if settings.question_duration < self.MIN_QUESTION_DURATION:
            validation_result["valid"] = False
            validation_result["issues"].append(
                f"Invalid question duration: {settings.question_duration}"
            )

        if settings.time_before_tip > settings.question_duration:
            validation_result["valid"] = False
            validation_result["issues"].append(
                f"Invalid time before tip: {settings.time_before_tip}"
            )

        if settings.continuous_no_answer_limit < self.MIN_NO_ANSWER_LIMIT:
            validation_result["valid"] = False
            validation_result["issues"].append(
                f"Invalid no-answer limit: {settings.continuous_no_answer_limit}"
            )

        if not self._question_files:
            validation_result["valid"] = False
            validation_result["issues"].append("No question files configured")

        return validation_result

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        settings = self._settings
        order_str = "random" if settings.random_order else "sequential"
        return (
            f"Game Settings:\n"
            f"• Question duration: {settings.question_duration}ms\n"
            f"• Time between questions: {settings.time_between_questions}ms\n"
            f"• Tip before end: {settings.time_before_tip}ms\n"
            f"• Stop after: {settings.continuous_no_answer_limit} unanswered\n"
            f"• Order: {order_str}\n"
            f"• Question files: {', '.join(self._question_files)}"
        )
