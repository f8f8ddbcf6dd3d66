"""
Game session state machine for the trivia bot.
Drives the question cycle, round timers, scoring and inactivity auto-stop.
"""
import logging
import time
from enum import Enum
from typing import Callable, Dict, List, Optional, Any

from .errors import NoQuestionAvailable, PermissionDenied
from .models import GameSettings, Question
from .quiz_engine import QuestionSelector, RoundTimer, TimerLifecycleLogger, create_selector
from .transport import ChatTransport
from .translator import Translator
from .user_registry import UserRegistry


class SessionState(Enum):
    """Enumeration of possible game session states."""
    IDLE = "idle"
    AWAITING_NEXT = "awaiting_next"
    QUESTION_ACTIVE = "question_active"
    AUTO_STOPPED = "auto_stopped"


class GameSession:
    """
    Runs the trivia game for the bot's lifetime.

    All transitions are synchronous and run on the event loop, so an answer
    and a timer can never interleave inside one transition. Every timer is
    armed with the session generation current at arming time; clearing a
    round bumps the generation, which turns any timer still in flight into
    a no-op.
    """

    NEXT_QUESTION_TIMER = "next_question"
    TIP_TIMER = "tip"
    RESOLUTION_TIMER = "resolution"

    def __init__(
        self,
        questions: List[Question],
        settings: GameSettings,
        registry: UserRegistry,
        translator: Translator,
        transport: ChatTransport,
        selector: Optional[QuestionSelector] = None
    ):
        """
        Initialize the game session.

        Args:
            questions: Ordered question pool
            settings: Clamped timing and inactivity settings
            registry: Scoreboard shared with the command dispatcher
            translator: Message catalogs for outgoing text
            transport: Chat network used for every announcement
            selector: Pool selection policy, derived from settings if None
        """
        self.logger = logging.getLogger(__name__)
        self.questions = list(questions)
        self.settings = settings
        self.registry = registry
        self.translator = translator
        self.transport = transport
        self.selector = selector or create_selector(settings.random_order)

        self.running = False
        self.channel: Optional[str] = None
        self.current_question: Optional[Question] = None
        self.continuous_no_answer_count = 0

        self._timers: Dict[str, RoundTimer] = {}
        self._generation = 0
        self._auto_stopped = False

        self.logger.info(
            f"GameSession initialized with {len(self.questions)} questions, "
            f"{self.selector.name} selection"
        )

    @property
    def state(self) -> SessionState:
        if not self.running:
            return SessionState.AUTO_STOPPED if self._auto_stopped else SessionState.IDLE
        if self.current_question is not None:
            return SessionState.QUESTION_ACTIVE
        return SessionState.AWAITING_NEXT

    @property
    def is_question_active(self) -> bool:
        return self.state is SessionState.QUESTION_ACTIVE

    def start(self, requester: Optional[str], channel: str, ask_first_question: bool = True) -> bool:
        """
        Start a game in channel.

        Does nothing if a game is already running.

        Args:
            requester: Player asking for the start, None for an internal start
            channel: Channel the game runs in
            ask_first_question: False when the caller supplies the first
                question itself (forced question)

        Returns:
            True if the game was started
        """
        if self.running:
            self.logger.debug(f"Start ignored for channel {channel}: game already running in {self.channel}")
            return False

        previous_state = self.state
        self.running = True
        self.channel = channel
        self.continuous_no_answer_count = 0
        self._auto_stopped = False
        self.selector.reset()
        self._log_transition(previous_state, f"start requested by {requester or 'system'}")

        if requester is not None:
            self.registry.record_started(self.registry.get_or_create(requester, channel))
            self._say(channel, 'requestedStartQuizz', ChatTransport.LIGHT_RED, name=requester)
        self._say(channel, 'startingQuizz', ChatTransport.LIGHT_RED)
        if requester is not None:
            self.registry.persist()

        if ask_first_question:
            self._next_question_cycle()
        return True

    def stop(self, requester: Optional[str], channel: str) -> bool:
        """
        Stop the running game.

        Args:
            requester: Player asking for the stop, None for an automatic stop
            channel: Channel the request came from

        Returns:
            True if a running game was stopped

        Raises:
            PermissionDenied: If requester is not an operator of the game channel
        """
        if not self.running:
            return False
        self._require_operator(requester, self.channel or channel, "stop")

        previous_state = self.state
        game_channel = self.channel or channel
        inactive = self.continuous_no_answer_count >= self.settings.continuous_no_answer_limit

        self._clear_round()
        self.running = False
        self._auto_stopped = requester is None and inactive
        self._log_transition(
            previous_state,
            "inactivity limit reached" if inactive else f"stop requested by {requester or 'system'}"
        )

        if requester is not None:
            self.registry.record_stopped(self.registry.get_or_create(requester, channel))
            self._say(game_channel, 'requestedStopQuizz', ChatTransport.LIGHT_RED, name=requester)
        if inactive:
            self._say(game_channel, 'stoppingQuizzForInactivity', ChatTransport.LIGHT_RED)
        else:
            self._say(game_channel, 'stoppingQuizz', ChatTransport.LIGHT_RED)

        self.registry.persist()
        return True

    def handle_answer(self, user_name: str, channel: str, text: str) -> bool:
        """
        Evaluate a free-text answer against the active question.

        Ignored unless a question is active in channel.

        Args:
            user_name: Player who typed the text
            channel: Channel the text was typed in
            text: Candidate answer

        Returns:
            True if the answer was correct and the round resolved
        """
        if not self.is_question_active or channel != self.channel:
            return False

        question = self.current_question
        user = self.registry.get_or_create(user_name, channel)

        if not question.matches(text):
            self.registry.record_incorrect(user)
            self.registry.persist()
            return False

        previous_state = self.state
        self.registry.record_correct(user)
        self._say(channel, 'goodAnswer', name=user.name, points=user.points)
        self._say(channel, 'answerWas', ChatTransport.LIGHT_GREEN, answer=question.answer)
        self.continuous_no_answer_count = 0

        self._clear_round()
        self._log_transition(previous_state, f"answered by {user.name}")
        self.registry.persist()
        self._next_question_cycle()
        return True

    def force_question(self, requester: Optional[str], channel: str, question: Optional[Question]) -> bool:
        """
        Ask a specific question right away, starting the game if needed.

        Args:
            requester: Operator forcing the question, None for internal use
            channel: Channel the request came from
            question: Question to ask, None when the requested one does not exist

        Returns:
            True if the question was scheduled

        Raises:
            PermissionDenied: If requester is not an operator of the game channel,
                or of channel when no game is running
        """
        self._require_operator(requester, self.channel if self.running else channel, "ask")

        if question is None:
            self.logger.info(f"Forced question unavailable in channel {channel}")
            if self.running:
                self.stop(None, self.channel or channel)
            return False

        if not self.running:
            self.start(requester, channel, ask_first_question=False)

        self._clear_round()
        self._next_question_cycle(forced=question)
        return self.running

    def reload_questions(self, questions: List[Question]) -> None:
        """Replace the question pool and restart the selection policy."""
        self.questions = list(questions)
        self.selector.reset()
        self.logger.info(f"Question pool reloaded with {len(self.questions)} questions")

    def shutdown(self) -> None:
        """Cancel every timer without announcing anything, for process teardown."""
        self._clear_round()
        self.running = False
        self.registry.persist()
        self.logger.info("GameSession shut down")

    def status(self) -> Dict[str, Any]:
        """Snapshot of the session for diagnostics."""
        return {
            'state': self.state.value,
            'running': self.running,
            'channel': self.channel,
            'current_question': self.current_question.prompt if self.current_question else None,
            'continuous_no_answer_count': self.continuous_no_answer_count,
            'question_count': len(self.questions),
            'pending_timers': sorted(name for name, timer in self._timers.items() if timer.is_pending),
            'generation': self._generation
        }

    def _next_question_cycle(self, forced: Optional[Question] = None) -> None:
        """Pick the next question and schedule it, or stop the game."""
        channel = self.channel
        limit = self.settings.continuous_no_answer_limit

        if self.continuous_no_answer_count >= limit:
            self.logger.info(
                f"Inactivity limit reached in channel {channel}: "
                f"{self.continuous_no_answer_count} unanswered questions"
            )
            self.stop(None, channel)
            return

        question = forced
        if question is None:
            try:
                question = self.selector.next_question(self.questions)
            except NoQuestionAvailable as e:
                self.logger.info(f"No question available in channel {channel}: {e}")
                self.stop(None, channel)
                return

        delay = self.settings.time_between_questions
        self._say(channel, 'nextQuestionIn', ChatTransport.ORANGE, seconds=_seconds(delay))
        generation = self._generation
        self._arm(self.NEXT_QUESTION_TIMER, delay, lambda: self._ask_question(question, generation))

    def _ask_question(self, question: Question, generation: int) -> None:
        if not self._is_current(self.NEXT_QUESTION_TIMER, generation):
            return

        previous_state = self.state
        self._timers.pop(self.NEXT_QUESTION_TIMER, None)
        self.current_question = question
        self._log_transition(previous_state, "question asked")
        self._say(self.channel, 'askQuestion', prompt=question.prompt)

        duration = self.settings.question_duration
        lead = self.settings.time_before_tip
        if lead > 0:
            self._arm(self.TIP_TIMER, duration - lead, lambda: self._reveal_tip(generation))
        self._arm(self.RESOLUTION_TIMER, duration, lambda: self._resolve_unanswered(generation))

    def _reveal_tip(self, generation: int) -> None:
        if not self._is_current(self.TIP_TIMER, generation) or self.current_question is None:
            return
        self._timers.pop(self.TIP_TIMER, None)
        self._say(
            self.channel, 'questionEndingIn', ChatTransport.LIGHT_RED,
            seconds=_seconds(self.settings.time_before_tip)
        )
        self._say(self.channel, 'tip', tip=self.current_question.tip_text())

    def _resolve_unanswered(self, generation: int) -> None:
        if not self._is_current(self.RESOLUTION_TIMER, generation) or self.current_question is None:
            return

        previous_state = self.state
        question = self.current_question
        self._say(self.channel, 'noGoodAnswer', ChatTransport.LIGHT_RED)
        self._say(self.channel, 'answerWas', ChatTransport.LIGHT_GREEN, answer=question.answer)
        self.continuous_no_answer_count += 1

        self._clear_round()
        self._log_transition(previous_state, "no answer")
        self.registry.persist()
        self._next_question_cycle()

    def _require_operator(self, requester: Optional[str], game_channel: str, action: str) -> None:
        """Operator rights are checked in the channel the game runs in."""
        if requester is not None and not self.transport.is_operator(requester, game_channel):
            raise PermissionDenied(requester, game_channel, action)

    def _arm(self, name: str, delay_ms: int, callback: Callable[[], None]) -> None:
        existing = self._timers.pop(name, None)
        if existing is not None:
            existing.cancel()
        timer = RoundTimer(self.channel, name, self._generation)
        self._timers[name] = timer
        timer.start(delay_ms, callback, on_error=self._abort_after_timer_error)

    def _abort_after_timer_error(self, error: Exception) -> None:
        """A failed timer callback may leave no timer armed, so end the game."""
        if not self.running:
            return
        self.logger.error(f"Stopping game in channel {self.channel} after timer failure: {error}")
        self.stop(None, self.channel)

    def _is_current(self, timer_name: str, generation: int) -> bool:
        if self.running and generation == self._generation:
            return True
        TimerLifecycleLogger.log_stale_timer(self.channel, timer_name, generation, self._generation)
        return False

    def _clear_round(self) -> None:
        """Cancel every timer and drop the active question."""
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self.current_question = None
        self._generation += 1

    def _say(self, channel: str, key: str, color: Optional[str] = None, **kwargs) -> None:
        self.transport.send(channel, self.translator.translate(key, **kwargs), color)

    def _log_transition(self, previous_state: SessionState, reason: str) -> None:
        TimerLifecycleLogger.log_timer_state_transition(
            self.channel, previous_state.value, self.state.value, reason
        )
        self.logger.debug(
            f"Session status: {self.status()}",
            extra={'event_type': 'session_status', 'channel_id': self.channel, 'timestamp': time.time()}
        )


def _seconds(milliseconds: int) -> str:
    return f"{milliseconds / 1000:g}"
