"""
Quiz engine core logic for the trivia bot.
Handles question selection policies and round timers.
"""
import random
import asyncio
import logging
import time
from typing import Callable, List, Optional, Sequence

from .errors import NoQuestionAvailable
from .models import Question

# Set up logger for timer operations
logger = logging.getLogger(__name__)


class TimerLifecycleLogger:
    """Structured logging for timer lifecycle events."""

    @staticmethod
    def log_timer_created(channel_id: str, timer_name: str, delay_ms: int, generation: int) -> None:
        """Log timer creation with structured data."""
        logger.debug(
            f"Timer lifecycle: CREATED - Channel {channel_id}, Timer {timer_name}, Delay {delay_ms}ms, Generation {generation}",
            extra={
                'event_type': 'timer_created',
                'channel_id': channel_id,
                'timer_name': timer_name,
                'delay_ms': delay_ms,
                'generation': generation,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_fired(channel_id: str, timer_name: str, generation: int) -> None:
        """Log a timer reaching its deadline."""
        logger.debug(
            f"Timer lifecycle: FIRED - Channel {channel_id}, Timer {timer_name}, Generation {generation}",
            extra={
                'event_type': 'timer_fired',
                'channel_id': channel_id,
                'timer_name': timer_name,
                'generation': generation,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_completion(channel_id: str, timer_name: str, completion_type: str) -> None:
        """Log timer completion (natural expiry or cancellation)."""
        logger.debug(
            f"Timer lifecycle: COMPLETED - Channel {channel_id}, Timer {timer_name}, Type {completion_type}",
            extra={
                'event_type': 'timer_completed',
                'channel_id': channel_id,
                'timer_name': timer_name,
                'completion_type': completion_type,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_state_transition(channel_id: str, from_state: str, to_state: str, reason: str = None) -> None:
        """Log session state transitions driven by timers or commands."""
        logger.info(
            f"Timer lifecycle: STATE_TRANSITION - Channel {channel_id}, {from_state} -> {to_state}" +
            (f" ({reason})" if reason else ""),
            extra={
                'event_type': 'timer_state_transition',
                'channel_id': channel_id,
                'from_state': from_state,
                'to_state': to_state,
                'reason': reason,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_error(channel_id: str, error_type: str, error_message: str, operation: str) -> None:
        """Log timer-related errors with context."""
        logger.error(
            f"Timer lifecycle: ERROR - Channel {channel_id}, Operation {operation}, Type {error_type}: {error_message}",
            extra={
                'event_type': 'timer_error',
                'channel_id': channel_id,
                'error_type': error_type,
                'error_message': error_message,
                'operation': operation,
                'timestamp': time.time()
            },
            exc_info=True
        )

    @staticmethod
    def log_stale_timer(channel_id: str, timer_name: str, timer_generation: int, current_generation: int) -> None:
        """Log a timer that woke up after its round was superseded."""
        logger.warning(
            f"Timer lifecycle: STALE - Channel {channel_id}, Timer {timer_name}, "
            f"Generation {timer_generation} != {current_generation}",
            extra={
                'event_type': 'timer_stale',
                'channel_id': channel_id,
                'timer_name': timer_name,
                'timer_generation': timer_generation,
                'current_generation': current_generation,
                'timestamp': time.time()
            }
        )


class RoundTimer:
    """
    One-shot timer running as an asyncio task.

    The timer remembers the session generation it was armed for so the
    session can tell a stale firing from a current one.
    """

    def __init__(self, channel_id: str, name: str, generation: int):
        """Initialize the timer."""
        self._task: Optional[asyncio.Task] = None
        self._is_cancelled = False
        self._channel_id = channel_id
        self._name = name
        self._generation = generation

    def start(
        self,
        delay_ms: int,
        callback: Callable[[], None],
        on_error: Optional[Callable[[Exception], None]] = None
    ) -> None:
        """
        Schedule callback to run after delay_ms on the running event loop.

        Args:
            delay_ms: Delay in milliseconds
            callback: Synchronous function called once the delay elapses
            on_error: Called with the exception if callback raises
        """
        TimerLifecycleLogger.log_timer_created(self._channel_id, self._name, delay_ms, self._generation)
        self._task = asyncio.create_task(self._run(max(delay_ms, 0) / 1000, callback, on_error))

    async def _run(
        self,
        delay: float,
        callback: Callable[[], None],
        on_error: Optional[Callable[[Exception], None]]
    ) -> None:
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            TimerLifecycleLogger.log_timer_completion(self._channel_id, self._name, "asyncio_cancelled")
            raise

        if self._is_cancelled:
            TimerLifecycleLogger.log_timer_completion(self._channel_id, self._name, "cancelled")
            return

        TimerLifecycleLogger.log_timer_fired(self._channel_id, self._name, self._generation)
        try:
            callback()
        except Exception as e:
            TimerLifecycleLogger.log_timer_error(
                self._channel_id,
                "callback_error",
                str(e),
                f"{self._name}_callback"
            )
            if on_error is not None:
                try:
                    on_error(e)
                except Exception as handler_error:
                    TimerLifecycleLogger.log_timer_error(
                        self._channel_id,
                        "error_handler_failed",
                        str(handler_error),
                        f"{self._name}_on_error"
                    )
        TimerLifecycleLogger.log_timer_completion(self._channel_id, self._name, "natural_expiry")

    def cancel(self) -> None:
        """Cancel the timer. Safe to call more than once or from its own callback."""
        self._is_cancelled = True
        if self._task and not self._task.done() and self._task is not _current_task():
            self._task.cancel()

    @property
    def name(self) -> str:
        return self._name

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_cancelled(self) -> bool:
        return self._is_cancelled

    @property
    def is_pending(self) -> bool:
        """True while the timer has neither fired nor been cancelled."""
        return not self._is_cancelled and self._task is not None and not self._task.done()


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class QuestionSelector:
    """Picks the next question from the pool."""

    name = "base"

    def reset(self) -> None:
        """Forget previous picks, e.g. when a game starts or the pool changes."""
        raise NotImplementedError

    def next_question(self, pool: Sequence[Question]) -> Question:
        """
        Return the next question.

        Raises:
            NoQuestionAvailable: If every question has been asked
        """
        raise NotImplementedError


class SequentialSelector(QuestionSelector):
    """Walks the pool in file order."""

    name = "sequential"

    def __init__(self):
        self._cursor = 0

    def reset(self) -> None:
        self._cursor = 0

    def next_question(self, pool: Sequence[Question]) -> Question:
        if self._cursor >= len(pool):
            raise NoQuestionAvailable(f"All {len(pool)} questions have been asked")
        question = pool[self._cursor]
        self._cursor += 1
        return question


class RandomSelector(QuestionSelector):
    """Draws questions at random without repeating until the pool is used up."""

    name = "random"

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()
        self._remaining: Optional[List[int]] = None

    def reset(self) -> None:
        self._remaining = None

    def shuffle_indices(self, count: int) -> List[int]:
        """
        Shuffle pool positions randomly.

        Args:
            count: Pool size

        Returns:
            New list of positions in random order
        """
        indices = list(range(count))
        self._rng.shuffle(indices)
        return indices

    def next_question(self, pool: Sequence[Question]) -> Question:
        if self._remaining is None:
            self._remaining = self.shuffle_indices(len(pool))
        # Positions past the end can appear if the pool shrank without a reset
        while self._remaining and self._remaining[-1] >= len(pool):
            self._remaining.pop()
        if not self._remaining:
            raise NoQuestionAvailable(f"All {len(pool)} questions have been asked")
        return pool[self._remaining.pop()]


def create_selector(random_order: bool) -> QuestionSelector:
    """Build the selection policy matching the random_order setting."""
    return RandomSelector() if random_order else SequentialSelector()
