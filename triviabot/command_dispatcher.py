"""
Command dispatcher for the trivia bot.
Turns chat lines into game session, scoreboard and help operations.
"""
import logging
from typing import Callable, Dict, List, Optional

from .errors import PermissionDenied
from .game_session import GameSession
from .transport import ChatTransport
from .translator import Translator
from .user_registry import UserRegistry


class CommandDispatcher:
    """
    Routes inbound chat messages.

    Lines starting with the command prefix are commands; anything else is
    offered to the game session as an answer while a question is active.
    Unknown commands are ignored. Operator-only commands fail silently for
    everybody else.
    """

    OPERATOR_COMMANDS = ('stop', 'ask', 'lang', 'say')
    HELP_TOPICS = ('start', 'stop', 'ask', 'lang', 'top', 'stats', 'say')

    def __init__(
        self,
        session: GameSession,
        registry: UserRegistry,
        translator: Translator,
        transport: ChatTransport,
        command_prefix: str = "!"
    ):
        self.logger = logging.getLogger(__name__)
        self.session = session
        self.registry = registry
        self.translator = translator
        self.transport = transport
        self.command_prefix = command_prefix
        self.translator.defaults['prefix'] = command_prefix

        self._handlers: Dict[str, Callable[[Optional[str], str, List[str]], None]] = {
            'start': self.start_command,
            'stop': self.stop_command,
            'ask': self.ask_command,
            'lang': self.lang_command,
            'stats': self.stats_command,
            'top': self.top_command,
            'say': self.say_command,
            'help': self.help_command,
        }

    def handle_message(self, user: str, channel: str, text: str) -> None:
        """
        Entry point for every chat line the transport receives.

        Args:
            user: Author name
            channel: Channel the line was posted in
            text: Raw message text
        """
        if user == self.transport.bot_name:
            return

        if len(text) > 1 and text.startswith(self.command_prefix):
            self.handle_command(user, channel, text)
        elif self.session.is_question_active:
            self.session.handle_answer(user, channel, text)

    def handle_command(self, user: Optional[str], channel: str, text: str) -> bool:
        """
        Tokenize and run a command line.

        Args:
            user: Invoker, None for internally issued commands
            channel: Channel the command came from
            text: Line including the command prefix

        Returns:
            True if the command was recognized and allowed
        """
        tokens = text[len(self.command_prefix):].split()
        if not tokens:
            return False
        command, args = tokens[0].lower(), tokens[1:]

        handler = self._handlers.get(command)
        if handler is None:
            self.logger.debug(f"Ignoring unknown command {command!r} from {user}")
            return False

        try:
            if command in self.OPERATOR_COMMANDS:
                self._require_operator(user, channel, command)
            handler(user, channel, args)
        except PermissionDenied as e:
            self.logger.debug(f"Permission denied: {e}")
            return False

        self.logger.info(
            f"Command {command} handled for {user} in {channel}",
            extra={'event_type': 'command_handled', 'command': command, 'channel_id': channel}
        )
        return True

    def _require_operator(self, user: Optional[str], channel: str, command: str) -> None:
        if user is not None and not self.transport.is_operator(user, channel):
            raise PermissionDenied(user, channel, command)

    def start_command(self, user: Optional[str], channel: str, args: List[str]) -> None:
        self.session.start(user, channel)

    def stop_command(self, user: Optional[str], channel: str, args: List[str]) -> None:
        self.session.stop(user, channel)

    def ask_command(self, user: Optional[str], channel: str, args: List[str]) -> None:
        """Force the question at 1-based position args[0]."""
        question = None
        if args:
            try:
                index = int(args[0])
            except ValueError:
                index = 0
            if 1 <= index <= len(self.session.questions):
                question = self.session.questions[index - 1]
        self.session.force_question(user, channel, question)

    def lang_command(self, user: Optional[str], channel: str, args: List[str]) -> None:
        if args and self.translator.set_locale(args[0]):
            self.transport.send(channel, self.translator.translate('langSet'), ChatTransport.LIGHT_GREEN)
            return

        for line in self.translator.translate('help_lang').split('\n'):
            self.transport.send(channel, line, ChatTransport.LIGHT_GRAY)
        self.transport.send(channel, ", ".join(self.translator.available_locales()), ChatTransport.WHITE)

    def stats_command(self, user: Optional[str], channel: str, args: List[str]) -> None:
        if user is None:
            return

        if args:
            target = self.registry.get(args[0])
            if target is None:
                self.transport.send_private(user, self.translator.translate('userDoesNotExists', name=args[0]))
                return
        else:
            target = self.registry.get_or_create(user, channel)

        self.transport.send_private(
            user,
            self.translator.translate(
                'userStats',
                name=target.name,
                points=target.points,
                answers=target.answers,
                good_answers=target.good_answers,
                ratio=target.ratio,
                quizz_started=target.quizz_started,
                quizz_stopped=target.quizz_stopped
            )
        )

    def top_command(self, user: Optional[str], channel: str, args: List[str]) -> None:
        """Post the ranking to the channel for operators, privately otherwise."""
        limit = None
        if args:
            try:
                limit = int(args[0])
            except ValueError:
                limit = None

        ranking = self.registry.ranking(limit)
        if ranking:
            text = "\n".join(
                self.translator.translate(
                    'topUser', place=entry.place, name=entry.name, points=entry.points, ratio=entry.ratio
                )
                for entry in ranking
            )
        else:
            text = self.translator.translate('topEmpty')

        if user is not None and self.transport.is_operator(user, channel):
            self.transport.send(channel, text)
        elif user is not None:
            self.transport.send_private(user, text)
        else:
            self.logger.debug("Ranking requested without an invoker, nobody to reply to")

    def say_command(self, user: Optional[str], channel: str, args: List[str]) -> None:
        if args:
            self.transport.send(channel, " ".join(args))

    def help_command(self, user: Optional[str], channel: str, args: List[str]) -> None:
        if user is None:
            return

        topic = args[0].lower() if args else None
        if topic not in self.HELP_TOPICS:
            self.transport.send_private(user, self.translator.translate('help'))
            return

        self.transport.send_private(user, f"========== {self.command_prefix}{topic} ==========")
        if topic in self.OPERATOR_COMMANDS:
            self.transport.send_private(user, self.translator.translate('requiresToBeOp'))
        self.transport.send_private(user, self.translator.translate(f"help_{topic}"))
        if topic == 'lang':
            self.transport.send_private(user, ", ".join(self.translator.available_locales()))

    def standby_message(self, channels: List[str]) -> None:
        """Announce the bot on every channel it joined."""
        for channel in channels:
            self.transport.send(channel, self.translator.translate('standByMessage'), ChatTransport.LIGHT_RED)
            self.transport.send(
                channel,
                self.translator.translate('questionInQuizz', count=len(self.session.questions)),
                ChatTransport.GRAY
            )
            self.transport.send(channel, self.translator.translate('startCommandMessage'), ChatTransport.GRAY)
