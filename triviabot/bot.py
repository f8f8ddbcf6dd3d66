import discord
from discord.ext import commands
import logging
import asyncio
import signal
from typing import Dict, Optional, Set

from .command_dispatcher import CommandDispatcher
from .config_manager import ConfigManager
from .data_manager import DataManager
from .game_session import GameSession
from .storage import UserStore
from .transport import ChatTransport
from .translator import Translator
from .user_registry import UserRegistry

logger = logging.getLogger(__name__)

# Embed colors for the transport styling tags
EMBED_COLORS = {
    ChatTransport.ORANGE: 0xff6600,
    ChatTransport.LIGHT_RED: 0xff5555,
    ChatTransport.LIGHT_GREEN: 0x55ff55,
    ChatTransport.GRAY: 0x808080,
    ChatTransport.LIGHT_GRAY: 0xc0c0c0,
    ChatTransport.WHITE: 0xffffff,
}


class DiscordTransport(ChatTransport):
    """ChatTransport backed by a discord.py client."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self._channels: Dict[str, discord.abc.Messageable] = {}
        self._users: Dict[str, discord.abc.User] = {}
        self._members: Dict[tuple, discord.Member] = {}
        self._pending: Set[asyncio.Task] = set()

    @property
    def bot_name(self) -> str:
        return self.bot.user.name if self.bot.user else ""

    def remember(self, message: discord.Message) -> None:
        """Keep the Discord objects behind the names the game uses."""
        channel_id = str(message.channel.id)
        self._channels[channel_id] = message.channel
        self._users[message.author.name] = message.author
        if isinstance(message.author, discord.Member):
            self._members[(message.author.name, channel_id)] = message.author

    def get_channel(self, channel: str) -> Optional[discord.abc.Messageable]:
        known = self._channels.get(channel)
        if known is not None:
            return known
        try:
            return self.bot.get_channel(int(channel))
        except ValueError:
            return None

    def send(self, channel: str, text: str, color: Optional[str] = None) -> None:
        destination = self.get_channel(channel)
        if destination is None:
            logger.error(f"Cannot send to unknown channel {channel}")
            return
        self._schedule(destination, text, color)

    def send_private(self, user: str, text: str) -> None:
        destination = self._users.get(user)
        if destination is None:
            logger.error(f"Cannot send private message to unknown user {user}")
            return
        self._schedule(destination, text, None)

    def is_operator(self, user: str, channel: str) -> bool:
        member = self._members.get((user, channel))
        if member is None:
            return False
        destination = self.get_channel(channel)
        if destination is not None and hasattr(destination, 'permissions_for'):
            permissions = destination.permissions_for(member)
        else:
            permissions = member.guild_permissions
        return bool(permissions.administrator or permissions.manage_messages)

    def _schedule(self, destination, text: str, color: Optional[str]) -> None:
        task = asyncio.get_running_loop().create_task(self._deliver(destination, text, color))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, destination, text: str, color: Optional[str]) -> None:
        try:
            if color in EMBED_COLORS:
                await destination.send(embed=discord.Embed(description=text, color=EMBED_COLORS[color]))
            else:
                await destination.send(text)
        except discord.HTTPException as e:
            logger.error(f"Failed to deliver message: {e}")


class TriviaBot(commands.Bot):
    """Discord bot running the trivia game"""

    def __init__(self, config=None):
        # Message content is needed to read answers and ! commands
        intents = discord.Intents.default()
        intents.message_content = True

        command_prefix = '!'
        if config and 'bot' in config:
            command_prefix = config['bot'].get('command_prefix', '!')

        super().__init__(
            command_prefix=command_prefix,
            intents=intents,
            help_command=None  # !help is handled by the dispatcher
        )

        # Store configuration
        self.app_config = config or {}

        # Core components, built in setup_hook
        self.transport = DiscordTransport(self)
        self.config_manager: Optional[ConfigManager] = None
        self.data_manager: Optional[DataManager] = None
        self.registry: Optional[UserRegistry] = None
        self.translator: Optional[Translator] = None
        self.session: Optional[GameSession] = None
        self.dispatcher: Optional[CommandDispatcher] = None

    async def setup_hook(self):
        """Called when the bot is starting up"""
        try:
            logger.info("Setting up bot components...")
            self.build_components()
            self._install_reload_signal()
            logger.info("Bot setup completed successfully")
        except Exception as e:
            logger.error(f"Error during bot setup: {e}")
            raise

    def build_components(self):
        """Create the game components and wire them together."""
        self.config_manager = ConfigManager()
        for error in self.config_manager.apply_config(self.app_config):
            logger.warning(f"Configuration issue: {error}")
        validation = self.config_manager.validate_settings()
        for issue in validation['issues']:
            logger.warning(f"Settings validation: {issue}")

        self.data_manager = DataManager(self.config_manager.question_files)
        questions = self.data_manager.load_questions()
        self._log_loading_summary()

        self.registry = UserRegistry(UserStore(self.config_manager.users_file))
        self.translator = Translator(default_locale=self.config_manager.locale)
        self.session = GameSession(
            questions,
            self.config_manager.get_game_settings(),
            self.registry,
            self.translator,
            self.transport
        )
        self.dispatcher = CommandDispatcher(
            self.session,
            self.registry,
            self.translator,
            self.transport,
            command_prefix=self.config_manager.command_prefix
        )

    def reload_questions(self) -> int:
        """
        Re-read the question banks from disk.

        A question already in flight finishes with its old text; the new
        pool is used from the next pick on.

        Returns:
            Number of questions in the new pool
        """
        if self.data_manager is None or self.session is None:
            return 0
        questions = self.data_manager.load_questions()
        self.session.reload_questions(questions)
        self._log_loading_summary()
        return len(questions)

    def _log_loading_summary(self):
        summary = self.data_manager.get_loading_summary()
        logger.info(
            f"Question banks: {summary['question_count']} questions from {len(summary['loaded_files'])} files",
            extra={'event_type': 'questions_loaded', 'question_count': summary['question_count']}
        )
        for error in summary['errors']:
            logger.warning(f"Question bank issue: {error}")

    def _install_reload_signal(self):
        """Reload the question banks on SIGHUP where the platform has it."""
        if not hasattr(signal, 'SIGHUP'):
            return
        try:
            asyncio.get_running_loop().add_signal_handler(signal.SIGHUP, self.reload_questions)
        except (NotImplementedError, RuntimeError, ValueError) as e:
            logger.debug(f"SIGHUP reload unavailable: {e}")

    async def on_ready(self):
        """Called when the bot has successfully connected to Discord"""
        logger.info(f"Bot is ready! Logged in as {self.user}")
        logger.info(f"Bot is in {len(self.guilds)} guilds")
        print(f"🤖 {self.user} is Ready and Online!")

        if self.dispatcher is not None:
            self.dispatcher.standby_message(self.config_manager.channels)

    async def on_message(self, message: discord.Message):
        """Route guild messages to the dispatcher"""
        if self.dispatcher is None or message.guild is None:
            return
        if self.user is not None and message.author.id == self.user.id:
            return

        self.transport.remember(message)
        self.dispatcher.handle_message(message.author.name, str(message.channel.id), message.content)

    async def on_error(self, event, *args, **kwargs):
        """Handle general bot errors"""
        logger.error(f"An error occurred in event {event}", exc_info=True)

    async def close(self):
        """Stop the game timers and save scores before disconnecting"""
        if self.session is not None:
            self.session.shutdown()
        await super().close()


async def run_bot(token=None, config=None):
    """Run the bot with proper error handling"""
    # Fall back to the config file and DISCORD_BOT_TOKEN if no token provided
    if not token:
        config_manager = ConfigManager()
        config_manager.apply_config(config or {})
        token = config_manager.auth_secret

    if not token:
        logger.error("No Discord bot token provided")
        return

    bot = TriviaBot(config)

    try:
        logger.info("Starting trivia bot...")
        await bot.start(token)
    except discord.LoginFailure:
        logger.error("Invalid bot token provided")
    except discord.HTTPException as e:
        logger.error(f"HTTP error occurred: {e}")
    finally:
        if not bot.is_closed():
            await bot.close()
