"""
Chat transport interface used by the game session and command dispatcher.
"""
from typing import Optional


class ChatTransport:
    """
    What the game needs from a chat network.

    Channels and users are identified by plain strings. Sends are
    fire-and-forget: implementations schedule delivery and report their own
    failures.
    """

    # Styling tags understood by every transport; they may be ignored
    ORANGE = "orange"
    LIGHT_RED = "light_red"
    LIGHT_GREEN = "light_green"
    GRAY = "gray"
    LIGHT_GRAY = "light_gray"
    WHITE = "white"

    @property
    def bot_name(self) -> str:
        raise NotImplementedError

    def send(self, channel: str, text: str, color: Optional[str] = None) -> None:
        """Post text to a channel."""
        raise NotImplementedError

    def send_private(self, user: str, text: str) -> None:
        """Send text privately to a user."""
        raise NotImplementedError

    def is_operator(self, user: str, channel: str) -> bool:
        """Whether user holds operator permission in channel."""
        raise NotImplementedError
