"""
Exception hierarchy for the trivia bot.
"""


class TriviaBotError(Exception):
    """Base exception for trivia bot errors."""
    pass


class PermissionDenied(TriviaBotError):
    """Raised when a non-operator invokes an operator-only command."""

    def __init__(self, user: str, channel: str, command: str):
        super().__init__(f"{user} is not an operator of {channel} (command: {command})")
        self.user = user
        self.channel = channel
        self.command = command


class NoQuestionAvailable(TriviaBotError):
    """Raised when the question pool is exhausted or a forced question is invalid."""
    pass


class MalformedBankEntry(TriviaBotError):
    """Raised when a question bank entry cannot be parsed."""

    def __init__(self, source: str, position: int, reason: str):
        super().__init__(f"{source} entry {position}: {reason}")
        self.source = source
        self.position = position
        self.reason = reason
