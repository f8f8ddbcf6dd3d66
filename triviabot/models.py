"""
Core data models for the trivia bot.
"""
from dataclasses import dataclass, field, asdict
from typing import Dict, Optional, Tuple


def normalize_answer(text: str) -> str:
    """Lower-case and strip surrounding whitespace for answer comparison."""
    return (text or "").strip().lower()


@dataclass(frozen=True)
class Question:
    """A single trivia question with its accepted answers."""
    prompt: str
    answers: Tuple[str, ...]
    tip: Optional[str] = None

    def __post_init__(self):
        # Accept any iterable of answers but always store a tuple
        object.__setattr__(self, 'answers', tuple(self.answers))

    def matches(self, candidate: str) -> bool:
        """
        Check a free-text answer against every accepted answer.

        Args:
            candidate: Text typed by a player

        Returns:
            True if the normalized candidate equals any normalized answer
        """
        normalized = normalize_answer(candidate)
        if not normalized:
            return False
        return any(normalize_answer(answer) == normalized for answer in self.answers)

    @property
    def answer(self) -> str:
        """The answer revealed to the channel."""
        return self.answers[0] if self.answers else ""

    def tip_text(self) -> str:
        """
        Text shown when the tip timer fires.

        Uses the question's own tip when it has one, otherwise masks the
        answer leaving the first character of every word visible.
        """
        if self.tip:
            return self.tip
        words = []
        for word in self.answer.split():
            words.append(word[0] + "*" * (len(word) - 1))
        return " ".join(words)


@dataclass
class UserRecord:
    """Per-player counters kept across games."""
    name: str
    channel: Optional[str] = None
    points: int = 0
    answers: int = 0
    good_answers: int = 0
    quizz_started: int = 0
    quizz_stopped: int = 0

    @property
    def ratio(self) -> float:
        """Percentage of good answers, rounded to two decimals."""
        if self.answers == 0:
            return 0.0
        return round((self.good_answers / self.answers) * 100, 2)

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "UserRecord":
        record = cls(
            name=str(data["name"]),
            channel=data.get("channel"),
            points=int(data.get("points", 0)),
            answers=int(data.get("answers", 0)),
            good_answers=int(data.get("good_answers", 0)),
            quizz_started=int(data.get("quizz_started", 0)),
            quizz_stopped=int(data.get("quizz_stopped", 0)),
        )
        # Older files may hold inconsistent counters
        if record.good_answers > record.answers:
            record.answers = record.good_answers
        return record


@dataclass
class GameSettings:
    """Timing and inactivity settings for a game session, in milliseconds."""
    question_duration: int = 25000
    time_between_questions: int = 15000
    time_before_tip: int = 10000
    continuous_no_answer_limit: int = 8
    random_order: bool = True


@dataclass
class RankingEntry:
    """One line of the !top ranking."""
    place: int
    name: str
    points: int
    ratio: float = field(default=0.0)
