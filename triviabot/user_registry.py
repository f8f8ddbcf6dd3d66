"""
Scoreboard of player records.
"""
import logging
from typing import Dict, List, Optional

from .models import UserRecord, RankingEntry
from .storage import UserStore


class UserRegistry:
    """
    Owns every UserRecord for the lifetime of the bot.

    Records are looked up by player name; the channel a player was last
    seen in is kept on the record. All mutations happen on the event loop
    thread, so no locking is needed.
    """

    DEFAULT_TOP_LIMIT = 10

    def __init__(self, store: Optional[UserStore] = None):
        """
        Initialize the registry and load existing records.

        Args:
            store: Persistence collaborator, or None to keep records in memory
        """
        self.logger = logging.getLogger(__name__)
        self.store = store
        self._users: Dict[str, UserRecord] = store.load() if store else {}

    def get_or_create(self, name: str, channel: Optional[str] = None) -> UserRecord:
        """
        Get a player's record, creating it with zero counters if absent.

        Args:
            name: Player name
            channel: Channel the player is speaking in

        Returns:
            The player's UserRecord
        """
        user = self._users.get(name)
        if user is None:
            user = UserRecord(name=name, channel=channel)
            self._users[name] = user
            self.logger.debug(f"Created user record for {name}")
        elif channel is not None:
            user.channel = channel
        return user

    def get(self, name: str) -> Optional[UserRecord]:
        return self._users.get(name)

    def exists(self, name: str) -> bool:
        return name in self._users

    def all_users(self) -> List[UserRecord]:
        return list(self._users.values())

    def record_correct(self, user: UserRecord) -> None:
        """Award a point and a correct answer."""
        user.points += 1
        user.answers += 1
        user.good_answers += 1

    def record_incorrect(self, user: UserRecord) -> None:
        """Count a wrong answer attempt."""
        user.answers += 1

    def record_started(self, user: UserRecord) -> None:
        user.quizz_started += 1

    def record_stopped(self, user: UserRecord) -> None:
        user.quizz_stopped += 1

    def persist(self) -> bool:
        """
        Flush all records to the store.

        Store failures are logged; scoring carries on with in-memory records.

        Returns:
            True if the records were written
        """
        if self.store is None:
            return False
        try:
            self.store.save(self._users)
            return True
        except OSError as e:
            self.logger.error(f"Failed to persist user records: {e}")
            return False

    def ranking(self, limit: Optional[int] = None) -> List[RankingEntry]:
        """
        Rank players by points.

        Ties go to the player with more good answers, then by name.

        Args:
            limit: Maximum number of entries, clamped to [1, number of players]

        Returns:
            Ordered ranking entries
        """
        users = sorted(
            self._users.values(),
            key=lambda user: (-user.points, -user.good_answers, user.name.lower())
        )
        if not users:
            return []

        if limit is None:
            limit = self.DEFAULT_TOP_LIMIT
        limit = max(1, min(limit, len(users)))

        return [
            RankingEntry(place=place, name=user.name, points=user.points, ratio=user.ratio)
            for place, user in enumerate(users[:limit], start=1)
        ]
