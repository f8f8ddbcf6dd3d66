"""
JSON file storage for player records.
"""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict

from .models import UserRecord


class UserStore:
    """Loads and saves user records as a JSON object keyed by user name."""

    def __init__(self, path):
        self.path = Path(path)
        self.logger = logging.getLogger(__name__)

    def load(self) -> Dict[str, UserRecord]:
        """
        Load all records.

        A missing file means no players yet. A corrupt file is logged and
        treated the same way so the bot can still start.

        Returns:
            Mapping of user name to UserRecord
        """
        if not self.path.exists():
            self.logger.info(f"No user file at {self.path}, starting with an empty scoreboard")
            return {}

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            self.logger.error(f"Invalid JSON in user file {self.path}: {e}")
            return {}
        except OSError as e:
            self.logger.error(f"Failed to read user file {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            self.logger.error(f"User file {self.path} must contain a JSON object")
            return {}

        records = {}
        for name, entry in data.items():
            try:
                entry = dict(entry)
                entry.setdefault('name', name)
                records[name] = UserRecord.from_dict(entry)
            except (TypeError, ValueError, KeyError) as e:
                self.logger.warning(f"Skipping unreadable user record {name!r}: {e}")

        self.logger.info(f"Loaded {len(records)} user records from {self.path}")
        return records

    def save(self, records: Dict[str, UserRecord]) -> None:
        """
        Write all records.

        The file is written next to the target and moved into place so a
        crash mid-write leaves the previous file intact.

        Raises:
            OSError: If the file cannot be written
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {name: record.to_dict() for name, record in records.items()}

        fd, temp_path = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            os.replace(temp_path, self.path)
        except OSError:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise

        self.logger.debug(f"Saved {len(records)} user records to {self.path}")
