"""
Data manager for question bank files and question validation.
"""
import json
import logging
from typing import Dict, List, Optional, Iterable, Any
from pathlib import Path

from .errors import MalformedBankEntry
from .models import Question


class DataManager:
    """Loads question banks from .json and .txt files."""

    SUPPORTED_EXTENSIONS = ('.json', '.txt')

    def __init__(self, question_files: Optional[Iterable[str]] = None):
        """
        Initialize DataManager with the configured question sources.

        Args:
            question_files: Paths to bank files or directories containing them
        """
        self.question_files: List[Path] = [Path(path) for path in (question_files or [])]
        self.questions: List[Question] = []
        self.logger = logging.getLogger(__name__)
        self.load_errors: List[str] = []  # Track loading errors for operator feedback
        self.loaded_files: List[str] = []

    def load_questions(self) -> List[Question]:
        """
        Load every configured source into one ordered question pool.

        Sources load in configuration order; directories are expanded in
        file-name order. Malformed entries are skipped and the load carries on.

        Returns:
            Ordered list of Question objects
        """
        self.questions = []
        self.load_errors.clear()
        self.loaded_files.clear()

        for file_path in self._expand_sources():
            questions = self.load_file(file_path)
            if questions is None:
                continue
            self.questions.extend(questions)
            self.loaded_files.append(str(file_path))

        self.logger.info(
            f"Loaded {len(self.questions)} questions from {len(self.loaded_files)} files"
        )
        if self.load_errors:
            self.logger.warning(f"Encountered {len(self.load_errors)} loading errors")
        return list(self.questions)

    def _expand_sources(self) -> List[Path]:
        files = []
        for source in self.question_files:
            if source.is_dir():
                files.extend(
                    sorted(
                        path for path in source.iterdir()
                        if path.is_file() and path.suffix.lower() in self.SUPPORTED_EXTENSIONS
                    )
                )
            elif source.exists():
                files.append(source)
            else:
                error_msg = f"Question source not found: {source}"
                self.logger.error(error_msg)
                self.load_errors.append(error_msg)
        return files

    def load_file(self, file_path: Path) -> Optional[List[Question]]:
        """
        Load a single bank file.

        Args:
            file_path: Path to a .json or .txt bank

        Returns:
            Questions parsed from the file, or None if the file was skipped
            or could not be read
        """
        extension = file_path.suffix.lower()
        if extension not in self.SUPPORTED_EXTENSIONS:
            self.logger.debug(f"Skipping unsupported question file {file_path}")
            return None

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except OSError as e:
            error_msg = f"Failed to read question file {file_path}: {e}"
            self.logger.error(error_msg)
            self.load_errors.append(error_msg)
            return None

        if extension == '.json':
            try:
                data = json.loads(content)
            except json.JSONDecodeError as e:
                error_msg = f"Invalid JSON in {file_path}: {e}"
                self.logger.error(error_msg)
                self.load_errors.append(error_msg)
                return None
            return self.parse_json_bank(data, file_path.name)

        return self.parse_text_bank(content, file_path.name)

    def parse_json_bank(self, data: Any, source: str = "<json>") -> List[Question]:
        """
        Parse a structured bank.

        Accepted shapes: a list of question objects, or an object holding
        that list under "questions" or "quiz". Each question object needs a
        "question" (or "prompt") string and "answers" list (or single
        "answer" string); "tip" is optional.

        Args:
            data: Decoded JSON document
            source: Name used in error reports

        Returns:
            Parsed questions; malformed entries are skipped
        """
        if isinstance(data, dict):
            data = data.get('questions', data.get('quiz'))

        if not isinstance(data, list):
            error_msg = f"{source}: expected a list of questions"
            self.logger.error(error_msg)
            self.load_errors.append(error_msg)
            return []

        questions = []
        for position, entry in enumerate(data, start=1):
            try:
                questions.append(self._parse_json_entry(entry, source, position))
            except MalformedBankEntry as e:
                self.logger.warning(f"Skipping malformed entry: {e}")
                self.load_errors.append(str(e))
        return questions

    def _parse_json_entry(self, entry: Any, source: str, position: int) -> Question:
        if not isinstance(entry, dict):
            raise MalformedBankEntry(source, position, "question must be an object")

        prompt = entry.get('question', entry.get('prompt'))
        if not isinstance(prompt, str) or not prompt.strip():
            raise MalformedBankEntry(source, position, "missing 'question' text")

        answers = entry.get('answers')
        if answers is None and 'answer' in entry:
            answers = [entry['answer']]
        if not isinstance(answers, list) or not answers:
            raise MalformedBankEntry(source, position, "'answers' must be a non-empty list")
        if not all(isinstance(answer, (str, int, float)) for answer in answers):
            raise MalformedBankEntry(source, position, "answers must be text")

        tip = entry.get('tip')
        if tip is not None and not isinstance(tip, str):
            raise MalformedBankEntry(source, position, "'tip' must be text")

        return Question(
            prompt=prompt.strip(),
            answers=tuple(str(answer).strip() for answer in answers),
            tip=tip
        )

    def parse_text_bank(self, content: str, source: str = "<text>") -> List[Question]:
        """
        Parse a line-oriented bank where each line reads prompt\\answer.

        Blank lines are ignored; lines without an answer are skipped.

        Args:
            content: Whole file content
            source: Name used in error reports

        Returns:
            Parsed questions
        """
        questions = []
        for position, line in enumerate(content.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                questions.append(self._parse_text_line(line, source, position))
            except MalformedBankEntry as e:
                self.logger.warning(f"Skipping malformed entry: {e}")
                self.load_errors.append(str(e))
        return questions

    def _parse_text_line(self, line: str, source: str, position: int) -> Question:
        parts = line.split('\\')
        if len(parts) < 2:
            raise MalformedBankEntry(source, position, "missing '\\' answer separator")

        prompt = parts[0].strip()
        answer = parts[1].strip()
        if not prompt or not answer:
            raise MalformedBankEntry(source, position, "empty question or answer")

        return Question(prompt=prompt, answers=(answer,))

    def get_load_errors(self) -> List[str]:
        return self.load_errors.copy()

    def has_load_errors(self) -> bool:
        return len(self.load_errors) > 0

    def get_loading_summary(self) -> Dict[str, any]:
        """
        Get comprehensive loading summary for diagnostics.

        Returns:
            Dictionary with loading statistics and error information
        """
        return {
            'question_count': len(self.questions),
            'loaded_files': list(self.loaded_files),
            'has_errors': self.has_load_errors(),
            'error_count': len(self.load_errors),
            'errors': self.get_load_errors()
        }
