"""
Message catalogs for outgoing bot text.
"""
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

DEFAULT_LOCALE_DIRECTORY = Path(__file__).parent / "locales"


class Translator:
    """
    Looks up message templates by key in the active locale.

    Catalogs are JSON objects named <code>.json. Missing keys fall back to
    the default locale, then to the key itself.
    """

    def __init__(self, locale_directory: Optional[Path] = None, default_locale: str = "en"):
        self.logger = logging.getLogger(__name__)
        self.locale_directory = Path(locale_directory or DEFAULT_LOCALE_DIRECTORY)
        self.default_locale = default_locale
        self._catalogs: Dict[str, Dict[str, str]] = self._load_catalogs()
        self._locale = default_locale if default_locale in self._catalogs else self._first_locale()
        self.defaults: Dict[str, object] = {}

    def _load_catalogs(self) -> Dict[str, Dict[str, str]]:
        catalogs = {}
        if not self.locale_directory.is_dir():
            self.logger.error(f"Locale directory not found: {self.locale_directory}")
            return catalogs

        for path in sorted(self.locale_directory.glob("*.json")):
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    catalog = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                self.logger.error(f"Failed to load locale {path.name}: {e}")
                continue
            if isinstance(catalog, dict):
                catalogs[path.stem] = {str(k): str(v) for k, v in catalog.items()}

        self.logger.info(f"Loaded locales: {', '.join(catalogs) or 'none'}")
        return catalogs

    def _first_locale(self) -> str:
        return next(iter(self._catalogs), self.default_locale)

    @property
    def locale(self) -> str:
        return self._locale

    def available_locales(self) -> List[str]:
        return sorted(self._catalogs)

    def set_locale(self, code: str) -> bool:
        """
        Switch the active locale.

        Args:
            code: Catalog name, e.g. "en" or "fr"

        Returns:
            True if the locale exists and is now active
        """
        if code not in self._catalogs:
            self.logger.info(f"Unknown locale requested: {code}")
            return False
        self._locale = code
        self.logger.info(f"Locale set to {code}")
        return True

    def translate(self, key: str, **kwargs) -> str:
        """
        Render the template stored under key.

        Values in `defaults` (such as the command prefix) are available to
        every template.
        """
        template = self._catalogs.get(self._locale, {}).get(key)
        if template is None:
            template = self._catalogs.get(self.default_locale, {}).get(key, key)

        values = dict(self.defaults)
        values.update(kwargs)
        try:
            return template.format(**values)
        except (KeyError, IndexError, ValueError) as e:
            self.logger.warning(f"Could not format message {key!r}: {e}")
            return template
