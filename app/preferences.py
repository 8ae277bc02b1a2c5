"""
Persisted user preferences.
"""
import json
import logging
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

SHOW_AC_TOOLTIP_KEY = "showACTooltip"


class InMemoryPreferenceStore:
    """Preference store that lives only as long as the process."""

    def __init__(self, values: Optional[Dict[str, bool]] = None):
        self._values: Dict[str, bool] = dict(values or {})

    def get_bool(self, key: str, default: bool) -> bool:
        return self._values.get(key, default)

    def set_bool(self, key: str, value: bool) -> None:
        self._values[key] = value


class JsonPreferenceStore(InMemoryPreferenceStore):
    """Preference store backed by a small JSON file."""

    def __init__(self, path: str):
        """
        Load preferences from disk.

        A missing or unreadable file starts with no stored values, so
        every lookup returns its default.

        Args:
            path: Location of the JSON file
        """
        self.path = Path(path)
        super().__init__(self._load())

    def _load(self) -> Dict[str, bool]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read preferences from {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed preferences file {self.path}")
            return {}
        return {k: v for k, v in data.items() if isinstance(v, bool)}

    def set_bool(self, key: str, value: bool) -> None:
        super().set_bool(key, value)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(self._values, f, indent=2)
        except OSError as e:
            logger.error(f"Failed to save preferences to {self.path}: {e}")
            return
        logger.info(f"Saved preference {key}={value}")
