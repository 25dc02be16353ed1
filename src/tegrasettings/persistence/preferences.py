"""
Persistent preference storage.

A flat string-to-string mapping kept in a YAML file. The settings front end
writes per-display mode choices here; the display service only reads them.
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Union

import yaml

logger = logging.getLogger(__name__)


class PreferenceStore:
    """String-keyed, string-valued preferences stored as YAML."""

    def __init__(self, path: Union[str, Path]):
        """
        Initialize preference store.

        Args:
            path: Path to the preferences YAML file
        """
        self.path = Path(path)
        self._values: Dict[str, str] = {}
        self.load()

    def load(self) -> None:
        """Load preferences from file."""
        if not self.path.exists():
            logger.info(f"No preferences file at {self.path}, starting empty")
            self._values = {}
            return

        try:
            with self.path.open("r") as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ValueError("preferences file is not a mapping")
            self._values = {str(k): str(v) for k, v in data.items()}
            logger.debug(f"Loaded {len(self._values)} preferences from {self.path}")
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load preferences: {e}, starting empty")
            self._values = {}

    def save(self) -> None:
        """Save preferences to file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w") as f:
            yaml.safe_dump(self._values, f, default_flow_style=False)
        logger.debug(f"Saved preferences to {self.path}")

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get a preference value, or default when the key is missing."""
        return self._values.get(key, default)

    def set(self, key: str, value) -> None:
        """Set a preference value and save."""
        self._values[key] = str(value)
        self.save()

    def remove(self, key: str) -> None:
        """Remove a preference if present."""
        if self._values.pop(key, None) is not None:
            self.save()

    def __contains__(self, key: str) -> bool:
        return key in self._values
