"""
Settings management class
- Save/load converter settings in JSON format
- Repair out-of-range values back to defaults
"""
from __future__ import annotations
import json
import logging
from pathlib import Path
from dataclasses import dataclass, asdict, fields
from typing import Optional

from utils.system import get_app_data_dir
from .defaults import (
    SETTINGS_FILENAME,
    DEFAULT_MAX_RETRIES,
    RETRY_DELAY_SECONDS,
    DEFAULT_RENDER_WORKERS,
    DEFAULT_DOCUMENT_TITLE,
)

logger = logging.getLogger(__name__)

@dataclass
class ConverterSettings:
    """Converter settings"""
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay_seconds: float = RETRY_DELAY_SECONDS
    render_workers: int = DEFAULT_RENDER_WORKERS
    skip_undecodable_media: bool = False
    default_title: str = DEFAULT_DOCUMENT_TITLE
    last_output_dir: str = ""

    def is_valid(self) -> bool:
        """Check if settings are within range"""
        return (
            isinstance(self.max_retries, int) and self.max_retries >= 0
            and isinstance(self.retry_delay_seconds, (int, float))
            and self.retry_delay_seconds >= 0
            and isinstance(self.render_workers, int) and self.render_workers >= 1
        )


class SettingsManager:
    """Manages settings reading, writing, and repair"""

    def __init__(self, settings_path: Optional[Path] = None):
        self._settings_path = (
            Path(settings_path) if settings_path else get_app_data_dir() / SETTINGS_FILENAME
        )
        self._settings: ConverterSettings = ConverterSettings()
        self._load()

        if not self._settings.is_valid():
            logger.warning("Settings out of range - restoring pipeline defaults")
            self._repair()

        self._save()

    @property
    def settings(self) -> ConverterSettings:
        return self._settings

    @property
    def settings_path(self) -> Path:
        return self._settings_path

    def update(self, **kwargs) -> None:
        """Update settings and save"""
        for key, value in kwargs.items():
            if hasattr(self._settings, key):
                setattr(self._settings, key, value)
        self._save()

    def _load(self) -> None:
        """Load settings from file"""
        if self._settings_path.exists():
            try:
                with open(self._settings_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                    known = {field.name for field in fields(ConverterSettings)}
                    self._settings = ConverterSettings(
                        **{k: v for k, v in data.items() if k in known}
                    )
            except (json.JSONDecodeError, TypeError, AttributeError):
                self._settings = ConverterSettings()

    def _repair(self) -> None:
        """Reset pipeline values that fail validation"""
        defaults = ConverterSettings()
        s = self._settings
        if not isinstance(s.max_retries, int) or s.max_retries < 0:
            s.max_retries = defaults.max_retries
        if not isinstance(s.retry_delay_seconds, (int, float)) or s.retry_delay_seconds < 0:
            s.retry_delay_seconds = defaults.retry_delay_seconds
        if not isinstance(s.render_workers, int) or s.render_workers < 1:
            s.render_workers = defaults.render_workers

    def _save(self) -> None:
        """Save settings to file"""
        try:
            with open(self._settings_path, 'w', encoding='utf-8') as f:
                json.dump(asdict(self._settings), f, indent=2, ensure_ascii=False)
        except (IOError, OSError) as e:
            logger.error(f"Failed to save settings: {e}")
