"""
Per-user storage locations
"""
import sys
import os
from pathlib import Path
from typing import Mapping, Optional

APP_DIR_NAME = 'SlideDeckConverter'
HOME_OVERRIDE_VAR = 'SLIDE_DECK_CONVERTER_HOME'


def _platform_config_root(platform: str, environ: Mapping[str, str]) -> Path:
    if platform == 'win32':
        return Path(environ.get('APPDATA', ''))
    if platform == 'darwin':
        return Path.home() / 'Library' / 'Application Support'
    xdg = environ.get('XDG_CONFIG_HOME')
    return Path(xdg) if xdg else Path.home() / '.config'


def get_app_data_dir(
    platform: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Path:
    """
    Get (and create) the application data directory

    SLIDE_DECK_CONVERTER_HOME wins when set. Otherwise:
    Windows: %APPDATA%/SlideDeckConverter
    macOS: ~/Library/Application Support/SlideDeckConverter
    Others: $XDG_CONFIG_HOME/SlideDeckConverter (~/.config when unset)

    Args:
        platform: sys.platform value (current platform when omitted)
        environ: Environment mapping (os.environ when omitted)

    Returns:
        Path: Application data directory
    """
    platform = platform or sys.platform
    environ = os.environ if environ is None else environ

    override = environ.get(HOME_OVERRIDE_VAR)
    if override:
        app_dir = Path(override)
    else:
        app_dir = _platform_config_root(platform, environ) / APP_DIR_NAME

    app_dir.mkdir(parents=True, exist_ok=True)
    return app_dir
