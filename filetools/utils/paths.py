import os
import platform
from pathlib import Path

ROOT_DIR_NAME = 'FileTools'


def user_data_dir() -> str:
    """Get platform-specific user data directory.

    Returns
    -------
    str
        ``%LOCALAPPDATA%`` on Windows, ``~/Library/Application Support`` on
        macOS, ``$XDG_DATA_HOME`` or ``~/.local/share`` elsewhere.
    """
    system = platform.system()
    if system == 'Windows':
        base = os.environ.get('LOCALAPPDATA')
        if not base:
            base = str(Path(os.environ.get('USERPROFILE', '')) / 'AppData' / 'Local')
        return base
    elif system == 'Darwin':
        return str(Path.home() / 'Library' / 'Application Support')
    else:
        xdg_data = os.environ.get('XDG_DATA_HOME')
        if xdg_data:
            return xdg_data
        return str(Path.home() / '.local' / 'share')


def default_root() -> str:
    """Default connector root, not created until first listed."""
    return os.path.join(user_data_dir(), ROOT_DIR_NAME)
