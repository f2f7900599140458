"""Cross-platform path management for healthapp.

Every persistent file location used by the client is defined here so the
rest of the package imports one canonical set of paths.  Directories are
created lazily by the helpers, never at import time.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Union

from platformdirs import user_config_dir, user_data_dir

# ---------------------------------------------------------------------------
# Application identifier
# ---------------------------------------------------------------------------

APP_NAME = "healthapp"

# ---------------------------------------------------------------------------
# Base directories
# ---------------------------------------------------------------------------

CONFIG_DIR: Path = Path(user_config_dir(APP_NAME))
DATA_DIR: Path = Path(user_data_dir(APP_NAME))

# ---------------------------------------------------------------------------
# Standard file locations
# ---------------------------------------------------------------------------

CREDENTIALS_FILE = CONFIG_DIR / "credentials.json"
SETTINGS_FILE = CONFIG_DIR / "settings.json"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def ensure_parents(path: Path) -> Path:
    """Create all parent directories for *path* if they do not exist.

    Returns *path* unchanged so the call can be used inline.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        pass
    return path


def atomic_write(path: Path, data: Union[str, bytes]) -> None:
    """Write text *data* to *path* atomically (write-to-tmp then replace)."""
    tmp = path.with_suffix(path.suffix + ".tmp")
    ensure_parents(tmp)

    with tmp.open("w", encoding="utf-8") as fh:
        fh.write(data.decode() if isinstance(data, bytes) else data)

    try:
        os.replace(tmp, path)
    finally:
        # A failed replace must not leave the tmp file behind.
        if tmp.exists():
            try:
                tmp.unlink()
            except OSError:
                pass
