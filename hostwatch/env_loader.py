"""Load hostwatch settings from .env files.

Must run before anything reads ``os.environ`` for agent settings. Values
already present in the environment always win over file contents.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_FILE_VAR = "HOSTWATCH_ENV_FILE"
USER_ENV_PATH = Path.home() / ".hostwatch" / ".env"


def candidate_env_files() -> list[Path]:
    """Env files to try, highest priority first."""
    candidates = []
    explicit = os.environ.get(ENV_FILE_VAR)
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.append(Path.cwd() / ".env")
    candidates.append(USER_ENV_PATH)
    return candidates


def load_env() -> list[Path]:
    """
    Load every existing candidate .env file.

    Earlier files take priority because ``override`` is never set.

    Returns:
        Paths that were loaded
    """
    loaded = []
    for path in candidate_env_files():
        if path.is_file():
            load_dotenv(path, override=False)
            loaded.append(path)
            logger.debug(f"Loaded environment from {path}")
    return loaded
