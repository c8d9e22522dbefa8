from __future__ import annotations

import logging
import os
from pathlib import Path

from togglplan.errors import ConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = "TOGGL_PLAN_"

# setting name -> environment suffix
REQUIRED_SETTINGS = {
    "username": "USERNAME",
    "password": "PASSWORD",
    "client_id": "CLIENT_ID",
    "client_secret": "CLIENT_SECRET",
}
OPTIONAL_SETTINGS = {"bearer_token": "BEARER_TOKEN"}


def load_env_file_if_present(path: str | Path = ".env", override: bool = False) -> dict[str, str]:
    """Load ``KEY=VALUE`` lines from a .env file into ``os.environ``.

    Blank lines, ``#`` comments and lines without ``=`` are skipped; one
    level of surrounding quotes is stripped from values. Existing
    environment variables win unless ``override`` is set.

    Returns every pair read from the file, whether or not it was applied.
    """
    env_path = Path(path)
    if not env_path.exists():
        return {}

    loaded: dict[str, str] = {}
    for raw in env_path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = (part.strip() for part in line.split("=", 1))
        value = value.strip('"').strip("'")
        if override or key not in os.environ:
            os.environ[key] = value
        loaded[key] = value
    logger.debug(f"Loaded {len(loaded)} entries from {env_path}")
    return loaded


def load_credentials(prefix: str = ENV_PREFIX, dotenv: bool = True) -> dict[str, str]:
    """Read client credentials from ``<prefix>USERNAME`` and friends.

    Raises ConfigError naming every missing required variable.
    """
    if dotenv:
        load_env_file_if_present()

    settings: dict[str, str] = {}
    missing: list[str] = []
    for name, suffix in REQUIRED_SETTINGS.items():
        value = os.getenv(prefix + suffix)
        if value:
            settings[name] = value
        else:
            missing.append(prefix + suffix)
    if missing:
        raise ConfigError(f"Missing credentials. Set {', '.join(missing)} in environment or .env")

    for name, suffix in OPTIONAL_SETTINGS.items():
        settings[name] = os.getenv(prefix + suffix, "")
    return settings
