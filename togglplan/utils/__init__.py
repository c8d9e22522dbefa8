"""Environment helpers for scripts building a client from the environment."""

from togglplan.utils.env import ENV_PREFIX, load_credentials, load_env_file_if_present

__all__ = ["ENV_PREFIX", "load_credentials", "load_env_file_if_present"]
