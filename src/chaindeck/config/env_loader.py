"""Environment variable handling for plan files.

Supports ``${VAR}`` and ``${VAR:-default}`` substitution in raw YAML text and
loading of ``.env`` files next to the plan.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from pathlib import Path

from dotenv import load_dotenv

from chaindeck.lib.errors import ConfigError

_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")


def substitute_env_vars(text: str, env: Mapping[str, str] | None = None) -> str:
    """Replace ``${VAR}`` references with environment values.

    Args:
        text: Raw text to substitute
        env: Environment mapping (defaults to ``os.environ``)

    Returns:
        Text with all references replaced

    Raises:
        ConfigError: If a referenced variable is unset and has no default
    """
    environ = os.environ if env is None else env

    def _replace(match: re.Match[str]) -> str:
        name, default = match.group(1), match.group(2)
        value = environ.get(name)
        if value is not None:
            return value
        if default is not None:
            return default
        raise ConfigError(
            name,
            f"Environment variable '{name}' is not set and has no default",
        )

    return _ENV_PATTERN.sub(_replace, text)


def get_env_var(name: str, default: str | None = None) -> str | None:
    """Return an environment variable, treating empty strings as unset."""
    value = os.environ.get(name)
    return value if value else default


def load_env_file(directory: Path, filename: str = ".env") -> bool:
    """Load a ``.env`` file from ``directory`` without overriding the process env.

    Returns:
        True if a file was found and loaded
    """
    env_path = directory / filename
    if not env_path.is_file():
        return False
    return load_dotenv(env_path, override=False)
