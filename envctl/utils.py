"""Parsing helpers for variable input."""

import re
from pathlib import Path
from typing import Iterable

from dotenv import dotenv_values

from envctl.core.errors import EnvFileError, InvalidNameError

VARIABLE_KEY_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_key(key: str) -> str:
    """
    Check that *key* is a valid shell variable name.

    Raises:
        InvalidNameError: If the key is not identifier-like
    """
    if not VARIABLE_KEY_PATTERN.fullmatch(key):
        raise InvalidNameError(
            f"Invalid variable name '{key}'. Use letters, digits and '_', "
            f"not starting with a digit."
        )
    return key


def parse_env_file(path: str | Path) -> dict[str, str]:
    """
    Parse a .env file into a flat mapping.

    Comments, ``export`` prefixes and quoted values are handled by
    python-dotenv. Keys without a value (``FOO`` with no ``=``) are skipped.
    Values are taken literally; ``${VAR}`` references are not expanded.

    Args:
        path: Path to the env file

    Returns:
        Mapping of key to value, in file order

    Raises:
        EnvFileError: If the file does not exist or cannot be read
        InvalidNameError: If a key is not a valid variable name
    """
    env_path = Path(path)
    if not env_path.is_file():
        raise EnvFileError(f"File not found: {path}")

    try:
        raw = dotenv_values(env_path, interpolate=False, encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise EnvFileError(f"Failed to read env file {path}: {e}") from e

    variables: dict[str, str] = {}
    for key, value in raw.items():
        if value is None:
            continue
        variables[validate_key(key)] = value
    return variables


def parse_assignments(pairs: Iterable[str]) -> tuple[dict[str, str], list[str]]:
    """
    Parse ``KEY=VALUE`` arguments.

    Values may contain ``=``. When a key repeats, the last value wins.

    Returns:
        (variables, duplicate keys in first-seen order)

    Raises:
        InvalidNameError: If an argument has no ``=`` or an invalid key
    """
    variables: dict[str, str] = {}
    duplicates: list[str] = []

    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep:
            raise InvalidNameError(f"Invalid format for '{pair}'. Use KEY=VALUE")
        if not key:
            raise InvalidNameError(f"Invalid format for '{pair}'. Key cannot be empty")
        validate_key(key)

        if key in variables and key not in duplicates:
            duplicates.append(key)
        variables[key] = value

    return variables, duplicates
