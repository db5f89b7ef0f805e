"""Environment handling for import configs.

YAML configs may reference ``${VAR}`` or ``${VAR:-fallback}``; ``--env-file``
loads a ``.env`` file (python-dotenv) before the config is read. Firestore
wildcard segments such as ``{eventId}`` carry no ``$`` and pass through.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Optional, Union

from dotenv import load_dotenv

from firestore_export.lib.errors import ConfigurationError

logger = logging.getLogger(__name__)

__all__ = ["expand_env_vars", "expand_options", "load_env_file"]

# ${NAME}, ${NAME:-fallback} or bare $NAME
ENV_REFERENCE = re.compile(
    r"\$\{(?P<braced>[A-Za-z_][A-Za-z0-9_]*)(?::-(?P<fallback>[^}]*))?\}"
    r"|\$(?P<bare>[A-Za-z_][A-Za-z0-9_]*)"
)


def load_env_file(path: Union[str, Path], *, override: bool = False) -> None:
    """Load ``path`` into ``os.environ``.

    Raises:
        ConfigurationError: If the file does not exist
    """
    env_path = Path(path)
    if not env_path.is_file():
        raise ConfigurationError("Env file not found", field="env-file", value=env_path)
    load_dotenv(dotenv_path=env_path, override=override)
    logger.debug("Loaded environment from %s", env_path)


def expand_env_vars(value: str, *, strict: bool = False) -> str:
    """Substitute environment references in ``value``.

    Unset variables without a fallback are left as written, or raise
    ``ConfigurationError`` when ``strict`` is set.

    >>> os.environ["GCP_PROJECT"] = "my-project"
    >>> expand_env_vars("${GCP_PROJECT}/${REGION:-EU}")
    'my-project/EU'
    """

    def substitute(match: re.Match[str]) -> str:
        name = match.group("braced") or match.group("bare")
        current: Optional[str] = os.environ.get(name)
        if current is not None:
            return current
        fallback = match.group("fallback")
        if fallback is not None:
            return fallback
        if strict:
            raise ConfigurationError(
                f"Environment variable {name} is not set", field=name
            )
        return match.group(0)

    return ENV_REFERENCE.sub(substitute, value)


def _expand(value: Any, strict: bool) -> Any:
    if isinstance(value, str):
        return expand_env_vars(value, strict=strict)
    if isinstance(value, dict):
        return {key: _expand(item, strict) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand(item, strict) for item in value]
    return value


def expand_options(options: dict[str, Any], *, strict: bool = False) -> dict[str, Any]:
    """Expand environment references in every string of a parsed config."""
    return _expand(options, strict)
