"""
Loader for the user-to-algorithm configuration document.

The document is JSON with ``//`` and ``/* */`` comments allowed. Comments are
stripped before parsing and the result is validated into a ``Configuration``.
"""

import json
import re
from pathlib import Path
from typing import List, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..exceptions import ConfigLoadError, get_error_message
from .settings import get_cached_settings

logger = structlog.get_logger(__name__)

# String literals are matched first so comment markers inside them survive
_JSONC_TOKEN = re.compile(r'("(?:\\.|[^"\\])*")|(//[^\n]*)|(/\*.*?\*/)', re.DOTALL)


class UserAlgorithm(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user_id: str
    algorithm: str


class Configuration(BaseModel):
    """Static mapping of users to their default ranking algorithm."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    users: List[UserAlgorithm] = Field(default_factory=list)

    def algorithm_for(self, user_id: Optional[str]) -> Optional[str]:
        """Return the configured algorithm for ``user_id``, or None."""
        for user in self.users:
            if user.user_id == user_id:
                return user.algorithm
        return None


def strip_jsonc_comments(text: str) -> str:
    """Remove line and block comments that sit outside string literals."""

    def _replace(match: re.Match) -> str:
        if match.group(1) is not None:
            return match.group(1)
        return ""

    return _JSONC_TOKEN.sub(_replace, text)


def load_fantom_config(path: Optional[Path] = None) -> Configuration:
    """
    Load and parse the Fantom configuration document.

    Args:
        path: Document location. Defaults to the configured ``config_path``.

    Returns:
        Parsed Configuration

    Raises:
        ConfigLoadError: If the document is missing, unreadable or malformed
    """
    config_path = Path(path) if path is not None else get_cached_settings().config_path

    try:
        content = config_path.read_text(encoding="utf-8")
        data = json.loads(strip_jsonc_comments(content))
        return Configuration.model_validate(data)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
        logger.error("config_load_failed", path=str(config_path), error=get_error_message(e))
        raise ConfigLoadError(f"Failed to load Fantom configuration: {get_error_message(e)}") from e
