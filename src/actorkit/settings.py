"""User-level actorkit settings.

Settings come from ``~/.actorkit/configuration.json`` and are overridden by
``ACTORKIT_*`` environment variables. A malformed configuration file is
logged and ignored rather than aborting the command.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

ACTORKIT_HOME = Path.home() / ".actorkit"
ACTORKIT_CONFIG_FILE = ACTORKIT_HOME / "configuration.json"

DEFAULT_NATS_URL = "nats://127.0.0.1:4222"
DEFAULT_LATTICE_PREFIX = "default"


def get_actorkit_config() -> dict:
    """Load the user configuration file, returning ``{}`` when absent or unreadable."""
    if not ACTORKIT_CONFIG_FILE.exists():
        return {}
    try:
        with open(ACTORKIT_CONFIG_FILE) as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to load actorkit config %s: %s", ACTORKIT_CONFIG_FILE, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring actorkit config %s: top level is not an object", ACTORKIT_CONFIG_FILE)
        return {}
    return data


@dataclass
class Settings:
    """Resolved settings for a single CLI invocation."""

    nats_url: str = DEFAULT_NATS_URL
    lattice_prefix: str = DEFAULT_LATTICE_PREFIX
    keys_dir: Path = ACTORKIT_HOME / "keys"
    registry_user: str | None = None
    registry_password: str | None = None

    @classmethod
    def load(cls) -> Settings:
        config = get_actorkit_config()
        registry = config.get("registry", {}) or {}
        keys_dir = os.environ.get("ACTORKIT_KEYS_DIR") or config.get("keys_dir")
        return cls(
            nats_url=os.environ.get("ACTORKIT_NATS_URL") or config.get("nats_url") or DEFAULT_NATS_URL,
            lattice_prefix=(
                os.environ.get("ACTORKIT_LATTICE_PREFIX")
                or config.get("lattice_prefix")
                or DEFAULT_LATTICE_PREFIX
            ),
            keys_dir=Path(keys_dir).expanduser() if keys_dir else ACTORKIT_HOME / "keys",
            registry_user=os.environ.get("ACTORKIT_REGISTRY_USER") or registry.get("user"),
            registry_password=os.environ.get("ACTORKIT_REGISTRY_PASSWORD") or registry.get("password"),
        )
