"""
Configuration loader — reads readymix.yml into typed settings.

Every key is optional; a missing file means all defaults.  The file is
searched for upward from the working directory, so commands work from
any subdirectory of a deployment.

Example::

    simulator:
      enabled: true
      interval: 5.0
      probability: 0.2
    audit:
      capacity: 100
    orders:
      price_per_m3: 850
    actor:
      id: user-1
      role: site-agent
      name: Site Agent
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from readymix.core.models.actor import Actor, ActorRole
from readymix.core.persistence.audit import DEFAULT_CAPACITY
from readymix.core.services.order_service import DEFAULT_PRICE_PER_M3
from readymix.core.services.simulator import DEFAULT_INTERVAL_S, DEFAULT_PROBABILITY

logger = logging.getLogger(__name__)

# Default config filename
SETTINGS_FILE = "readymix.yml"


class ConfigError(Exception):
    """Raised when the settings file is unreadable or invalid."""


class SimulatorSettings(BaseModel):
    enabled: bool = True
    interval: float = Field(default=DEFAULT_INTERVAL_S, gt=0)
    probability: float = Field(default=DEFAULT_PROBABILITY, ge=0.0, le=1.0)
    seed: int | None = None


class AuditSettings(BaseModel):
    capacity: int = Field(default=DEFAULT_CAPACITY, ge=1)


class OrderSettings(BaseModel):
    price_per_m3: float = Field(default=DEFAULT_PRICE_PER_M3, ge=0)


class ActorSettings(BaseModel):
    """The actor a fresh session starts as."""

    id: str = "user-1"
    role: ActorRole = ActorRole.SITE_AGENT
    name: str = "Site Agent"

    def to_actor(self) -> Actor:
        return Actor(id=self.id, role=self.role, name=self.name)


class Settings(BaseModel):
    """Root settings document."""

    simulator: SimulatorSettings = Field(default_factory=SimulatorSettings)
    audit: AuditSettings = Field(default_factory=AuditSettings)
    orders: OrderSettings = Field(default_factory=OrderSettings)
    actor: ActorSettings = Field(default_factory=ActorSettings)


def find_settings_file(start_dir: Path | None = None) -> Path | None:
    """Search for readymix.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to readymix.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / SETTINGS_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_settings(path: Path | None = None) -> Settings:
    """Load and validate settings.

    Args:
        path: Explicit path to readymix.yml. If None, searches upward;
            if nothing is found, returns defaults.

    Returns:
        Validated Settings model.

    Raises:
        ConfigError: If an explicit path is missing, or the file is invalid.
    """
    if path is None:
        path = find_settings_file()
        if path is None:
            logger.debug("No %s found, using defaults", SETTINGS_FILE)
            return Settings()

    if not path.is_file():
        raise ConfigError(f"Settings file not found: {path}")

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return Settings()
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        settings = Settings.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid settings: {e}") from e

    logger.info(
        "Loaded settings from %s (simulator %s)",
        path, "on" if settings.simulator.enabled else "off",
    )
    return settings
