"""
Tickminder Configuration System

Defaults match the reference host. Users can override them with a
config.yaml in the project root or an explicit path.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from tickminder.errors import ConfigError
from tickminder.scheduler.pump import DEFAULT_PROCESSING_INTERVAL, clamp_interval
from tickminder.ticks import TICKS_PER_DAY, TICKS_PER_SECOND


def get_project_root() -> Path:
    """Get project root directory."""
    return Path(__file__).parent.parent


@dataclass
class SchedulerConfig:
    """Trigger processing configuration."""

    # Ticks between processing cycles (1..1000)
    processing_interval: int = DEFAULT_PROCESSING_INTERVAL

    # When False the pump never processes triggers on its own
    enable_auto_processing: bool = True

    # Time reminders due within this many ticks count as urgent
    urgent_window_ticks: int = TICKS_PER_DAY


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    debug: bool = False  # Forces DEBUG regardless of level

    @property
    def effective_level(self) -> int:
        if self.debug:
            return logging.DEBUG
        level = logging.getLevelName(str(self.level).upper())
        return level if isinstance(level, int) else logging.INFO


@dataclass
class PersistenceConfig:
    """Where snapshots are written."""
    save_path: Path = field(default_factory=lambda: get_project_root() / "data" / "reminders.json")
    backup_corrupt: bool = True


@dataclass
class SimulationConfig:
    """Simulated host used by the CLI."""
    ticks_per_second: int = TICKS_PER_SECOND  # Real-time driver speed
    start_tick: int = 0


@dataclass
class TickminderConfig:
    """Main configuration container for Tickminder."""

    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "TickminderConfig":
        """Load configuration from YAML file.

        Raises:
            ConfigError: If the file is not valid YAML or not a mapping
        """
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config root in {path} must be a mapping")

        config = cls()

        sections = {
            "scheduler": config.scheduler,
            "logging": config.logging,
            "persistence": config.persistence,
            "simulation": config.simulation,
        }
        for name, section in sections.items():
            values = data.get(name)
            if values is None:
                continue
            if not isinstance(values, dict):
                raise ConfigError(f"Config section '{name}' must be a mapping")
            for key, value in values.items():
                if hasattr(section, key):
                    if key.endswith("_path"):
                        try:
                            value = Path(value)
                        except TypeError as e:
                            raise ConfigError(f"Invalid {name}.{key} in {path}: {value!r}") from e
                    setattr(section, key, value)

        try:
            config.scheduler.processing_interval = clamp_interval(config.scheduler.processing_interval)
        except (TypeError, ValueError) as e:
            raise ConfigError(
                f"Invalid scheduler.processing_interval in {path}: {config.scheduler.processing_interval!r}"
            ) from e
        return config

    def to_yaml(self, path: Path) -> None:
        """Save configuration to YAML file."""
        data = {
            "scheduler": {
                "processing_interval": self.scheduler.processing_interval,
                "enable_auto_processing": self.scheduler.enable_auto_processing,
                "urgent_window_ticks": self.scheduler.urgent_window_ticks,
            },
            "logging": {
                "level": self.logging.level,
                "debug": self.logging.debug,
            },
            "persistence": {
                "save_path": str(self.persistence.save_path),
                "backup_corrupt": self.persistence.backup_corrupt,
            },
            "simulation": {
                "ticks_per_second": self.simulation.ticks_per_second,
                "start_tick": self.simulation.start_tick,
            },
        }

        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


# Global default configuration
_default_config: Optional[TickminderConfig] = None


def get_config() -> TickminderConfig:
    """Get the global configuration instance."""
    global _default_config
    if _default_config is None:
        _default_config = TickminderConfig()

        # Try to load from config file if exists
        config_path = get_project_root() / "config.yaml"
        if config_path.exists():
            _default_config = TickminderConfig.from_yaml(config_path)

    return _default_config


def set_config(config: TickminderConfig) -> None:
    """Set the global configuration instance."""
    global _default_config
    _default_config = config
