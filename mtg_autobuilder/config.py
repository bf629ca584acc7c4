"""Configuration management for the MTG collection auto-builder."""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, Optional


def _default_quotas() -> Dict[str, int]:
    # Processing order is the insertion order: ramp, draw, removal, creature.
    return {'ramp': 10, 'draw': 5, 'removal': 10, 'creature': 30}


@dataclass
class DeckBuildingConfig:
    """Configuration settings for deck building."""

    # Auto-build targets
    nonland_target: int = 60
    land_target: int = 39
    quotas: Dict[str, int] = field(default_factory=_default_quotas)
    staple_count: int = 15
    filler_price_ceiling: float = 2.0

    # Rebalance targets (commander excluded)
    rebalance_land_target: int = 35
    rebalance_total_target: int = 99

    # Apply the relevance filter to owned cards and fillers as well as staples
    strict_relevance: bool = False

    # API settings
    api_timeout_seconds: float = 15.0
    api_request_interval: float = 0.1
    card_cache_enabled: bool = True

    # Output preferences
    default_output_dir: str = "."
    verbose_output: bool = False


class ConfigManager:
    """Manages application configuration with file persistence."""

    DEFAULT_CONFIG_DIR = Path.home() / ".mtg_autobuilder"
    DEFAULT_CONFIG_FILE = "config.json"

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize configuration manager.

        Args:
            config_dir: Custom configuration directory (defaults to ~/.mtg_autobuilder)
        """
        self.logger = logging.getLogger(__name__)
        self.config_dir = Path(config_dir) if config_dir else self.DEFAULT_CONFIG_DIR
        self.config_file = self.config_dir / self.DEFAULT_CONFIG_FILE
        self._config = DeckBuildingConfig()

        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.load_config()

    def load_config(self) -> DeckBuildingConfig:
        """
        Load configuration from file.

        Returns:
            Loaded configuration object
        """
        if not self.config_file.exists():
            self.save_config()
            return self._config

        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config_data = json.load(f)

            for key, value in config_data.items():
                if hasattr(self._config, key):
                    setattr(self._config, key, value)
                else:
                    self.logger.debug(f"Ignoring unknown configuration key: {key}")

        except (json.JSONDecodeError, OSError) as e:
            # Keep the corrupted file around and start over from defaults
            self.logger.warning(f"Configuration file unreadable ({e}), restoring defaults")
            backup_file = self.config_file.with_suffix('.json.backup')
            self.config_file.rename(backup_file)
            self._config = DeckBuildingConfig()
            self.save_config()

        return self._config

    def save_config(self) -> None:
        """Save current configuration to file."""
        try:
            with open(self.config_file, 'w', encoding='utf-8') as f:
                json.dump(asdict(self._config), f, indent=2, sort_keys=True)
        except OSError as e:
            raise RuntimeError(f"Failed to save configuration: {e}")

    def get_config(self) -> DeckBuildingConfig:
        """Get current configuration."""
        return self._config

    def get_data_dir(self) -> Path:
        """Get the directory holding the persisted collection."""
        data_dir = self.config_dir / "data"
        data_dir.mkdir(exist_ok=True)
        return data_dir

    def get_logs_dir(self) -> Path:
        """Get logs directory path."""
        logs_dir = self.config_dir / "logs"
        logs_dir.mkdir(exist_ok=True)
        return logs_dir


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def apply_env_overrides(config: DeckBuildingConfig) -> DeckBuildingConfig:
    """
    Apply environment variable overrides to configuration.

    Args:
        config: Base configuration to override

    Returns:
        Configuration with environment overrides applied
    """
    env_mappings = {
        'MTG_AUTOBUILDER_NONLAND_TARGET': ('nonland_target', int),
        'MTG_AUTOBUILDER_LAND_TARGET': ('land_target', int),
        'MTG_AUTOBUILDER_STAPLE_COUNT': ('staple_count', int),
        'MTG_AUTOBUILDER_PRICE_CEILING': ('filler_price_ceiling', float),
        'MTG_AUTOBUILDER_REBALANCE_LANDS': ('rebalance_land_target', int),
        'MTG_AUTOBUILDER_STRICT': ('strict_relevance', _parse_bool),
        'MTG_AUTOBUILDER_TIMEOUT': ('api_timeout_seconds', float),
        'MTG_AUTOBUILDER_CACHE': ('card_cache_enabled', _parse_bool),
        'MTG_AUTOBUILDER_OUTPUT_DIR': ('default_output_dir', str),
        'MTG_AUTOBUILDER_VERBOSE': ('verbose_output', _parse_bool),
    }

    logger = logging.getLogger(__name__)
    for env_var, (attr_name, converter) in env_mappings.items():
        env_value = os.getenv(env_var)
        if env_value is None:
            continue
        try:
            setattr(config, attr_name, converter(env_value))
        except (ValueError, TypeError):
            logger.warning(f"Ignoring invalid value for {env_var}: {env_value!r}")

    return config
