import os
from pathlib import Path
from string import Template
from typing import Optional

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from subwatch.models.config import AppConfig
from subwatch.utils.exceptions import SubwatchError

logger = structlog.get_logger()

DEFAULT_CONFIG_PATH = "config/subwatch.yaml"


class ConfigValidationError(SubwatchError):
    """Configuration validation failed"""

    pass


class ConfigManager:
    """Loads and validates the subwatch YAML configuration"""

    def __init__(
        self,
        config_path: str = DEFAULT_CONFIG_PATH,
        load_env: bool = True,
    ):
        self.config_path = Path(config_path)
        self.env_loaded = not load_env
        self._config: Optional[AppConfig] = None

    def load_config(self) -> AppConfig:
        """Load and validate configuration"""
        if self._config:
            return self._config

        # 1. Load environment
        if not self.env_loaded:
            load_dotenv()
            self.env_loaded = True

        # 2. Check file existence
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        # 3. Read YAML
        try:
            with open(self.config_path, encoding="utf-8") as f:
                raw_content = f.read()
        except OSError as e:
            raise ConfigValidationError(f"Failed to read config file: {e}")

        # 4. Substitute env vars
        try:
            # safe_substitute leaves unknown ${VAR} references in place
            template = Template(raw_content)
            substituted_content = template.safe_substitute(os.environ)
            config_data = yaml.safe_load(substituted_content) or {}
        except (yaml.YAMLError, ValueError) as e:
            raise ConfigValidationError(
                f"Failed to parse YAML or substitute variables: {e}"
            )

        if not isinstance(config_data, dict):
            raise ConfigValidationError("Configuration root must be a mapping")

        # 5. Validate with Pydantic
        try:
            self._config = AppConfig(**config_data)
        except ValidationError as e:
            raise ConfigValidationError(f"Invalid configuration: {e}")

        logger.info(
            "config_loaded",
            path=str(self.config_path),
            delivery=self._config.delivery.method,
            sweep_interval_seconds=self._config.scheduler.sweep_interval_seconds,
        )
        return self._config

    def load_or_default(self) -> AppConfig:
        """Load configuration, using built-in defaults if the file is absent"""
        try:
            return self.load_config()
        except FileNotFoundError:
            logger.info("config_defaults_used", path=str(self.config_path))
            self._config = AppConfig()
            return self._config
