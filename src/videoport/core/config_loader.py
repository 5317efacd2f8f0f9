from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict

import yaml


class ConfigLoadingError(Exception):
    """Raised when a settings file is missing, unreadable or malformed."""
    pass


class BaseConfigLoader(ABC):
    """
    Turns a settings file into the raw ``capture`` / ``writer`` / ``logging``
    sections that VideoIOSettings.from_dict validates.
    """

    @abstractmethod
    def load(self, config_path: Path) -> Dict[str, Any]:
        """
        Args:
            config_path (Path): Location of the settings file.

        Returns:
            Dict[str, Any]: Section name -> section mapping. Missing sections
                            are allowed and fall back to defaults later.

        Raises:
            ConfigLoadingError: If the file is absent or cannot be parsed.
        """
        pass


class YamlConfigLoader(BaseConfigLoader):
    """Reads settings files shaped like ``configs/videoport.yaml``."""

    def load(self, config_path: Path) -> Dict[str, Any]:
        """
        Parses the YAML document with ``safe_load``. An empty file yields no
        sections, so capture, writer and logging all keep their defaults.
        Section contents are not checked here.
        """
        config_path = Path(config_path)
        if not config_path.is_file():
            raise ConfigLoadingError(f"Settings file not found at: {config_path}")

        try:
            with config_path.open("r") as f:
                sections = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigLoadingError(f"Invalid YAML in '{config_path}': {e}") from e
        except OSError as e:
            raise ConfigLoadingError(f"Could not read '{config_path}': {e}") from e

        if sections is None:
            return {}
        if not isinstance(sections, dict):
            raise ConfigLoadingError(
                f"'{config_path}' must map section names (capture, writer, logging) to settings."
            )
        return sections
