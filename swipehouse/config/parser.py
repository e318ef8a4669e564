"""
Settings file parser
Handles YAML and JSON files and environment overrides
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from .models import ConfigFormat, Settings

# Environment variables that override file values
ENV_OVERRIDES = {
    "RENTCAST_API_KEY": "rentcast_api_key",
    "MAPBOX_TOKEN": "mapbox_token",
    "SWIPEHOUSE_CACHE_DB": "cache_db_url",
}


class ConfigParserError(Exception):
    """Configuration parsing error"""
    pass


class ConfigParser:
    """Parser for SwipeHouse settings files"""

    @staticmethod
    def detect_format(file_path: Path) -> ConfigFormat:
        """Detect configuration file format from extension"""
        suffix = file_path.suffix.lower()

        if suffix in [".yaml", ".yml"]:
            return ConfigFormat.YAML
        elif suffix == ".json":
            return ConfigFormat.JSON
        else:
            raise ConfigParserError(f"Unsupported file format: {suffix}")

    @staticmethod
    def load_file(file_path: Path) -> Dict[str, Any]:
        """Load configuration file content"""
        if not file_path.exists():
            raise ConfigParserError(f"Configuration file not found: {file_path}")

        format_type = ConfigParser.detect_format(file_path)

        try:
            content = file_path.read_text(encoding="utf-8")
            if format_type == ConfigFormat.YAML:
                data = yaml.safe_load(content) or {}
            else:
                data = json.loads(content)
        except yaml.YAMLError as e:
            raise ConfigParserError(f"Invalid YAML syntax: {e}")
        except json.JSONDecodeError as e:
            raise ConfigParserError(f"Invalid JSON syntax: {e}")
        except OSError as e:
            raise ConfigParserError(f"Error reading file: {e}")

        if not isinstance(data, dict):
            raise ConfigParserError(f"Configuration root must be a mapping: {file_path}")
        return data

    @staticmethod
    def parse_settings(data: Dict[str, Any]) -> Settings:
        """Validate raw settings data"""
        try:
            return Settings.model_validate(data)
        except ValidationError as e:
            raise ConfigParserError(f"Invalid settings: {e}")

    @staticmethod
    def save_file(settings: Settings, file_path: Path, format_type: Optional[ConfigFormat] = None) -> None:
        """Write settings to a file, leaving out credentials"""
        if format_type is None:
            format_type = ConfigParser.detect_format(file_path)

        data = settings.model_dump(
            mode="json",
            exclude={"rentcast_api_key", "mapbox_token"},
            exclude_none=True,
        )
        if format_type == ConfigFormat.YAML:
            content = yaml.dump(data, default_flow_style=False, sort_keys=False, indent=2)
        else:
            content = json.dumps(data, indent=2)

        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise ConfigParserError(f"Error saving file: {e}")


def load_settings(config_path: Optional[Union[str, Path]] = None) -> Settings:
    """
    Build settings from .env, an optional file and the environment

    Args:
        config_path: YAML or JSON settings file

    Returns:
        Validated Settings

    Raises:
        ConfigParserError: If the file cannot be read or the values are invalid
    """
    load_dotenv()

    data: Dict[str, Any] = {}
    if config_path is not None:
        data.update(ConfigParser.load_file(Path(config_path)))

    for env_var, field_name in ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value:
            data[field_name] = value

    return ConfigParser.parse_settings(data)
