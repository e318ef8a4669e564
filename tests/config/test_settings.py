"""
Tests for settings models and the settings parser
"""

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml
from pydantic import ValidationError

from swipehouse.config.models import ConfigFormat, Settings
from swipehouse.config.parser import ConfigParser, ConfigParserError, load_settings
from swipehouse.core.models import ListingMode


@pytest.fixture
def clean_env():
    """Environment without credential overrides"""
    with patch.dict(os.environ, {}, clear=True):
        with patch("swipehouse.config.parser.load_dotenv"):
            yield


class TestSettings:
    """Test Settings defaults and validation"""

    def test_defaults(self):
        settings = Settings()

        assert settings.rentcast_api_key is None
        assert settings.fresh_ttl == 24 * 60 * 60
        assert settings.stale_ttl == 7 * 24 * 60 * 60
        assert settings.background_refresh_after == 30 * 60
        assert settings.matrix_chunk_size == 24
        assert settings.request_timeout == 30

    def test_default_filters(self):
        filters = Settings().default_filters

        assert filters.mode == ListingMode.RENT
        assert filters.latitude == "40.7128"
        assert filters.longitude == "-74.0060"
        assert filters.radius == "15"
        assert filters.price == "2200-5200"
        assert filters.bedrooms == "1-3"
        assert filters.bathrooms == "1-2"
        assert filters.limit == 50

    def test_stale_ttl_must_cover_fresh_ttl(self):
        with pytest.raises(ValidationError, match="stale_ttl"):
            Settings(fresh_ttl=100, stale_ttl=50)

    def test_chunk_size_limit(self):
        with pytest.raises(ValidationError):
            Settings(matrix_chunk_size=25)

    def test_empty_cache_url_means_memory(self):
        assert Settings(cache_db_url="").cache_db_url is None


class TestConfigParser:
    """Test ConfigParser"""

    def test_detect_format(self):
        assert ConfigParser.detect_format(Path("settings.yaml")) == ConfigFormat.YAML
        assert ConfigParser.detect_format(Path("settings.YML")) == ConfigFormat.YAML
        assert ConfigParser.detect_format(Path("settings.json")) == ConfigFormat.JSON

    def test_detect_unsupported_format(self):
        with pytest.raises(ConfigParserError, match="Unsupported file format"):
            ConfigParser.detect_format(Path("settings.toml"))

    def test_load_yaml_file(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text(
            """
            fresh_ttl: 3600
            stale_ttl: 7200
            default_filters:
              mode: buy
              city: Brooklyn
              price: 500000-900000
            """.replace("            ", "")
        )

        data = ConfigParser.load_file(path)

        assert data["fresh_ttl"] == 3600
        assert data["default_filters"]["city"] == "Brooklyn"

    def test_load_json_file(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"matrix_chunk_size": 10}))

        assert ConfigParser.load_file(path) == {"matrix_chunk_size": 10}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigParserError, match="not found"):
            ConfigParser.load_file(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("fresh_ttl: [unclosed")

        with pytest.raises(ConfigParserError, match="Invalid YAML syntax"):
            ConfigParser.load_file(path)

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")

        with pytest.raises(ConfigParserError, match="Invalid JSON syntax"):
            ConfigParser.load_file(path)

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigParserError, match="must be a mapping"):
            ConfigParser.load_file(path)

    def test_parse_invalid_settings(self):
        with pytest.raises(ConfigParserError, match="Invalid settings"):
            ConfigParser.parse_settings({"request_timeout": 0})

    def test_save_file_omits_credentials(self, tmp_path):
        settings = Settings(rentcast_api_key="secret", mapbox_token="token", matrix_chunk_size=12)
        path = tmp_path / "out" / "settings.yaml"

        ConfigParser.save_file(settings, path)
        data = yaml.safe_load(path.read_text())

        assert data["matrix_chunk_size"] == 12
        assert "rentcast_api_key" not in data
        assert "mapbox_token" not in data
        assert Settings.model_validate(data).matrix_chunk_size == 12


class TestLoadSettings:
    """Test load_settings precedence"""

    def test_defaults_without_file(self, clean_env):
        settings = load_settings()

        assert settings.rentcast_api_key is None
        assert settings.cache_db_url == "sqlite:///swipehouse_cache.db"

    def test_file_values(self, clean_env, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"rentcast_api_key": "from-file", "cache_max_bytes": 1024}))

        settings = load_settings(path)

        assert settings.rentcast_api_key == "from-file"
        assert settings.cache_max_bytes == 1024

    def test_environment_overrides_file(self, clean_env, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"rentcast_api_key": "from-file"}))

        with patch.dict(os.environ, {
            "RENTCAST_API_KEY": "from-env",
            "MAPBOX_TOKEN": "mapbox-env",
            "SWIPEHOUSE_CACHE_DB": "sqlite:///other.db",
        }):
            settings = load_settings(str(path))

        assert settings.rentcast_api_key == "from-env"
        assert settings.mapbox_token == "mapbox-env"
        assert settings.cache_db_url == "sqlite:///other.db"

    def test_loads_dotenv(self):
        with patch("swipehouse.config.parser.load_dotenv") as mock_load_dotenv:
            load_settings()

        mock_load_dotenv.assert_called_once()
