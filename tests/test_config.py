"""test suite for configuration."""
import pytest
import shutil
import sys
import tempfile
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from nugetkit.config import (
    BINDING_KEY,
    NUGET_LAUNCHER_KEY,
    RETRY_BASE_DELAY_KEY,
    RETRY_MAX_ATTEMPTS_KEY,
    WORKING_DIRECTORY_KEY,
    get_config_dir,
    get_config_value,
    load_settings,
    read_config,
    set_config_value,
)


class TestConfig:
    @pytest.fixture
    def temp_dir(self):
        temp = Path(tempfile.mkdtemp())
        yield temp
        shutil.rmtree(temp)

    @pytest.fixture
    def config_file(self, temp_dir):
        return temp_dir / "config"

    def test_home_override(self, temp_dir, monkeypatch):
        monkeypatch.setenv("NUGETKIT_HOME", str(temp_dir))
        assert get_config_dir() == temp_dir

    def test_missing_file_is_empty(self, config_file):
        assert read_config(config_file) == {}

    def test_set_and_get(self, config_file):
        set_config_value(BINDING_KEY, "exe", config_file)
        set_config_value(NUGET_LAUNCHER_KEY, "mono", config_file)
        assert get_config_value(BINDING_KEY, config_file) == "exe"
        assert read_config(config_file) == {BINDING_KEY: "exe", NUGET_LAUNCHER_KEY: "mono"}

    def test_set_overwrites(self, config_file):
        set_config_value(BINDING_KEY, "exe", config_file)
        set_config_value(BINDING_KEY, "http", config_file)
        assert get_config_value(BINDING_KEY, config_file) == "http"

    def test_unknown_key(self, config_file):
        with pytest.raises(ValueError, match="unknown config key"):
            set_config_value("NUGETKIT_COLOR", "blue", config_file)

    def test_defaults(self, temp_dir, config_file, monkeypatch):
        monkeypatch.setenv("NUGETKIT_HOME", str(temp_dir))
        settings = load_settings(config_file)
        assert settings.working_directory == temp_dir / "work"
        assert settings.nuget_exe == "nuget"
        assert settings.nuget_launcher is None
        assert settings.nuget_config is None
        assert settings.retry_base_delay == 5.0
        assert settings.retry_max_attempts == 5
        assert settings.binding == "http"

    def test_values_from_file(self, temp_dir, config_file):
        set_config_value(WORKING_DIRECTORY_KEY, str(temp_dir / "scratch"), config_file)
        set_config_value(RETRY_BASE_DELAY_KEY, "0.5", config_file)
        set_config_value(RETRY_MAX_ATTEMPTS_KEY, "2", config_file)
        set_config_value(BINDING_KEY, "EXE", config_file)
        settings = load_settings(config_file)
        assert settings.working_directory == temp_dir / "scratch"
        assert settings.retry_base_delay == 0.5
        assert settings.retry_max_attempts == 2
        assert settings.binding == "exe"

    @pytest.mark.parametrize("key,value", [
        (BINDING_KEY, "ftp"),
        (RETRY_MAX_ATTEMPTS_KEY, "0"),
        (RETRY_BASE_DELAY_KEY, "soon"),
    ])
    def test_invalid_values(self, config_file, key, value):
        set_config_value(key, value, config_file)
        with pytest.raises(RuntimeError, match="invalid configuration"):
            load_settings(config_file)
