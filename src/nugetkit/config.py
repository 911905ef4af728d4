import os
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, Field, ValidationError

WORKING_DIRECTORY_KEY = "NUGETKIT_WORKING_DIRECTORY"
NUGET_EXE_KEY = "NUGETKIT_NUGET_EXE"
NUGET_LAUNCHER_KEY = "NUGETKIT_NUGET_LAUNCHER"
NUGET_CONFIG_KEY = "NUGETKIT_NUGET_CONFIG"
RETRY_BASE_DELAY_KEY = "NUGETKIT_RETRY_BASE_DELAY"
RETRY_MAX_ATTEMPTS_KEY = "NUGETKIT_RETRY_MAX_ATTEMPTS"
BINDING_KEY = "NUGETKIT_BINDING"

KNOWN_KEYS = (
    WORKING_DIRECTORY_KEY,
    NUGET_EXE_KEY,
    NUGET_LAUNCHER_KEY,
    NUGET_CONFIG_KEY,
    RETRY_BASE_DELAY_KEY,
    RETRY_MAX_ATTEMPTS_KEY,
    BINDING_KEY,
)

def get_config_dir() -> Path:
    """~/.nugetkit, or $NUGETKIT_HOME when set."""
    override = os.environ.get("NUGETKIT_HOME")
    if override:
        return Path(override)
    return Path.home() / ".nugetkit"

def get_config_file() -> Path:
    return get_config_dir() / "config"

class Settings(BaseModel):
    """effective configuration, defaults filled in."""
    working_directory: Path = Field(default_factory=lambda: get_config_dir() / "work")
    nuget_exe: str = "nuget"
    nuget_launcher: Optional[str] = None  # e.g. "mono" outside windows
    nuget_config: Optional[Path] = None
    retry_base_delay: float = 5.0
    retry_max_attempts: int = Field(default=5, ge=1)
    binding: str = Field(default="http", pattern="^(http|exe)$")

def read_config(config_file: Optional[Path] = None) -> Dict[str, str]:
    """all KEY=value pairs in the config file; empty when missing or unreadable."""
    config_file = config_file or get_config_file()
    config = {}
    if not config_file.exists():
        return config

    try:
        with open(config_file, "r") as f:
            for line in f:
                line = line.strip()
                if "=" in line:
                    key, value = line.split("=", 1)
                    config[key] = value
    except (IOError, PermissionError, OSError):
        # if we can't read the file, treat as not configured
        return {}
    return config

def get_config_value(key: str, config_file: Optional[Path] = None) -> Optional[str]:
    return read_config(config_file).get(key)

def set_config_value(key: str, value: str, config_file: Optional[Path] = None):
    """set one value in the config file, preserving other config values."""
    if key not in KNOWN_KEYS:
        raise ValueError(f"unknown config key '{key}', expected one of: {', '.join(KNOWN_KEYS)}")

    config_file = config_file or get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)

    config = read_config(config_file)
    config[key] = value

    # write back
    try:
        with open(config_file, "w") as f:
            for k, v in config.items():
                f.write(f"{k}={v}\n")
    except (IOError, PermissionError, OSError) as e:
        raise RuntimeError(f"failed to write config file: {e}") from e

def load_settings(config_file: Optional[Path] = None) -> Settings:
    """
    build Settings from the config file, keeping defaults for absent keys.

    raises:
        RuntimeError: if a configured value is invalid
    """
    config = read_config(config_file)
    values = {}
    if config.get(WORKING_DIRECTORY_KEY):
        values["working_directory"] = Path(config[WORKING_DIRECTORY_KEY]).expanduser()
    if config.get(NUGET_EXE_KEY):
        values["nuget_exe"] = config[NUGET_EXE_KEY]
    if config.get(NUGET_LAUNCHER_KEY):
        values["nuget_launcher"] = config[NUGET_LAUNCHER_KEY]
    if config.get(NUGET_CONFIG_KEY):
        values["nuget_config"] = Path(config[NUGET_CONFIG_KEY]).expanduser()
    if config.get(RETRY_BASE_DELAY_KEY):
        values["retry_base_delay"] = config[RETRY_BASE_DELAY_KEY]
    if config.get(RETRY_MAX_ATTEMPTS_KEY):
        values["retry_max_attempts"] = config[RETRY_MAX_ATTEMPTS_KEY]
    if config.get(BINDING_KEY):
        values["binding"] = config[BINDING_KEY].lower()

    try:
        return Settings(**values)
    except ValidationError as e:
        raise RuntimeError(f"invalid configuration: {e}") from e
