# config.py
# Description: Configuration loading for quizdeck (TOML defaults merged with the user's config file)
#
# Imports
import copy
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional
#
# 3rd-Party Imports
from loguru import logger
from pydantic import ValidationError
#
# Local Imports
from quizdeck.auth import SIGNED_OUT, AuthContext
from quizdeck.schemas import SyncConfig
#
########################################################################################################################
#
# Functions:

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "quizdeck" / "config.toml"
BASE_DATA_DIR = Path.home() / ".local" / "share" / "quizdeck"

CONFIG_TOML_CONTENT = """
# Configuration for quizdeck
# Values here are the defaults; anything set in your own copy overrides them.

[general]
log_level = "INFO" # DEBUG, INFO, WARNING, ERROR, CRITICAL

[logging]
log_filename = "quizdeck.log"
file_log_level = "INFO"
max_bytes = 10485760 # 10 MB
backup_count = 5

[storage]
# Local copies of quizzes, sessions, flashcard decks and settings live here
data_dir = "~/.local/share/quizdeck"

[sync]
enabled = true
# Quiet period (seconds) after the last local change before it is pushed
debounce_seconds = 2.0
# Fields ignored when deciding whether two copies differ
volatile_fields = ["updatedAt", "createdAt", "lastSync"]

[account]
# The uid documents are stored under in the cloud; sync stays off while it is empty
user_id = ""
display_name = ""

[firebase]
# Service account JSON. Leave empty to use Application Default Credentials,
# or leave both keys empty to run without cloud sync.
credentials_path = ""
project_id = ""
"""

try:
    DEFAULT_CONFIG_FROM_TOML: Dict[str, Any] = tomllib.loads(CONFIG_TOML_CONTENT)
except tomllib.TOMLDecodeError as e:
    logger.critical(f"FATAL: Could not parse internal CONFIG_TOML_CONTENT: {e}")
    DEFAULT_CONFIG_FROM_TOML = {}


def deep_merge_dicts(base: Dict, update: Dict) -> Dict:
    """Recursively merges update into base."""
    merged = copy.deepcopy(base)
    for key, value in update.items():
        if isinstance(value, dict) and key in merged and isinstance(merged[key], dict):
            merged[key] = deep_merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


_CONFIG_CACHE: Optional[Dict[str, Any]] = None


def load_settings(force_reload: bool = False) -> Dict[str, Any]:
    """
    Loads settings from ~/.config/quizdeck/config.toml.
    If the file doesn't exist, it's created with the default values.
    """
    global _CONFIG_CACHE
    if _CONFIG_CACHE is not None and not force_reload:
        return _CONFIG_CACHE

    loaded_config = copy.deepcopy(DEFAULT_CONFIG_FROM_TOML)

    if not DEFAULT_CONFIG_PATH.exists():
        logger.info(f"Config file not found at {DEFAULT_CONFIG_PATH}. Creating it with default values.")
        try:
            DEFAULT_CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
            with open(DEFAULT_CONFIG_PATH, "w", encoding="utf-8") as f:
                f.write(CONFIG_TOML_CONTENT)
        except OSError as e:
            logger.error(f"Could not create default config file {DEFAULT_CONFIG_PATH}: {e}. Using internal defaults.")
    else:
        try:
            with open(DEFAULT_CONFIG_PATH, "rb") as f:
                user_config_from_file = tomllib.load(f)
            loaded_config = deep_merge_dicts(loaded_config, user_config_from_file)
            logger.info(f"Loaded config from {DEFAULT_CONFIG_PATH}")
        except tomllib.TOMLDecodeError as e:
            logger.error(f"Error decoding TOML config file {DEFAULT_CONFIG_PATH}: {e}. Using internal defaults.")
        except OSError as e:
            logger.error(f"Could not read config file {DEFAULT_CONFIG_PATH}: {e}. Using internal defaults.")

    _CONFIG_CACHE = loaded_config
    logger.debug(f"load_settings returning config with top-level keys: {list(loaded_config.keys())}")
    return _CONFIG_CACHE


def get_cli_setting(section: str, key: str, default: Any = None) -> Any:
    """Helper to get a specific setting from the loaded configuration."""
    section_data = load_settings().get(section)
    if isinstance(section_data, dict):
        return section_data.get(key, default)
    return default


# --- Path getters ---

def get_data_dir() -> Path:
    data_dir = get_cli_setting("storage", "data_dir", "") or str(BASE_DATA_DIR)
    return Path(data_dir).expanduser().resolve()


def get_log_file_path() -> Path:
    log_filename = get_cli_setting("logging", "log_filename", "quizdeck.log")
    log_file_path = get_data_dir() / log_filename
    try:
        log_file_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Could not create log directory {log_file_path.parent}: {e}")
    return log_file_path


# --- Typed sections ---

def sync_settings_from_config() -> SyncConfig:
    """The [sync] section as a validated `SyncConfig`; invalid values fall back to the defaults."""
    section = load_settings().get("sync", {}) or {}
    try:
        return SyncConfig.model_validate(section)
    except ValidationError as e:
        logger.error(f"Invalid [sync] configuration ({e.error_count()} error(s)); using defaults. {e}")
        return SyncConfig()


def firebase_settings_from_config() -> Dict[str, Optional[str]]:
    """The [firebase] section with empty strings normalised to None."""
    return {
        "credentials_path": get_cli_setting("firebase", "credentials_path", "") or None,
        "project_id": get_cli_setting("firebase", "project_id", "") or None,
    }


def is_firebase_configured() -> bool:
    settings = firebase_settings_from_config()
    return bool(settings["credentials_path"] or settings["project_id"])


def auth_from_config() -> AuthContext:
    """The [account] section as an `AuthContext`; signed out when no user id is set."""
    user_id = str(get_cli_setting("account", "user_id", "") or "").strip()
    if not user_id:
        return SIGNED_OUT
    return AuthContext(user_id=user_id,
                       is_configured=is_firebase_configured(),
                       display_name=get_cli_setting("account", "display_name", "") or None)

#
# End of config.py
########################################################################################################################
