"""
Constants and persistent application settings.

Settings live in ~/.photo_edit_core/config.json under the "app_settings" key,
next to the log directory used by photo_edit_core.logger.
"""
import os
import json
from dataclasses import dataclass, fields
from typing import Optional
from loguru import logger

# Cube size of the bundled LUT assets (512x512 strip, 8x8 tiles of 64x64)
DEFAULT_CUBE_DIMENSION = 64

# Identity LUT asset name used when no explicit identity source is configured
IDENTITY_LUT_NAME = "Identity.png"

# Effect identifier meaning "no color grading"
NO_EFFECT_IDENTIFIER = "None"

DEFAULT_EFFECT_INTENSITY = 0.75
DEFAULT_FOCUS_BLUR_RADIUS = 10.0

LUT_IMAGE_EXTENSIONS = ('.png', '.tif', '.tiff')

# Color cube cache limits
CACHE_MAX_ITEMS = 8
CACHE_MAX_MEMORY_MB = 256

CONFIG_DIR = os.path.expanduser('~/.photo_edit_core')
CONFIG_FILE = os.path.join(CONFIG_DIR, 'config.json')


@dataclass
class Settings:
    """Runtime settings, defaults overridden by the app_settings section."""
    identity_lut_path: Optional[str] = None
    effects_dir: Optional[str] = None
    cache_max_items: int = CACHE_MAX_ITEMS
    cache_max_memory_mb: int = CACHE_MAX_MEMORY_MB
    log_level: str = "INFO"


def get_app_settings(config_file: str = CONFIG_FILE) -> dict:
    """Read the app_settings section, {} if the file is missing or broken"""
    try:
        if os.path.exists(config_file):
            with open(config_file, 'r', encoding='utf-8') as f:
                config = json.load(f)
                return config.get('app_settings', {})
    except Exception as e:
        logger.error(f"Failed to load app settings: {e}")
    return {}


def save_app_settings(settings: dict, config_file: str = CONFIG_FILE):
    """Merge settings into the app_settings section, keeping other sections"""
    try:
        config = {}
        if os.path.exists(config_file):
            with open(config_file, 'r', encoding='utf-8') as f:
                config = json.load(f)
        config.setdefault('app_settings', {}).update(settings)
        os.makedirs(os.path.dirname(config_file), exist_ok=True)
        with open(config_file, 'w', encoding='utf-8') as f:
            json.dump(config, f, ensure_ascii=False, indent=2)
    except Exception as e:
        logger.error(f"Failed to save app settings: {e}")


def load_settings(config_file: str = CONFIG_FILE) -> Settings:
    raw = get_app_settings(config_file)
    known = {f.name for f in fields(Settings)}
    unknown = set(raw) - known
    if unknown:
        logger.warning(f"Ignoring unknown settings: {', '.join(sorted(unknown))}")

    settings = Settings(**{k: v for k, v in raw.items() if k in known})
    settings.cache_max_items = max(1, int(settings.cache_max_items))
    settings.cache_max_memory_mb = max(1, int(settings.cache_max_memory_mb))
    settings.log_level = str(settings.log_level).upper()
    return settings
