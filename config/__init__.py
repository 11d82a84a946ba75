"""Configuration module for loading and managing application settings"""
from typing import Dict, Any

from .lib.load_settings_conf import load_settings_conf, SettingsError, DEFAULTS

__all__ = ['settings_conf', 'load_settings_conf', 'reload_settings', 'SettingsError', 'DEFAULTS']

try:
    settings_conf: Dict[str, Any] = load_settings_conf()
except SettingsError as e:
    # Re-raise the error but provide more context
    raise SettingsError(
        f"Configuration Error\n"
        "=================\n\n"
        f"{str(e)}\n\n"
        "Please check settings.conf and any VINYL_* environment variables.\n"
        "Run `python -m config` to print the effective configuration."
    )

def reload_settings(settings_path: str = None) -> Dict[str, Any]:
    """Re-read settings in place so modules holding a reference see the new values."""
    fresh = load_settings_conf(settings_path)
    settings_conf.clear()
    settings_conf.update(fresh)
    return settings_conf
