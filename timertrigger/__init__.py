"""Timer-triggered HTTP runner for tempsense RFID devices."""
from __future__ import annotations

from .config import ConfigError, ConfigLayer, TriggerConfig, load_config_layer, resolve_config

__all__ = ["ConfigError", "ConfigLayer", "TriggerConfig", "load_config_layer", "resolve_config"]
