"""Outbound HTTP trigger for the remote temperature-sensing device."""
from __future__ import annotations

from .client import HttpTriggerClient, TriggerClient, TriggerResponse, build_trigger_url

__all__ = ["HttpTriggerClient", "TriggerClient", "TriggerResponse", "build_trigger_url"]
