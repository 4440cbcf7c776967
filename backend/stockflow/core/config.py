"""
Configuration entry point.

Modules import ``settings`` from here; the definitions live in settings.py.
"""
from stockflow.core.settings import Settings, get_settings, settings

__all__ = ["Settings", "get_settings", "settings"]
