"""Configuration management for ambientctx.

Loads and validates YAML-based configuration with Pydantic models.
Supports environment variable overrides for endpoints, model names and
API keys.
"""

from ambientctx.config.settings import Settings, load_settings

__all__ = ["Settings", "load_settings"]
