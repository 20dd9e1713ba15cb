"""Configuration package for the fit diagnostic service."""
from .routes import ConfigurationError, LlmRoute, MissingApiKeyError, resolve_route
from .settings import Settings, settings

__all__ = [
    "ConfigurationError",
    "LlmRoute",
    "MissingApiKeyError",
    "resolve_route",
    "Settings",
    "settings",
]
