"""Core infrastructure: configuration, logging, hashing and timestamps."""

from .config import AppConfig, load_app_config  # noqa: F401
