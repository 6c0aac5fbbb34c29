"""Configuration management."""

from distant.config.settings import Settings

__all__ = ["Settings"]
