"""Configuration package for the WashSafe service."""

from .settings import AppSettings, get_settings

__all__ = ["AppSettings", "get_settings"]
