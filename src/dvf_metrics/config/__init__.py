"""Configuration for dvf-metrics."""

from .settings import Settings, load_settings, url_for_year

__all__ = ["Settings", "load_settings", "url_for_year"]
