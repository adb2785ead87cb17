"""
Configuration for world generation and the query service.
"""

from .config import Settings, load_env_file, settings

__all__ = ['Settings', 'load_env_file', 'settings']
