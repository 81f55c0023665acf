"""
Configuration management for gifttt.
"""

from .config import load_config, validate_config

__all__ = [
    'load_config',
    'validate_config',
]
