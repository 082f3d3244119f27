"""Configuration module"""

from .settings import BotConfig

__all__ = ['BotConfig']
