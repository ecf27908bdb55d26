"""
Core module: Configuration, Logging, Exceptions, Dependencies
"""

from carefinder.core.config import settings

__all__ = ["settings"]
