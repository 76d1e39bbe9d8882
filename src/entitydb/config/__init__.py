"""Configuration module using Pydantic Settings.

Provides typed configuration for entity services with environment variable
support.

Usage:
    from entitydb.config import EntitySettings

    settings = EntitySettings(name="posts", page_size=25)
"""

from entitydb.config.settings import EntitySettings

__all__ = [
    "EntitySettings",
]
