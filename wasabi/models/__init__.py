"""Database models."""

from wasabi.models.intro import IntroPreference

__all__ = [
    "IntroPreference",
]
