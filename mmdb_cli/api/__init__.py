"""
Release Feed Layer.

This package handles all communication with the remote release feed.
"""

from .http import create_session
from .tag_resolver import TagResolver

__all__ = ["TagResolver", "create_session"]
