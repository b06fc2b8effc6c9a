"""Session-keyed access to engagement coordinators."""

from spear.session.registry import SessionRegistry

__all__ = ["SessionRegistry"]
