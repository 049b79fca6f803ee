"""User interface components (review session, viewer, progress)."""

from image_dedup.ui.session import InteractiveSession, SessionState, dispatch

__all__ = ["InteractiveSession", "SessionState", "dispatch"]
