"""Persistence for plans, settings, feeding logs and the newborn profile."""

from .store import FeedingStore, RetryPolicy

__all__ = ["FeedingStore", "RetryPolicy"]
