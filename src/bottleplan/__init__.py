"""Bottle Plan: baby feeding tracker with a ten-entry plan generator."""

from .errors import BottlePlanError

__all__ = ["BottlePlanError", "__version__"]

__version__ = "0.1.0"
