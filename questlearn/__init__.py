"""Progression and unlock engine for a gamified learning platform."""

__version__ = "0.1.0"
