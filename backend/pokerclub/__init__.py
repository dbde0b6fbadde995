"""Poker club tournament settlement backend."""

__version__ = "1.0.0"
