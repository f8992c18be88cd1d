"""Unified connectivity layer for cryptocurrency exchange REST APIs."""

__version__ = "0.1.0"
