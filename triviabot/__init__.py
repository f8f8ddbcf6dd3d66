"""Trivia game bot for Discord channels."""

__version__ = "1.0.0"
