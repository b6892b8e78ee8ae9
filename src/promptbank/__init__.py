"""Prompt Bank: internal prompt library service."""

__version__ = "0.1.0"
