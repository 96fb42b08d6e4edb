"""Narrative-first marketing copy generation for HTML page templates."""

__version__ = "0.1.0"
