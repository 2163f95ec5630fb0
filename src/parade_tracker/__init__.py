"""Parade tracker — live route progress for a single vehicle."""

__version__ = "0.1.0"
