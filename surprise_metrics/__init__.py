"""Surprise metrics, jump statistics and flat-file parsing for trade data."""

__version__ = "0.1.0"