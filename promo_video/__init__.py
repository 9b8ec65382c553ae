"""Promo Video Factory - segmented narrated vertical videos from a short brief."""

__version__ = "1.0.0"
