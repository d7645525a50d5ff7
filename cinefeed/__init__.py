"""Cinefeed - aggregate scraped content listings and reconcile them against a metadata catalog."""

__version__ = "0.1.0"
