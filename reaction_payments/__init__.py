"""Reaction payments: token-based micro-charge authorization with caller-side retries."""

__version__ = "0.1.0"
