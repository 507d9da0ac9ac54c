"""Commodity Trade Escrow — two-party trade escrow with arbitrated disputes."""

__version__ = "0.1.0"
