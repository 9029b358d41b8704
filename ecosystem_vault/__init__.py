"""Encrypted, audited storage of ecosystem platform credentials."""

__version__ = "0.1.0"
