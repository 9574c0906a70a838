"""Passive CSP and third-party script reconnaissance."""

__version__ = "0.1.0"
