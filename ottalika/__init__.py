"""Ottalika: rent payment verification and maintenance confirmation workflows."""

__version__ = "0.1.0"
