"""Recover bibliographies from paper text and validate each reference online."""

__version__ = "0.1.0"
