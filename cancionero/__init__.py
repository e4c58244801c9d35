"""Cancionero — karaoke night song catalog and live request queue."""

__version__ = "0.1.0"
