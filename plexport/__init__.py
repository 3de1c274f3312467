"""Plex PIN sign-in, stateless sessions and library export."""

__version__ = "0.1.0"
