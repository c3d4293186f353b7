"""Patchwork: cached cover-art grids from Last.fm and ListenBrainz listening stats."""

__version__ = "1.0.0"
