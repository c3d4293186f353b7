"""Concrete adapters for the interfaces in ``patchwork.interfaces``."""
