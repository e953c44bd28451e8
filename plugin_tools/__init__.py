"""Maintenance tools for the novel-reader plugin repository."""

__version__ = "0.3.0"
