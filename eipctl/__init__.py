"""Elastic IP association control library."""

__version__ = "1.0.0"
