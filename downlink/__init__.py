"""Tick-driven core of a hacking game: CPU scheduling and connection tracing."""

__version__ = "0.4.0"
