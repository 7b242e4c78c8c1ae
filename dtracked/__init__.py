"""Dtracked - GPS route tracking and find logging."""

__version__ = "0.1.0"
