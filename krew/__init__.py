"""Krew - installation engine for kubectl plugins."""

__version__ = "0.4.0"
