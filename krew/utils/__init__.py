"""Shared helpers for platform detection, filesystem access and versions."""
