"""Command-line interface for Krew."""
