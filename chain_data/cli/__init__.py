"""Command-line entry points (chain-data)."""
