"""Command-line interface for ordnance."""
