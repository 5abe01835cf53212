"""Command-line interface for compactor."""
