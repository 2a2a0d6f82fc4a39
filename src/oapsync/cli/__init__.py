"""Command-line interface for oapsync."""
