"""Command-line interface for the code modification bot."""
