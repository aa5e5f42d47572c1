"""Command-line interface for Shelby Wizard."""
