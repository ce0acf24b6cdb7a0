"""flexlock command-line interface."""
