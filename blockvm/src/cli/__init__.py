"""Command-line host for the block VM."""
