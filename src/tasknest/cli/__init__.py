"""Command-line interface for TaskNest."""
