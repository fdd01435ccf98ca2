"""CLI commands for rustgeiger."""
