"""Utility modules for rustgeiger."""
