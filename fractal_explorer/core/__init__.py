"""Escape-time engine, viewport geometry and error types."""
