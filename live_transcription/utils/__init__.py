"""Shared utilities: exception hierarchy and retry helpers."""
