"""Structured logging and session metrics."""
