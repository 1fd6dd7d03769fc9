"""Persistence sink clients."""
