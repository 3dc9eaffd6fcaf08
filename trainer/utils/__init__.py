"""Trainer utilities."""
