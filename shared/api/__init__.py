"""Shared API routes."""
