"""Trainer API routers."""
