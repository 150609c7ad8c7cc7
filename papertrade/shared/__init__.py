"""Shared models, configuration and errors."""
