"""Shared helpers: message formatting and log formatting."""
