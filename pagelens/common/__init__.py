"""Shared HTTP, DOM and error utilities."""
